"""
Identity models for point-of-sale provisioning.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IdentityRequest(BaseModel):
    """
    Merchant identity carried in the CSR subject.
    Frozen: the ids cannot change once a CSR has been derived from them.
    """

    model_config = ConfigDict(frozen=True)

    country: str = Field(description="country code as registered with the authority, e.g. RKS")
    business_name: str = Field(description="legal name of the business")
    nui: int = Field(description="national unique identifier (tax number)")
    branch_id: int
    pos_id: int

    @property
    def application_id(self) -> str:
        """Identifier the authority registers the terminal under."""
        return f"{self.nui}-{self.branch_id}-{self.pos_id}"
