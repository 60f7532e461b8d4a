from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    success: bool = Field(default=False, description="Always false")
    error: str = Field(description="Human readable error")


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True, description="Whether the lookup succeeded")
    username: str = Field(description="Sapphire username")
    wallet_address: str = Field(serialization_alias="walletAddress", description="Wallet derived by the auth contract")
    subdomain: str = Field(description="Subdomain registered for the wallet")


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(description="Service status")
    message: str = Field(description="Service description")
    signer_configured: bool = Field(serialization_alias="signerConfigured", description="Whether PKEY is set")
    chains: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Configured chains")
    endpoints: Optional[Dict[str, str]] = Field(default=None, description="Selected RPC endpoints when probed")
