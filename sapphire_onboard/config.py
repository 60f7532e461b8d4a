from pathlib import Path
from typing import Any, Dict, List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

SAPPHIRE_TESTNET_CHAIN_ID = 23295
HOODI_CHAIN_ID = 560048


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="auto", description="json, console, or auto (console at DEBUG)")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    # Deployer key used to sign on both chains
    pkey: str = Field(
        default="",
        description="Deployer private key (hex)",
        validation_alias=AliasChoices("pkey", "PKEY", "deployer_private_key", "DEPLOYER_PRIVATE_KEY"),
    )

    # Endpoint selection
    chain_registry_url: str = Field(
        default="https://chainid.network/chains.json",
        description="Public chain registry listing RPC URLs per chain ID",
    )
    chain_registry_timeout_seconds: float = Field(default=10.0, description="Timeout for the registry download")
    probe_timeout_seconds: float = Field(default=5.0, gt=0, description="Per-endpoint liveness probe timeout")
    rpc_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for JSON-RPC calls")
    enable_endpoint_discovery: bool = Field(
        default=True,
        description="Probe registry endpoints; when disabled the fallback RPC URLs are used directly",
    )

    # Transaction execution
    tx_max_retries: int = Field(default=2, ge=0, description="Retries after the first submission attempt")
    tx_retry_backoff_seconds: float = Field(default=1.0, ge=0, description="Fixed delay between attempts")
    confirmation_poll_seconds: float = Field(default=2.0, gt=0, description="Receipt polling interval")
    confirmation_timeout_seconds: float | None = Field(
        default=None,
        description="Give up waiting for a receipt after this many seconds (unbounded when unset)",
    )

    # Oasis Sapphire (confidential storage)
    sapphire_chain_id: int = Field(default=SAPPHIRE_TESTNET_CHAIN_ID, description="Sapphire chain ID")
    oasis_rpc_url: str = Field(
        default="https://testnet.sapphire.oasis.io",
        description="Fallback Sapphire RPC URL",
    )
    confidential_auth_address: str = Field(
        default="0xf4B4d8b8a9b1F104b2100F6d68e1ab21C3a2DF76",
        description="ConfidentialAuthAddressBased contract on Sapphire",
    )

    # Hoodi (subdomain registry)
    hoodi_chain_id: int = Field(default=HOODI_CHAIN_ID, description="Hoodi chain ID")
    hoodi_rpc_url: str = Field(
        default="https://rpc.hoodi.ethpandaops.io",
        description="Fallback Hoodi RPC URL",
    )
    second_level_interactor_address: str = Field(
        default="0x5bA6D4749AE9573f703E19f9197AE783dFaa78f8",
        description="SecondLevelInteractor controlling the parent domain",
    )
    public_resolver_address: str = Field(
        default="0x9427fF61d53deDB42102d84E0EC2927F910eF8f2",
        description="PublicResolver used for subdomain address records",
    )
    name_registry_address: str = Field(
        default="",
        description="Optional name registry used to check subdomain ownership",
    )
    domain_name: str = Field(default="authdemo1765462240433", description="Parent domain label")
    top_level_domain: str = Field(default="global", description="Top level domain")
    subdomain_expiry_seconds: int = Field(default=365 * 24 * 60 * 60, gt=0, description="Subdomain lifetime")

    @property
    def has_private_key(self) -> bool:
        return bool(self.pkey)

    def full_domain(self, label: str) -> str:
        return f"{label}.{self.domain_name}.{self.top_level_domain}"

    def chains(self) -> Dict[str, Dict[str, Any]]:
        return {
            "sapphire": {
                "chainId": self.sapphire_chain_id,
                "fallbackRpc": self.oasis_rpc_url,
                "contract": self.confidential_auth_address,
            },
            "hoodi": {
                "chainId": self.hoodi_chain_id,
                "fallbackRpc": self.hoodi_rpc_url,
                "interactor": self.second_level_interactor_address,
                "resolver": self.public_resolver_address,
                "domain": f"{self.domain_name}.{self.top_level_domain}",
            },
        }


# Global settings instance
settings = Settings()
