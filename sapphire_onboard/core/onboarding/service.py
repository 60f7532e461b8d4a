"""
User onboarding across Sapphire and Hoodi.

Creating a user stores the password on the Sapphire ConfidentialAuth
contract (which derives the user's wallet) and then gives that wallet a
subdomain under the configured parent domain on Hoodi.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from eth_account import Account

from ...config import Settings, settings as default_settings
from ..execution.errors import TransactionRevertedError
from ..execution.executor import TransactionExecutor
from ..execution.sender import TransactionSender
from ..rpc.client import JsonRpcClient
from ..rpc.endpoint_selector import EndpointSelector
from .contracts import ConfidentialAuthContract, SubdomainRegistrar, is_zero_address
from .errors import (
    ConfigurationError,
    PipelineError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .pipeline import Pipeline, PipelineStep

logger = logging.getLogger(__name__)


@dataclass
class SubdomainResult:
    subdomain: str
    success: bool
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    set_addr_tx_hash: Optional[str] = None
    skipped_steps: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subdomain": self.subdomain,
            "txHash": self.tx_hash,
            "blockNumber": self.block_number,
            "setAddrTxHash": self.set_addr_tx_hash,
            "success": self.success,
            "error": self.error,
        }


@dataclass
class CreateUserResult:
    username: str
    auth_username: str
    user_address: str
    contract_address: str
    ens: SubdomainResult
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "oasis": {
                "txHash": self.tx_hash,
                "userAddress": self.user_address,
                "blockNumber": self.block_number,
                "contractAddress": self.contract_address,
            },
            "ens": self.ens.to_dict(),
            "authUsername": self.auth_username,
            "username": self.username,
        }


@dataclass
class DeleteUserResult:
    auth_username: str
    tx_hash: str
    block_number: int


@dataclass
class UserRecord:
    username: str
    wallet_address: str
    subdomain: str


class OnboardingService:
    """
    Creates, deletes and looks up users.

    Collaborators are injected; use :func:`open_onboarding_service` to build
    one against live endpoints.
    """

    def __init__(
        self,
        auth: ConfidentialAuthContract,
        registrar: Optional[SubdomainRegistrar],
        settings: Settings,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.auth = auth
        self.registrar = registrar
        self.settings = settings
        self._clock = clock

    async def wallet_address(self, username: str) -> Optional[str]:
        """The user's wallet, or None if the contract does not know them."""
        try:
            address = await self.auth.get_wallet_address(username)
        except TransactionRevertedError:
            return None
        return None if is_zero_address(address) else address

    async def create_user(
        self,
        username: str,
        password: str,
        auth_username: str,
        *,
        resume: bool = False,
    ) -> CreateUserResult:
        """Store the secret and register the subdomain.

        With ``resume`` an existing user is not an error: steps already on
        chain are skipped and the remaining ones run.
        """
        if await self.wallet_address(username) and not resume:
            raise UserAlreadyExistsError(username)

        logger.info(f"Creating Oasis user: {username}")
        secret = password.encode("utf-8")

        async def stored() -> bool:
            return await self.wallet_address(username) is not None

        oasis = await Pipeline(
            f"create-user:{username}",
            [
                PipelineStep(
                    "store_secret",
                    lambda: self.auth.store_secret(username, secret),
                    is_complete=stored,
                ),
            ],
        ).run()

        user_address = await self.wallet_address(username)
        if user_address is None:
            raise TransactionRevertedError(f"No wallet derived for '{username}' after storeSecret")

        receipt = oasis.receipt("store_secret")
        logger.info(f"User {username} created on Oasis with wallet {user_address}")

        ens = await self.register_subdomain(username, user_address)

        return CreateUserResult(
            username=username,
            auth_username=auth_username,
            user_address=user_address,
            contract_address=self.auth.address,
            ens=ens,
            tx_hash=receipt.tx_hash if receipt else None,
            block_number=receipt.block_number if receipt else None,
        )

    async def register_subdomain(self, username: str, user_address: str) -> SubdomainResult:
        """Register ``username`` under the parent domain; failures are reported, not raised."""
        subdomain = self.settings.full_domain(username)

        if self.registrar is None:
            return SubdomainResult(subdomain=subdomain, success=False, error="Subdomain registrar not configured")

        registrar = self.registrar
        expiry = int(self._clock()) + self.settings.subdomain_expiry_seconds

        async def registered() -> bool:
            owner = await registrar.owner_of(subdomain)
            if owner is not None:
                return owner.lower() == user_address.lower()
            return not is_zero_address(await registrar.resolve_address(subdomain))

        async def address_set() -> bool:
            return (await registrar.resolve_address(subdomain)).lower() == user_address.lower()

        pipeline = Pipeline(
            f"register-subdomain:{subdomain}",
            [
                PipelineStep(
                    "register_subdomain",
                    lambda: registrar.register_subnode_record(
                        user_address, username, self.settings.domain_name, expiry
                    ),
                    is_complete=registered,
                ),
                PipelineStep(
                    "set_address_record",
                    lambda: registrar.set_address_record(subdomain, user_address),
                    is_complete=address_set,
                ),
            ],
        )

        logger.info(f"Registering subdomain {subdomain} for {user_address}")
        try:
            result = await pipeline.run()
        except PipelineError as e:
            logger.error(f"Subdomain registration failed: {e}")
            return SubdomainResult(subdomain=subdomain, success=False, error=str(e.cause))

        register = result.receipt("register_subdomain")
        set_addr = result.receipt("set_address_record")
        logger.info(f"Subdomain registered: {subdomain}")
        return SubdomainResult(
            subdomain=subdomain,
            success=True,
            tx_hash=register.tx_hash if register else None,
            block_number=register.block_number if register else None,
            set_addr_tx_hash=set_addr.tx_hash if set_addr else None,
            skipped_steps=result.skipped,
        )

    async def delete_user(self, auth_username: str, password: str) -> DeleteUserResult:
        if not await self.wallet_address(auth_username):
            raise UserNotFoundError(auth_username)

        logger.info(f"Deleting Oasis user: {auth_username}")
        receipt = await self.auth.delete_secret(auth_username, password.encode("utf-8"))
        return DeleteUserResult(
            auth_username=auth_username,
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
        )

    async def get_user(self, username: str) -> UserRecord:
        address = await self.wallet_address(username)
        if address is None:
            raise UserNotFoundError(username)
        return UserRecord(
            username=username,
            wallet_address=address,
            subdomain=self.settings.full_domain(username),
        )


def load_account(settings: Settings):
    if not settings.pkey:
        raise ConfigurationError("PKEY environment variable not set")
    try:
        return Account.from_key(settings.pkey)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"PKEY is not a valid private key: {e}") from e


async def resolve_endpoints(settings: Settings, selector: Optional[EndpointSelector] = None) -> Dict[str, str]:
    """Best Sapphire and Hoodi endpoints (the fallbacks when discovery is off)."""
    if not settings.enable_endpoint_discovery:
        return {"sapphire": settings.oasis_rpc_url, "hoodi": settings.hoodi_rpc_url}

    selector = selector or EndpointSelector(
        registry_url=settings.chain_registry_url,
        probe_timeout=settings.probe_timeout_seconds,
        registry_timeout=settings.chain_registry_timeout_seconds,
    )
    sapphire_url, hoodi_url = await asyncio.gather(
        selector.select_best_endpoint(settings.sapphire_chain_id, settings.oasis_rpc_url),
        selector.select_best_endpoint(settings.hoodi_chain_id, settings.hoodi_rpc_url),
    )
    return {"sapphire": sapphire_url, "hoodi": hoodi_url}


@asynccontextmanager
async def open_onboarding_service(
    settings: Optional[Settings] = None,
    *,
    selector: Optional[EndpointSelector] = None,
) -> AsyncIterator[OnboardingService]:
    """Connect to both chains for the duration of one request."""
    settings = settings or default_settings
    account = load_account(settings)
    endpoints = await resolve_endpoints(settings, selector)

    executor = TransactionExecutor(backoff_seconds=settings.tx_retry_backoff_seconds)
    sender_options = {
        "poll_interval": settings.confirmation_poll_seconds,
        "confirmation_timeout": settings.confirmation_timeout_seconds,
    }

    async with JsonRpcClient(endpoints["sapphire"], timeout=settings.rpc_timeout_seconds) as sapphire, \
            JsonRpcClient(endpoints["hoodi"], timeout=settings.rpc_timeout_seconds) as hoodi:
        auth = ConfidentialAuthContract(
            TransactionSender(sapphire, account, settings.sapphire_chain_id, **sender_options),
            settings.confidential_auth_address,
            executor=executor,
            max_retries=settings.tx_max_retries,
        )
        registrar = SubdomainRegistrar(
            TransactionSender(hoodi, account, settings.hoodi_chain_id, **sender_options),
            settings.second_level_interactor_address,
            settings.public_resolver_address,
            registry_address=settings.name_registry_address,
            executor=executor,
            max_retries=settings.tx_max_retries,
        )
        yield OnboardingService(auth, registrar, settings)
