"""
Contract wrappers for the Sapphire auth contract and the Hoodi subdomain
registrar.

Calldata is ABI-encoded locally; writes go through the transaction executor
and reads through its read-only retry.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, keccak, to_bytes, to_checksum_address

from ..execution.executor import DEFAULT_MAX_RETRIES, TransactionExecutor
from ..execution.models import TransactionReceipt
from ..execution.sender import TransactionSender

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def encode_call(signature: str, types: Sequence[str], args: Sequence[Any]) -> bytes:
    """Selector of ``signature`` followed by the ABI-encoded ``args``."""
    return function_signature_to_4byte_selector(signature) + encode(list(types), list(args))


def namehash(name: str) -> bytes:
    """ENS namehash for e.g. 'alice.domain.global'."""
    node = b"\x00" * 32
    labels = [label for label in name.split(".") if label]
    for label in reversed(labels):
        node = keccak(node + keccak(to_bytes(text=label)))
    return node


def encode_set_addr(node: bytes, address: str) -> bytes:
    return encode_call("setAddr(bytes32,address)", ["bytes32", "address"], [node, to_checksum_address(address)])


def _decode_address(raw: bytes) -> str:
    if not raw:
        return ZERO_ADDRESS
    (address,) = decode(["address"], raw)
    return to_checksum_address(address)


def is_zero_address(address: Optional[str]) -> bool:
    return not address or int(address, 16) == 0


class _ContractBase:
    def __init__(
        self,
        sender: TransactionSender,
        address: str,
        *,
        executor: Optional[TransactionExecutor] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.sender = sender
        self.address = to_checksum_address(address)
        self.executor = executor or TransactionExecutor()
        self.max_retries = max_retries

    async def _transact(self, to: str, data: bytes, label: str) -> TransactionReceipt:
        return await self.executor.execute(
            lambda multiplier: self.sender.submit(to, data, multiplier),
            label=label,
            max_retries=self.max_retries,
        )

    async def _read(self, to: str, data: bytes, label: str) -> bytes:
        return await self.executor.execute_read(
            lambda: self.sender.call(to, data),
            label=label,
            max_retries=self.max_retries,
        )


class ConfidentialAuthContract(_ContractBase):
    """ConfidentialAuthAddressBased on Sapphire; secrets are stored as bytes."""

    STORE_SECRET = "storeSecret(string,bytes)"
    DELETE_SECRET = "deleteSecret(string,bytes)"
    GET_WALLET_ADDRESS = "getWalletAddress(string)"

    async def store_secret(self, username: str, secret: bytes) -> TransactionReceipt:
        data = encode_call(self.STORE_SECRET, ["string", "bytes"], [username, secret])
        return await self._transact(self.address, data, f"storeSecret({username})")

    async def delete_secret(self, username: str, secret: bytes) -> TransactionReceipt:
        data = encode_call(self.DELETE_SECRET, ["string", "bytes"], [username, secret])
        return await self._transact(self.address, data, f"deleteSecret({username})")

    async def get_wallet_address(self, username: str) -> str:
        data = encode_call(self.GET_WALLET_ADDRESS, ["string"], [username])
        raw = await self._read(self.address, data, f"getWalletAddress({username})")
        return _decode_address(raw)


class SubdomainRegistrar(_ContractBase):
    """
    SecondLevelInteractor for the parent domain plus the PublicResolver
    (and optionally the registry) used to check what is already on chain.
    """

    REGISTER_SUBNODE_RECORD = "registerSubnodeRecord(address,string,string,uint256)"
    EXECUTE_TRANSACTION = "executeTransaction(address,bytes)"
    RESOLVER_ADDR = "addr(bytes32)"
    REGISTRY_OWNER = "owner(bytes32)"

    def __init__(
        self,
        sender: TransactionSender,
        interactor_address: str,
        resolver_address: str,
        *,
        registry_address: str = "",
        executor: Optional[TransactionExecutor] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        super().__init__(sender, interactor_address, executor=executor, max_retries=max_retries)
        self.resolver_address = to_checksum_address(resolver_address)
        self.registry_address = to_checksum_address(registry_address) if registry_address else None

    async def register_subnode_record(
        self, owner: str, label: str, parent: str, expiry: int
    ) -> TransactionReceipt:
        """Register ``label.parent`` to ``owner`` with the PublicResolver set."""
        data = encode_call(
            self.REGISTER_SUBNODE_RECORD,
            ["address", "string", "string", "uint256"],
            [to_checksum_address(owner), label, parent, expiry],
        )
        return await self._transact(self.address, data, f"registerSubnodeRecord({label})")

    async def execute_transaction(self, target: str, data: bytes, label: str = "executeTransaction") -> TransactionReceipt:
        """Have the interactor forward ``data`` to ``target``."""
        call = encode_call(
            self.EXECUTE_TRANSACTION,
            ["address", "bytes"],
            [to_checksum_address(target), data],
        )
        return await self._transact(self.address, call, label)

    async def set_address_record(self, name: str, address: str) -> TransactionReceipt:
        """Point ``name`` at ``address`` on the resolver via the interactor."""
        set_addr = encode_set_addr(namehash(name), address)
        return await self.execute_transaction(self.resolver_address, set_addr, f"setAddr({name})")

    async def resolve_address(self, name: str) -> str:
        data = encode_call(self.RESOLVER_ADDR, ["bytes32"], [namehash(name)])
        raw = await self._read(self.resolver_address, data, f"addr({name})")
        return _decode_address(raw)

    async def owner_of(self, name: str) -> Optional[str]:
        """Registry owner of ``name``; None when no registry is configured."""
        if self.registry_address is None:
            return None
        data = encode_call(self.REGISTRY_OWNER, ["bytes32"], [namehash(name)])
        raw = await self._read(self.registry_address, data, f"owner({name})")
        return _decode_address(raw)


__all__ = [
    "ZERO_ADDRESS",
    "ConfidentialAuthContract",
    "SubdomainRegistrar",
    "encode_call",
    "encode_set_addr",
    "is_zero_address",
    "namehash",
]
