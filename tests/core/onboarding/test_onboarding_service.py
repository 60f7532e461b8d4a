"""
Tests for OnboardingService with in-memory contracts.
"""

import pytest

from sapphire_onboard.config import Settings
from sapphire_onboard.core.execution import TransactionReceipt, TransactionRevertedError
from sapphire_onboard.core.onboarding import (
    ConfigurationError,
    OnboardingService,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from sapphire_onboard.core.onboarding.contracts import ZERO_ADDRESS
from sapphire_onboard.core.onboarding.service import load_account, resolve_endpoints

AUTH_ADDRESS = "0xf4B4d8b8a9b1F104b2100F6d68e1ab21C3a2DF76"
NOW = 1_700_000_000


def receipt(block):
    return TransactionReceipt(tx_hash=f"0x{block:064x}", block_number=block)


class FakeAuth:
    address = AUTH_ADDRESS

    def __init__(self, revert_lookup=False):
        self.wallets = {}
        self.calls = []
        self.revert_lookup = revert_lookup

    async def get_wallet_address(self, username):
        if self.revert_lookup:
            raise TransactionRevertedError("execution reverted: unknown user")
        return self.wallets.get(username, ZERO_ADDRESS)

    async def store_secret(self, username, secret):
        self.calls.append(("store_secret", username, secret))
        self.revert_lookup = False
        self.wallets[username] = "0x" + f"{len(self.wallets) + 1:040x}"
        return receipt(10)

    async def delete_secret(self, username, secret):
        self.calls.append(("delete_secret", username, secret))
        self.wallets.pop(username, None)
        return receipt(11)


class FakeRegistrar:
    def __init__(self, fail_on=None):
        self.records = {}
        self.calls = []
        self.fail_on = fail_on

    async def owner_of(self, name):
        return None

    async def resolve_address(self, name):
        return self.records.get(name, ZERO_ADDRESS)

    async def register_subnode_record(self, owner, label, parent, expiry):
        self.calls.append(("register", owner, label, parent, expiry))
        if self.fail_on == "register":
            raise TransactionRevertedError("execution reverted: not authorised")
        return receipt(20)

    async def set_address_record(self, name, address):
        self.calls.append(("set_addr", name, address))
        if self.fail_on == "set_addr":
            raise TransactionRevertedError("execution reverted")
        self.records[name] = address
        return receipt(21)


@pytest.fixture
def settings():
    return Settings(_env_file=None, pkey="", domain_name="authdemo", top_level_domain="global")


def make_service(settings, auth=None, registrar=None):
    return OnboardingService(
        auth or FakeAuth(),
        registrar if registrar is not None else FakeRegistrar(),
        settings,
        clock=lambda: NOW,
    )


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_creates_user_and_subdomain(self, settings):
        auth, registrar = FakeAuth(), FakeRegistrar()
        service = make_service(settings, auth, registrar)

        result = await service.create_user("alice", "secret123", "alice_login")

        assert auth.calls == [("store_secret", "alice", b"secret123")]
        assert result.user_address == auth.wallets["alice"]
        assert result.tx_hash == receipt(10).tx_hash
        assert result.ens.success
        assert result.ens.subdomain == "alice.authdemo.global"
        assert registrar.calls[0] == (
            "register", result.user_address, "alice", "authdemo", NOW + settings.subdomain_expiry_seconds
        )
        assert registrar.records["alice.authdemo.global"] == result.user_address

        body = result.to_dict()
        assert body["oasis"]["contractAddress"] == AUTH_ADDRESS
        assert body["oasis"]["blockNumber"] == 10
        assert body["ens"]["txHash"] == receipt(20).tx_hash
        assert body["authUsername"] == "alice_login"

    @pytest.mark.asyncio
    async def test_reverted_lookup_means_new_user(self, settings):
        auth = FakeAuth(revert_lookup=True)
        service = make_service(settings, auth)

        result = await service.create_user("alice", "secret123", "alice")

        assert result.user_address == auth.wallets["alice"]

    @pytest.mark.asyncio
    async def test_existing_user_rejected(self, settings):
        auth = FakeAuth()
        auth.wallets["alice"] = "0x" + "12" * 20
        service = make_service(settings, auth)

        with pytest.raises(UserAlreadyExistsError):
            await service.create_user("alice", "secret123", "alice")

        assert auth.calls == []

    @pytest.mark.asyncio
    async def test_subdomain_failure_does_not_fail_creation(self, settings):
        registrar = FakeRegistrar(fail_on="register")
        service = make_service(settings, registrar=registrar)

        result = await service.create_user("alice", "secret123", "alice")

        assert result.tx_hash is not None
        assert result.ens.success is False
        assert "not authorised" in result.ens.error
        assert [c[0] for c in registrar.calls] == ["register"]

    @pytest.mark.asyncio
    async def test_resume_skips_completed_steps(self, settings):
        auth, registrar = FakeAuth(), FakeRegistrar(fail_on="set_addr")
        service = make_service(settings, auth, registrar)

        first = await service.create_user("alice", "secret123", "alice")
        assert first.ens.success is False

        registrar.fail_on = None
        registrar.records["alice.authdemo.global"] = ZERO_ADDRESS
        resumed = await service.create_user("alice", "secret123", "alice", resume=True)

        assert len(auth.calls) == 1
        assert resumed.tx_hash is None
        assert resumed.ens.success
        assert resumed.ens.set_addr_tx_hash == receipt(21).tx_hash

    @pytest.mark.asyncio
    async def test_resume_of_fully_onboarded_user_does_nothing(self, settings):
        auth, registrar = FakeAuth(), FakeRegistrar()
        service = make_service(settings, auth, registrar)
        await service.create_user("alice", "secret123", "alice")
        registrar.calls.clear()

        resumed = await service.create_user("alice", "secret123", "alice", resume=True)

        assert registrar.calls == []
        assert resumed.ens.skipped_steps == ["register_subdomain", "set_address_record"]

    @pytest.mark.asyncio
    async def test_missing_registrar_reported(self, settings):
        service = OnboardingService(FakeAuth(), None, settings)

        result = await service.create_user("alice", "secret123", "alice")

        assert result.ens.success is False
        assert result.ens.error == "Subdomain registrar not configured"


class TestDeleteAndLookup:

    @pytest.mark.asyncio
    async def test_delete_unknown_user(self, settings):
        with pytest.raises(UserNotFoundError):
            await make_service(settings).delete_user("ghost", "secret123")

    @pytest.mark.asyncio
    async def test_delete_existing_user(self, settings):
        auth = FakeAuth()
        auth.wallets["bob"] = "0x" + "34" * 20
        service = make_service(settings, auth)

        result = await service.delete_user("bob", "secret123")

        assert result.block_number == 11
        assert auth.calls == [("delete_secret", "bob", b"secret123")]

    @pytest.mark.asyncio
    async def test_get_user(self, settings):
        auth = FakeAuth()
        auth.wallets["bob"] = "0x" + "34" * 20

        record = await make_service(settings, auth).get_user("bob")

        assert record.wallet_address == "0x" + "34" * 20
        assert record.subdomain == "bob.authdemo.global"

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, settings):
        with pytest.raises(UserNotFoundError):
            await make_service(settings).get_user("ghost")


class TestWiring:

    def test_missing_key(self, settings):
        with pytest.raises(ConfigurationError, match="PKEY environment variable not set"):
            load_account(settings)

    def test_invalid_key(self):
        with pytest.raises(ConfigurationError):
            load_account(Settings(_env_file=None, pkey="not-a-key"))

    def test_valid_key(self):
        account = load_account(Settings(_env_file=None, pkey="0x" + "11" * 32))
        assert account.address.startswith("0x")

    @pytest.mark.asyncio
    async def test_endpoints_without_discovery(self):
        settings = Settings(_env_file=None, enable_endpoint_discovery=False)
        assert await resolve_endpoints(settings) == {
            "sapphire": settings.oasis_rpc_url,
            "hoodi": settings.hoodi_rpc_url,
        }

    @pytest.mark.asyncio
    async def test_endpoints_use_selector(self, settings):
        class StubSelector:
            async def select_best_endpoint(self, network_id, fallback):
                return f"https://best-{network_id}.test"

        assert await resolve_endpoints(settings, StubSelector()) == {
            "sapphire": "https://best-23295.test",
            "hoodi": "https://best-560048.test",
        }
