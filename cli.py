#!/usr/bin/env python3
"""Simple CLI for driving Sapphire onboarding locally"""

import argparse
import asyncio
import sys
from typing import Optional

from sapphire_onboard.config import settings
from sapphire_onboard.core.onboarding import (
    CreateUserResult,
    OnboardingError,
    open_onboarding_service,
)
from sapphire_onboard.core.execution import TransactionError
from sapphire_onboard.core.rpc import EndpointSelector
from sapphire_onboard.logging_config import setup_logging


def print_create_result(result: CreateUserResult):
    """Pretty print a created user"""
    print("\n✅ User created on Oasis Sapphire")
    print("=" * 50)
    print(f"Username: {result.username}")
    print(f"Wallet:   {result.user_address}")
    if result.tx_hash:
        print(f"Tx:       {result.tx_hash} (block {result.block_number})")
    else:
        print("Tx:       already stored, skipped")

    ens = result.ens
    if ens.success:
        print(f"\n🌐 Subdomain: {ens.subdomain}")
        if ens.tx_hash:
            print(f"   Register tx: {ens.tx_hash}")
        if ens.set_addr_tx_hash:
            print(f"   setAddr tx:  {ens.set_addr_tx_hash}")
        if ens.skipped_steps:
            print(f"   Skipped:     {', '.join(ens.skipped_steps)}")
    else:
        print(f"\n⚠️  Subdomain {ens.subdomain} not registered: {ens.error}")


async def cli_endpoint(chain_id: int, fallback: Optional[str]) -> int:
    """Select and print the fastest RPC endpoint for a chain"""
    if fallback is None:
        fallbacks = {
            settings.sapphire_chain_id: settings.oasis_rpc_url,
            settings.hoodi_chain_id: settings.hoodi_rpc_url,
        }
        fallback = fallbacks.get(chain_id)
        if fallback is None:
            print(f"❌ No fallback configured for chain {chain_id}; pass --fallback")
            return 2

    selector = EndpointSelector(
        registry_url=settings.chain_registry_url,
        probe_timeout=settings.probe_timeout_seconds,
    )
    print(f"🔍 Probing RPC endpoints for chain {chain_id}...")
    url = await selector.select_best_endpoint(chain_id, fallback)
    print(url)
    return 0


async def cli_create_user(username: str, password: str, auth_username: Optional[str], resume: bool) -> int:
    print(f"🔐 Creating Oasis user: {username}")
    try:
        async with open_onboarding_service(settings) as service:
            result = await service.create_user(
                username, password, auth_username or username, resume=resume
            )
    except (OnboardingError, TransactionError) as e:
        print(f"❌ Error: {e}")
        return 1

    print_create_result(result)
    return 0


async def cli_delete_user(auth_username: str, password: str) -> int:
    print(f"🗑️  Deleting Oasis user: {auth_username}")
    try:
        async with open_onboarding_service(settings) as service:
            result = await service.delete_user(auth_username, password)
    except (OnboardingError, TransactionError) as e:
        print(f"❌ Error: {e}")
        return 1

    print(f"✅ Deleted in tx {result.tx_hash} (block {result.block_number})")
    return 0


async def cli_get_user(username: str) -> int:
    try:
        async with open_onboarding_service(settings) as service:
            record = await service.get_user(username)
    except (OnboardingError, TransactionError) as e:
        print(f"❌ Error: {e}")
        return 1

    print(f"Username:  {record.username}")
    print(f"Wallet:    {record.wallet_address}")
    print(f"Subdomain: {record.subdomain}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sapphire onboarding CLI")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    endpoint_parser = subparsers.add_parser("endpoint", help="Select the fastest RPC endpoint for a chain")
    endpoint_parser.add_argument("chain_id", type=int, help="EVM chain ID")
    endpoint_parser.add_argument("--fallback", help="Fallback RPC URL (defaults to the configured one)")

    create_parser = subparsers.add_parser("create-user", help="Store a secret and register a subdomain")
    create_parser.add_argument("username", help="Username / subdomain label")
    create_parser.add_argument("password", help="Password to store")
    create_parser.add_argument("--auth-username", help="Login name (default: username)")
    create_parser.add_argument("--resume", action="store_true", help="Continue onboarding an existing user")

    delete_parser = subparsers.add_parser("delete-user", help="Delete a stored secret")
    delete_parser.add_argument("auth_username", help="Username to delete")
    delete_parser.add_argument("password", help="Stored password")

    get_parser = subparsers.add_parser("get-user", help="Show a user's wallet and subdomain")
    get_parser.add_argument("username", help="Username")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)

    return parser


async def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.log_level)
    command = args.command.lower()

    if command == "endpoint":
        return await cli_endpoint(args.chain_id, args.fallback)

    elif command == "create-user":
        return await cli_create_user(args.username, args.password, args.auth_username, args.resume)

    elif command == "delete-user":
        return await cli_delete_user(args.auth_username, args.password)

    elif command == "get-user":
        return await cli_get_user(args.username)

    print(f"❌ Unknown command: {command}")
    parser.print_help()
    return 2


def run() -> None:
    argv = sys.argv[1:]
    if argv and argv[0] == "serve":
        args = build_parser().parse_args(argv)
        import uvicorn
        uvicorn.run(
            "sapphire_onboard.main:app",
            host=args.host,
            port=args.port,
            log_level=settings.log_level.lower(),
        )
        return
    sys.exit(asyncio.run(main(argv)))


if __name__ == "__main__":
    run()
