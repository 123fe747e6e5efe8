"""Command-line interface for gro configuration and token management.

Usage:
    gro config show             # Show credentials, token storage and expiry
    gro config clear            # Remove the stored OAuth token
    gro config migrate          # Import the legacy token file into secure storage
    gro config cache show       # Show the metadata cache TTL
    gro config cache set-ttl N  # Set the metadata cache TTL in hours

Every command first opens the token store (picking the most secure backend on
this host). All but `clear` and `migrate` then import a legacy plaintext token
file if the store is empty.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from datetime import UTC, datetime

from loguru import logger

from google_readonly import __version__
from google_readonly.config import (
    Settings,
    get_cache_ttl_hours,
    get_config_path,
    get_credentials_path,
    get_token_path,
    load_config,
    save_config,
    shorten_path,
)
from google_readonly.errors import GroError, TokenNotFoundError, UserError
from google_readonly.keychain.migrate import migrate_from_file
from google_readonly.keychain.store import TokenStore
from google_readonly.logging import configure_logging

Command = Callable[[argparse.Namespace, TokenStore], int]


def _format_remaining(seconds: int) -> str:
    """Format a duration rounded to the minute, e.g. '1h5m' or '42m'."""
    minutes = round(seconds / 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes}m" if hours else f"{minutes}m"


def cmd_show(_args: argparse.Namespace, store: TokenStore) -> int:
    """Display credentials, token storage and expiry."""
    cred_path = get_credentials_path()
    cred_status = "OK" if cred_path.exists() else "Not found"
    print(f"Credentials: {shorten_path(cred_path)} ({cred_status})")

    has_token = store.has_token()
    token_status = str(store.active_backend()) if has_token else "Not found"
    token_expiry = ""

    if has_token:
        token = store.get_token()
        if token.expiry is not None:
            stamp = token.expiry.strftime("%Y-%m-%dT%H:%M:%SZ")
            if token.expiry <= datetime.now(UTC):
                token_expiry = f"Expired at {stamp}"
            else:
                remaining = _format_remaining(token.expires_in_seconds())
                token_expiry = f"Expires {stamp} (in {remaining})"

    print(f"Token:       {token_status}")
    if token_expiry:
        print(f"Expiry:      {token_expiry}")

    if store.is_secure_storage():
        print(f"Security:    Secure storage ({store.active_backend()})")
    elif has_token:
        print("Security:    File storage (0600 permissions)")
        logger.warning(
            "No system keychain available; the token is stored in a plaintext file "
            "readable only by you"
        )

    if cred_status == "Not found" or not has_token:
        print()
        print("Run 'gro init' to complete setup.")
    return 0


def cmd_clear(_args: argparse.Namespace, store: TokenStore) -> int:
    """Remove the stored OAuth token."""
    if not store.has_token():
        print("No OAuth token found to clear.")
        return 0

    backend = store.active_backend()
    store.delete_token()

    print(f"Cleared OAuth token from {backend}.")
    print()
    print(
        "Note: credentials.json is not removed (contains OAuth client config, not user data)."
    )
    print("Run 'gro init' to re-authenticate.")
    return 0


def cmd_migrate(_args: argparse.Namespace, store: TokenStore) -> int:
    """Import the legacy plaintext token file into the active backend."""
    legacy_path = get_token_path()
    if migrate_from_file(store, legacy_path):
        print(f"Migrated OAuth token from {shorten_path(legacy_path)} to {store.active_backend()}.")
    elif store.has_token():
        print(f"OAuth token already stored in {store.active_backend()}; nothing to migrate.")
    else:
        print("No legacy token file found; nothing to migrate.")
    return 0


def cmd_cache_show(_args: argparse.Namespace, _store: TokenStore) -> int:
    """Show the metadata cache TTL."""
    print(f"Cache TTL:   {get_cache_ttl_hours()} hours")
    print(f"Config:      {shorten_path(get_config_path())}")
    return 0


def cmd_cache_set_ttl(args: argparse.Namespace, _store: TokenStore) -> int:
    """Set the metadata cache TTL."""
    if args.hours <= 0:
        raise UserError("Cache TTL must be a positive number of hours")
    cfg = load_config()
    cfg.cache_ttl_hours = args.hours
    save_config(cfg)
    print(f"Cache TTL set to {args.hours} hours.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gro",
        description="A read-only CLI for Google services - configuration and credentials",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output for debugging",
    )
    parser.add_argument("--version", action="version", version=f"gro {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # config subcommand
    config_parser = subparsers.add_parser(
        "config",
        help="Manage gro configuration and authentication status",
    )
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)

    show_parser = config_sub.add_parser("show", help="Display configuration status")
    show_parser.set_defaults(func=cmd_show)

    clear_parser = config_sub.add_parser(
        "clear",
        help="Remove stored OAuth token (credentials.json is kept)",
    )
    # Must work even when the stored token is corrupt
    clear_parser.set_defaults(func=cmd_clear, skip_migration=True)

    migrate_parser = config_sub.add_parser(
        "migrate",
        help="Import the legacy token file into secure storage",
    )
    migrate_parser.set_defaults(func=cmd_migrate, skip_migration=True)

    cache_parser = config_sub.add_parser("cache", help="Manage the metadata cache")
    cache_sub = cache_parser.add_subparsers(dest="cache_command", required=True)
    cache_show_parser = cache_sub.add_parser("show", help="Show cache TTL")
    cache_show_parser.set_defaults(func=cmd_cache_show)
    set_ttl_parser = cache_sub.add_parser("set-ttl", help="Set cache TTL in hours")
    set_ttl_parser.add_argument("hours", type=int, help="TTL in hours")
    set_ttl_parser.set_defaults(func=cmd_cache_set_ttl)

    return parser


def main(argv: list[str] | None = None, store: TokenStore | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Arguments (defaults to sys.argv[1:]).
        store: Token store to use; opened from the environment if omitted.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
        configure_logging(verbose=args.verbose, log_level=settings.log_level)

        if store is None:
            store = TokenStore.open(settings)

        # Must finish before any command reads the store
        if not getattr(args, "skip_migration", False):
            if migrate_from_file(store, get_token_path()):
                print(
                    f"Migrated OAuth token to {store.active_backend()}; "
                    "the plaintext file was securely erased.",
                    file=sys.stderr,
                )

        func: Command = args.func
        return func(args, store)
    except TokenNotFoundError as e:
        print(f"Error: {e}. Run 'gro init' to authenticate.", file=sys.stderr)
        return 1
    except GroError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
