"""CLI argument parsing and main entry point.

Subcommands:

* ``ucp-vault migrate``: legacy rewrite, storage normalization, cleanup.
* ``ucp-vault cleanup``: one garbage-collection sweep.
* ``ucp-vault status``: show where each provider's credential lives.
* ``ucp-vault export``: dump providers with secrets resolved or redacted.
* ``ucp-vault watch``: run maintenance whenever configuration changes.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Dict, List, Optional

import yaml

from ucp_vault.auth.transfer import export_providers
from ucp_vault.config.store import ConfigStore
from ucp_vault.config.watcher import DEFAULT_POLL_INTERVAL, ConfigWatcher
from ucp_vault.constants import (
    APP_NAME,
    APP_VERSION,
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SECRETS_FILE,
)
from ucp_vault.display.logging_config import setup_logging
from ucp_vault.errors import ConfigurationError, MissingSecretError, SecretBackendError
from ucp_vault.maintenance import SecretMaintenance, run_startup_maintenance
from ucp_vault.secrets.backends import create_backend
from ucp_vault.secrets.cleanup import cleanup_unused_secrets
from ucp_vault.secrets.store import ApiKeyStatusKind, SecretStore

module_logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    ApiKeyStatusKind.UNSET: "not configured",
    ApiKeyStatusKind.PLAIN: "stored in settings",
    ApiKeyStatusKind.SECRET: "stored in secret storage",
    ApiKeyStatusKind.MISSING_SECRET: "missing, please re-enter",
}


# ── Wiring ──────────────────────────────────────────────────────────────


def _parse_folders(items: Optional[List[str]]) -> Dict[str, str]:
    folders: Dict[str, str] = {}
    for item in items or []:
        name, sep, path = item.partition("=")
        if not sep or not name or not path:
            raise ConfigurationError(f"Invalid --folder value {item!r}; expected NAME=PATH.")
        folders[name] = path
    return folders


def _build_config_store(args: argparse.Namespace) -> ConfigStore:
    global_path = args.config or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_FILE
    return ConfigStore(
        global_path=os.path.abspath(global_path),
        workspace_path=args.workspace,
        folder_paths=_parse_folders(args.folder),
        active_folder=args.active_folder,
    )


def _build_secret_store(args: argparse.Namespace) -> SecretStore:
    kwargs: Dict[str, str] = {}
    if args.backend == "file":
        kwargs["path"] = args.secrets_file
    return SecretStore(create_backend(args.backend, **kwargs))


# ── Subcommands ─────────────────────────────────────────────────────────


async def _migrate(args: argparse.Namespace) -> int:
    report = await run_startup_maintenance(_build_config_store(args), _build_secret_store(args))
    print(f"Legacy apiKey fields migrated: {'yes' if report.legacy_migrated else 'no'}")
    print(f"Secret storage normalized:     {'yes' if report.storage_migrated else 'no'}")
    print(f"Cleanup: {report.cleanup.summary()}")
    return 0 if report.cleanup.ok else 1


async def _cleanup(args: argparse.Namespace) -> int:
    result = await cleanup_unused_secrets(_build_secret_store(args), _build_config_store(args))
    print(f"Cleanup: {result.summary()}")
    for key, err in result.failed.items():
        print(f"  failed: {key}: {err}")
    return 0 if result.ok else 1


async def _status(args: argparse.Namespace) -> int:
    config_store = _build_config_store(args)
    secret_store = _build_secret_store(args)
    providers = config_store.endpoints
    if not providers:
        print("No providers configured.")
        return 0

    mode = "settings" if config_store.store_api_key_in_settings else "secret storage"
    print(f"Credential storage mode: {mode}")
    for provider in providers:
        auth = provider.auth
        if auth is None or auth.method == "none":
            detail = "no authentication"
        elif auth.method == "api-key":
            status = await secret_store.get_api_key_status(auth.api_key)
            detail = f"api-key, {_STATUS_LABELS[status.kind]}"
        else:
            detail = auth.method
        print(f"  {provider.name:<24} {detail}")
    return 0


async def _export(args: argparse.Namespace) -> int:
    config_store = _build_config_store(args)
    providers = await export_providers(
        config_store.endpoints,
        _build_secret_store(args),
        include_sensitive=args.include_sensitive,
    )
    text = yaml.safe_dump([p.to_wire() for p in providers], sort_keys=False, allow_unicode=True)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Exported {len(providers)} provider(s) to {args.output}")
    else:
        sys.stdout.write(text)
    return 0


async def _watch(args: argparse.Namespace) -> int:
    config_store = _build_config_store(args)
    maintenance = SecretMaintenance(config_store, _build_secret_store(args))
    maintenance.schedule_startup()
    watcher = ConfigWatcher(
        config_store.paths,
        maintenance.on_config_changed,
        poll_interval=args.poll_interval,
    )
    watcher.start()
    print(f"Watching {len(config_store.paths)} configuration file(s). Press Ctrl+C to stop.")
    try:
        await asyncio.Event().wait()
    finally:
        await watcher.stop()
        await maintenance.queue.drain()
    return 0


_COMMANDS = {
    "migrate": _migrate,
    "cleanup": _cleanup,
    "status": _status,
    "export": _export,
    "watch": _watch,
}


# ── Parser ──────────────────────────────────────────────────────────────


def _add_common_arguments(sp: argparse.ArgumentParser) -> None:
    sp.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Global configuration file (default: ${CONFIG_PATH_ENV} or {DEFAULT_CONFIG_FILE})",
    )
    sp.add_argument("--workspace", type=str, default=None, help="Workspace configuration file")
    sp.add_argument(
        "--folder",
        action="append",
        metavar="NAME=PATH",
        help="Workspace folder configuration file (repeatable)",
    )
    sp.add_argument(
        "--active-folder",
        type=str,
        default=None,
        help="Folder whose scope takes part in reads and writes",
    )
    sp.add_argument(
        "--backend",
        type=str,
        default="file",
        choices=["file", "keyring", "memory"],
        help="Secure storage backend (default: file)",
    )
    sp.add_argument(
        "--secrets-file",
        type=str,
        default=DEFAULT_SECRETS_FILE,
        help=f"Encrypted secrets file for the file backend (default: {DEFAULT_SECRETS_FILE})",
    )
    sp.add_argument(
        "--log-level",
        type=str,
        default=DEFAULT_LOG_LEVEL.lower(),
        choices=["debug", "info", "warning", "error", "critical"],
        help="Set file logging level (default: info)",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with one subparser per command."""
    parser = argparse.ArgumentParser(description=f"{APP_NAME} v{APP_VERSION}")
    subparsers = parser.add_subparsers(dest="command")

    sp_migrate = subparsers.add_parser(
        "migrate", help="Migrate legacy fields and secret storage, then clean up"
    )
    _add_common_arguments(sp_migrate)

    sp_cleanup = subparsers.add_parser("cleanup", help="Delete secrets no scope references")
    _add_common_arguments(sp_cleanup)

    sp_status = subparsers.add_parser("status", help="Show credential status per provider")
    _add_common_arguments(sp_status)

    sp_export = subparsers.add_parser("export", help="Export providers as YAML")
    _add_common_arguments(sp_export)
    sp_export.add_argument(
        "--include-sensitive",
        action="store_true",
        help="Inline secret values instead of redacting them",
    )
    sp_export.add_argument("-o", "--output", type=str, default=None, help="Output file")

    sp_watch = subparsers.add_parser("watch", help="Run maintenance on configuration changes")
    _add_common_arguments(sp_watch)
    sp_watch.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between file polls (default: {DEFAULT_POLL_INTERVAL})",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level)
    module_logger.info("---- %s v%s: %s ----", APP_NAME, APP_VERSION, args.command)

    try:
        code = asyncio.run(_COMMANDS[args.command](args))
    except KeyboardInterrupt:
        code = 0
    except MissingSecretError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    except (ConfigurationError, SecretBackendError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
