"""CLI entry point and argument parsing"""

import argparse
import dataclasses
import sys

from rich.console import Console

import settings
from chatgpt_auth import AuthConfig, AuthOrchestrator, KeyringSecureStore
from cli.auth_handlers import (
    ConsoleAuthEvents,
    handle_import,
    handle_login,
    handle_logout,
    handle_refresh,
    handle_status,
    run_command,
)
from cli.debug_setup import setup_logging


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sign in to OpenAI with a ChatGPT Plus/Pro account")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Callback port (default: from config, must match the registered redirect URI)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("login", help="Sign in through the browser")
    subparsers.add_parser("logout", help="Remove stored credentials")
    refresh = subparsers.add_parser("refresh", help="Refresh stored credentials if stale")
    refresh.add_argument("--force", action="store_true", help="Refresh even if credentials look fresh")
    subparsers.add_parser("status", help="Show authentication status")

    import_parser = subparsers.add_parser("import", help="Import credentials from JSON")
    source = import_parser.add_mutually_exclusive_group()
    source.add_argument("--file", "-f", default=None, help="Read the JSON from a file (default: stdin)")
    source.add_argument("--codex", action="store_true", help="Import from the Codex CLI auth.json")
    import_parser.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")
    return parser


def main():
    """Entry point for the CLI"""
    args = build_parser().parse_args()
    setup_logging(debug=args.debug)

    config = AuthConfig.from_settings()
    if args.port is not None:
        config = dataclasses.replace(config, callback_port=args.port)

    orchestrator = AuthOrchestrator(
        config,
        store=KeyringSecureStore(settings.KEYRING_SERVICE),
        events=ConsoleAuthEvents(console),
    )

    try:
        if args.command == "login":
            code = run_command(handle_login(orchestrator, console))
        elif args.command == "logout":
            code = handle_logout(orchestrator, console)
        elif args.command == "refresh":
            code = run_command(handle_refresh(orchestrator, console, force=args.force))
        elif args.command == "status":
            code = handle_status(orchestrator, console)
        else:
            code = run_command(
                handle_import(
                    orchestrator,
                    console,
                    file=args.file,
                    codex=args.codex,
                    codex_path=settings.CODEX_AUTH_FILE,
                    assume_yes=args.yes,
                )
            )
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        code = 130

    sys.exit(code)


if __name__ == "__main__":
    main()
