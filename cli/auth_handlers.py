"""Authentication handlers for CLI"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm

from chatgpt_auth import (
    AuthError,
    AuthEvents,
    AuthOrchestrator,
    CredentialRecord,
    ErrorKind,
    RefreshOutcome,
    read_codex_auth_file,
    validate_import,
)
from cli.status_display import show_auth_status, show_import_preview


class ConsoleAuthEvents(AuthEvents):
    """Renders sign-in outcomes on a rich console"""

    def __init__(self, console: Console):
        self.console = console

    def authorization_url(self, url: str) -> None:
        self.console.print("\n[bold]Step 1:[/bold] Opening browser for ChatGPT authentication...")
        self.console.print("If the browser does not open, visit this URL manually:")
        self.console.print(f"[link={url}]{escape(url)}[/link]\n")
        self.console.print("[bold]Step 2:[/bold] Complete the login process in your browser")

    def signed_in(self, record: CredentialRecord) -> None:
        self.console.print("[green][OK][/green] Signed in with your ChatGPT account")

    def signed_out(self) -> None:
        self.console.print("[green][OK][/green] Signed out, stored credentials removed")

    def refreshed(self, record: CredentialRecord) -> None:
        self.console.print("[green][OK][/green] Credentials refreshed")

    def auth_error(self, kind: ErrorKind, message: str) -> None:
        self.console.print(f"[red]Authentication error ({kind.value}):[/red] {escape(message)}")


async def handle_login(orchestrator: AuthOrchestrator, console: Console) -> int:
    """Run the browser sign-in flow"""
    try:
        with console.status(
            "[bold green]Waiting for you to complete authentication in the browser...[/bold green]",
            spinner="dots",
        ):
            await orchestrator.sign_in()
    except AuthError as e:
        if e.retryable:
            console.print("[yellow]You can run 'login' again to retry.[/yellow]")
        return 1
    return 0


async def handle_refresh(orchestrator: AuthOrchestrator, console: Console, force: bool = False) -> int:
    """Refresh stored credentials if stale (or always with force)"""
    try:
        outcome = await orchestrator.refresh_if_needed(force=force)
    except AuthError as e:
        if e.retryable:
            console.print("[yellow]Refresh failed temporarily, please retry.[/yellow]")
        return 1

    if outcome is RefreshOutcome.NOT_SIGNED_IN:
        console.print("[yellow]Not signed in. Run 'login' first.[/yellow]")
        return 1
    if outcome is RefreshOutcome.FRESH:
        console.print("[green]Credentials are fresh, no refresh needed[/green]")
    elif outcome is RefreshOutcome.NO_REFRESH_TOKEN:
        console.print("[yellow]Stored credentials cannot be refreshed (no refresh token)[/yellow]")
    elif outcome is RefreshOutcome.REAUTH_REQUIRED:
        console.print("[yellow]Please sign in again with 'login'.[/yellow]")
        return 1
    return 0


def handle_logout(orchestrator: AuthOrchestrator, console: Console) -> int:
    try:
        orchestrator.sign_out()
    except AuthError:
        return 1
    return 0


def handle_status(orchestrator: AuthOrchestrator, console: Console) -> int:
    try:
        status = orchestrator.get_status()
    except AuthError as e:
        console.print(f"[red]Could not read authentication status ({e.kind.value}):[/red] {escape(e.message)}")
        return 1
    show_auth_status(status, console)
    return 0


async def handle_import(
    orchestrator: AuthOrchestrator,
    console: Console,
    file: Optional[str] = None,
    codex: bool = False,
    codex_path: Optional[str] = None,
    assume_yes: bool = False,
) -> int:
    """Validate a credential bundle, confirm it, then hand it to the orchestrator"""
    if codex:
        source = codex_path or "Codex CLI credentials"
    else:
        source = file or "standard input"

    try:
        if codex:
            imported = read_codex_auth_file(Path(codex_path) if codex_path else None)
        elif file:
            imported = validate_import(Path(file).expanduser().read_text(encoding="utf-8"))
        else:
            console.print("Paste the credential JSON, then press Ctrl-D:")
            imported = validate_import(sys.stdin.read())
    except OSError as e:
        console.print(f"[red]Could not read {escape(str(source))}:[/red] {escape(str(e))}")
        return 1
    except AuthError as e:
        console.print(f"[red]Import rejected ({e.kind.value}):[/red] {escape(e.message)}")
        return 1

    show_import_preview(imported.preview, console)
    if not assume_yes and not Confirm.ask("Store these credentials?", default=True):
        console.print("[yellow]Import cancelled[/yellow]")
        return 1

    try:
        await orchestrator.import_credentials(imported)
    except AuthError:
        return 1
    return 0


def run_command(coro):
    """Run an async handler to completion"""
    return asyncio.run(coro)
