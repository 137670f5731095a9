"""Status display functionality for CLI"""

import datetime

from rich.table import Table

from chatgpt_auth import AuthStatus
from chatgpt_auth.policy import parse_iso_timestamp


def format_last_refresh(last_refresh) -> str:
    """Human readable age of the last refresh"""
    refreshed_at = parse_iso_timestamp(last_refresh)
    if refreshed_at is None:
        return "Never"

    delta = datetime.datetime.now(datetime.timezone.utc) - refreshed_at
    seconds = int(delta.total_seconds())
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def show_auth_status(status: AuthStatus, console):
    """
    Display authentication status

    Args:
        status: AuthStatus from the orchestrator
        console: Rich console for output
    """
    def present(flag: bool) -> str:
        return "[green]Present[/green]" if flag else "[dim]Not available[/dim]"

    table = Table(title="ChatGPT Authentication Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row(
        "Authenticated",
        "[green]Yes[/green]" if status.is_authenticated else "[red]No[/red]",
    )
    table.add_row("API Key", present(status.has_api_key))
    table.add_row("OAuth Tokens", present(status.has_tokens))
    table.add_row("Last Refresh", format_last_refresh(status.last_refresh))

    if status.has_tokens:
        table.add_row("ID Token", "[yellow]Expired[/yellow]" if status.id_token_expired else "Valid")
    if status.email:
        table.add_row("Account", status.email)
    if status.plan_type:
        table.add_row("Plan", status.plan_type)

    console.print(table)


def show_import_preview(preview: dict, console):
    """Display the redacted values of a credential import"""
    table = Table(title="Credentials to import")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in preview.items():
        table.add_row(name, value)
    console.print(table)
