"""
coachauth session commands - inspect and exercise the session layer.
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from ...client import CoachAuth

console = Console()
app = typer.Typer(help="Inspect and exercise sessions")


def _print_state(coach: CoachAuth) -> None:
    state = coach.state
    if not state.is_authenticated:
        console.print("[yellow]Not logged in[/yellow]")
        return

    table = Table(title="Session")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("User ID", state.identity.id)
    table.add_row("Email", state.identity.email or "N/A")
    if coach.session and coach.session.expires_at:
        table.add_row("Expires At", str(coach.session.expires_at))
    if state.profile:
        table.add_row("Full Name", state.profile.full_name or "N/A")
        table.add_row("Email Confirmed", str(state.profile.email_confirmed))
        table.add_row("Admin", str(state.is_admin))
    else:
        table.add_row("Profile", "[red]unavailable[/red]")
    console.print(table)


@app.command("status")
def session_status_command() -> None:
    """Show the stored session and profile."""

    async def _status():
        coach = await CoachAuth.create()
        try:
            await coach.initialize(monitor=False)
            _print_state(coach)
        finally:
            await coach.close()

    asyncio.run(_status())


@app.command("login")
def session_login_command(
    email: str = typer.Argument(..., help="User email address"),
    password: str = typer.Option(
        ...,
        "--password",
        "-p",
        help="Password (will prompt if not provided)",
        prompt=True,
        hide_input=True,
    ),
) -> None:
    """
    Sign in and show the reconciled profile.

    Example:
        $ coachauth session login user@example.com
    """

    async def _login():
        coach = await CoachAuth.create()
        try:
            await coach.initialize(monitor=False)
            result = await coach.login(email, password)
            if not result.ok:
                console.print(f"[red]✗[/red] {result.error}")
                raise typer.Exit(1)
            console.print("[green]✓[/green] Logged in")
            _print_state(coach)
        finally:
            await coach.close()

    asyncio.run(_login())


@app.command("check")
def session_check_command() -> None:
    """Run one session health check."""

    async def _check():
        coach = await CoachAuth.create()
        try:
            await coach.initialize(monitor=False)
            result = await coach.health.tick()
            connected = await coach.health.check_connection()
            console.print(f"Health: [cyan]{result.value}[/cyan]")
            console.print(f"Backend reachable: [cyan]{connected}[/cyan]")
        finally:
            await coach.close()

    asyncio.run(_check())
