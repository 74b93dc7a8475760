"""
coachauth verify commands - email verification support tools.
"""

import asyncio

import typer
from rich.console import Console

from ...client import CoachAuth
from ...errors import VerificationError

console = Console()
app = typer.Typer(help="Email verification tools")


@app.command("resend")
def verify_resend_command(
    email: str = typer.Argument(..., help="Email address to verify"),
) -> None:
    """Resend the signup verification email."""

    async def _resend():
        coach = await CoachAuth.create()
        try:
            outcome = await coach.verification.resend(email)
            if not outcome.accepted:
                console.print(f"[yellow]Not sent:[/yellow] {outcome.reason}")
                return
            channel = outcome.channel.value if outcome.channel else "none (error)"
            console.print(f"[green]✓[/green] Verification email processed for {email}")
            console.print(f"  Channel: {channel}")
            console.print(f"  Cooldown: {outcome.cooldown}s")
        finally:
            await coach.close()

    asyncio.run(_resend())


@app.command("confirm")
def verify_confirm_command(
    token: str = typer.Argument(..., help="Token from the verification link"),
    email: str = typer.Argument(..., help="Email from the verification link"),
) -> None:
    """Consume a fallback verification link."""

    async def _confirm():
        coach = await CoachAuth.create()
        try:
            await coach.verify_email(token, email)
            console.print(f"[green]✓[/green] Email verified for {email}")
        except VerificationError as exc:
            console.print(f"[red]✗[/red] {exc.message}")
            raise typer.Exit(1)
        finally:
            await coach.close()

    asyncio.run(_confirm())


@app.command("cleanup")
def verify_cleanup_command() -> None:
    """Delete expired, unverified tokens."""

    async def _cleanup():
        coach = await CoachAuth.create()
        try:
            deleted = await coach.tokens.cleanup_expired()
            console.print(f"[green]✓[/green] Cleaned up {deleted} expired tokens")
        finally:
            await coach.close()

    asyncio.run(_cleanup())
