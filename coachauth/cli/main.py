"""
coachauth CLI - operator tools for the auth layer.

Usage:
    coachauth session status            Show the stored session and profile
    coachauth session login EMAIL       Sign in and show the reconciled profile
    coachauth session check             Run one health check
    coachauth verify resend EMAIL       Resend the verification email
    coachauth verify confirm TOKEN EMAIL
                                        Consume a fallback verification link
    coachauth verify cleanup            Delete expired verification tokens
"""

import typer

from ..logging_config import configure_logging
from .commands import session, verify

# Create the main Typer app
app = typer.Typer(
    name="coachauth",
    help="Auth and session tools for the coaching site",
    add_completion=False,
)

app.add_typer(session.app, name="session")
app.add_typer(verify.app, name="verify")


@app.callback()
def callback(
    debug: bool = typer.Option(False, "--debug", help="Verbose logging"),
) -> None:
    """
    coachauth - auth and session layer on Supabase.
    """
    configure_logging(debug)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
