"""Stream Auth CLI - Main entry point."""

import asyncio
import logging

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .auth import SessionManager
from .config import AuthSettings, load_settings
from .errors import AlreadyInProgressError, AuthenticationFailedError, ConfigError
from .oauth import LocalRedirectAgent

app = typer.Typer(
    name="streamauth",
    help="Sign in to Twitch with the OAuth implicit grant and manage the stored session",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    env_file: str = typer.Option(".env", "--env-file", help="Dotenv file with CLIENT_ID"),
):
    """Load environment and configure logging."""
    load_dotenv(env_file)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _settings() -> AuthSettings:
    try:
        return load_settings()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _manager(settings: AuthSettings, open_browser: bool = True) -> SessionManager:
    agent = LocalRedirectAgent.from_settings(settings, open_browser=open_browser)
    manager = SessionManager.from_settings(settings, agent=agent)
    manager.bootstrap()
    return manager


# ============================================================================
# Session Commands
# ============================================================================


@app.command("login")
def login(
    no_browser: bool = typer.Option(False, "--no-browser", help="Print the URL instead of opening it"),
):
    """Sign in with Twitch.

    Opens a browser window where you authorize the app. The session is
    stored locally for later commands.
    """
    settings = _settings()

    async def _login():
        manager = _manager(settings, open_browser=not no_browser)
        try:
            if manager.user is not None:
                return manager.user, False
            return await manager.sign_in(), True
        finally:
            await manager.api.close()

    console.print(
        Panel(
            "[bold]Starting Twitch Authorization[/bold]\n\n"
            "A browser window will open for you to authorize the app.\n\n"
            f"Listening on: {settings.redirect_uri}",
            title="Login",
        )
    )

    try:
        profile, fresh = asyncio.run(_login())
    except AuthenticationFailedError as e:
        console.print(f"[red]{e}[/red]")
        if e.__cause__ is not None:
            console.print(f"[dim]Details: {e.__cause__}[/dim]")
        raise typer.Exit(1)
    except AlreadyInProgressError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)

    if not fresh:
        console.print(f"[yellow]Already signed in as {profile.display_name}.[/yellow]")
        return

    console.print(
        Panel(
            f"[bold green]Signed in![/bold green]\n\n"
            f"User: {profile.display_name}\n"
            f"Email: {profile.email}",
            title="Connected",
        )
    )


@app.command("logout")
def logout():
    """Revoke the stored token and remove the local session."""
    settings = _settings()

    async def _logout():
        manager = _manager(settings)
        try:
            was_signed_in = manager.is_authenticated
            await manager.sign_out()
            return was_signed_in
        finally:
            await manager.api.close()

    if asyncio.run(_logout()):
        console.print("[green]Signed out.[/green]")
    else:
        console.print("[yellow]No session to sign out of.[/yellow]")


@app.command("whoami")
def whoami():
    """Show the signed-in user."""
    settings = _settings()

    async def _whoami():
        manager = _manager(settings)
        try:
            return manager.user
        finally:
            await manager.api.close()

    user = asyncio.run(_whoami())
    if user is None:
        console.print("[yellow]Not signed in. Run 'streamauth login'.[/yellow]")
        raise typer.Exit(1)

    table = Table(title="Signed-in User")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("ID", str(user.id))
    table.add_row("Display Name", user.display_name)
    table.add_row("Email", user.email)
    table.add_row("Avatar", user.profile_image_url)
    console.print(table)


@app.command("status")
def status():
    """Check configuration and session status."""
    settings = _settings()

    async def _status():
        manager = _manager(settings)
        try:
            return manager.is_authenticated
        finally:
            await manager.api.close()

    signed_in = asyncio.run(_status())

    table = Table(title="Stream Auth Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Status", style="green")
    table.add_row("Client ID", settings.client_id)
    table.add_row("Redirect URI", settings.redirect_uri)
    table.add_row("Scopes", settings.scopes)
    table.add_row("Storage", str(settings.config_path))
    table.add_row("Session", "Signed in" if signed_in else "[red]Signed out[/red]")
    console.print(table)


# ============================================================================
# Main
# ============================================================================


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"Stream Auth v{__version__}")


if __name__ == "__main__":
    app()
