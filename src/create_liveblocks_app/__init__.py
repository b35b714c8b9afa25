#!/usr/bin/env python3
"""
create-liveblocks-app - Set up the Liveblocks Next.js Starter Kit

Usage:
    uvx create-liveblocks-app init <project-name>
    uvx create-liveblocks-app init <project-name> --auth github --no-vercel

Or install globally:
    uv tool install create-liveblocks-app
    create-liveblocks-app init <project-name>
"""

import ssl
import sys
from pathlib import Path
from typing import Optional

import httpx
import truststore
import typer
from rich.align import Align
from rich.panel import Panel
from typer.core import TyperGroup

from .config import AUTH_PROVIDERS, PACKAGE_MANAGERS, Settings
from .post_setup import check_tool, get_package_manager
from .prompts import ABORTED, SetupFlags, collect_answers
from .ui import StepTracker, ask_interactively, console, show_banner
from .workflow import Outcome, create

ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

FAILED_OUTCOMES = {Outcome.DIRECTORY_NOT_EMPTY, Outcome.EMPTY_CLONE, Outcome.CALLBACK_TIMEOUT}


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="create-liveblocks-app",
    help="Setup tool for the Liveblocks Next.js Starter Kit",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


@app.callback()
def callback(ctx: typer.Context):
    """Show banner when no subcommand is provided."""
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        show_banner()
        console.print(Align.center("[dim]Run 'create-liveblocks-app --help' for usage information[/dim]"))
        console.print()


def check_tool_for_tracker(tool: str, tracker: StepTracker) -> bool:
    """Check if a tool is installed and update tracker."""
    if check_tool(tool):
        tracker.complete(tool, "available")
        return True
    tracker.error(tool, "not found")
    return False


@app.command()
def init(
    project_name: str = typer.Argument(None, help="Name for your new project directory (asked for when omitted)"),
    auth: str = typer.Option(None, "--auth", help=f"Authentication provider: {', '.join(AUTH_PROVIDERS)}"),
    vercel: Optional[bool] = typer.Option(None, "--vercel/--no-vercel", help="Deploy on Vercel through the Liveblocks integration"),
    liveblocks_secret: Optional[bool] = typer.Option(None, "--liveblocks-secret/--no-liveblocks-secret", help="Fetch your Liveblocks secret key in the browser"),
    git: Optional[bool] = typer.Option(None, "--git/--no-git", help="Initialize a new git repository"),
    install: Optional[bool] = typer.Option(None, "--install/--no-install", help="Install dependencies after setup"),
    open_browser: Optional[bool] = typer.Option(None, "--open-browser/--no-open-browser", help="Open the browser for integrations without asking"),
    package_manager: str = typer.Option(None, "--package-manager", help=f"Package manager to use: {', '.join(PACKAGE_MANAGERS)}"),
    callback_timeout: Optional[float] = typer.Option(None, "--callback-timeout", min=1, help="Seconds to wait for an integration callback (default: wait indefinitely)"),
    skip_tls: bool = typer.Option(False, "--skip-tls", help="Skip SSL/TLS verification (not recommended)"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output for network and integration failures"),
    github_token: str = typer.Option(None, "--github-token", help="GitHub token to use when downloading the template (or set GH_TOKEN or GITHUB_TOKEN environment variable)"),
):
    """
    Create a new project from the Liveblocks Next.js Starter Kit.

    This command will:
    1. Ask the setup questions not already answered by flags
    2. Optionally deploy on Vercel or fetch your Liveblocks secret key in the browser
    3. Download the starter kit (or clone the repository Vercel created)
    4. Set up authentication and write .env.local
    5. Optionally install dependencies and initialize git

    Examples:
        create-liveblocks-app init my-app
        create-liveblocks-app init my-app --auth github --no-vercel --liveblocks-secret
        create-liveblocks-app init my-app --auth demo --no-vercel --no-liveblocks-secret --git --no-install
    """
    show_banner()

    selected_package_manager = package_manager or get_package_manager()
    if selected_package_manager not in PACKAGE_MANAGERS:
        console.print(f"[red]Error:[/red] Invalid package manager '{selected_package_manager}'. Choose from: {', '.join(PACKAGE_MANAGERS)}")
        raise typer.Exit(1)

    flags = SetupFlags(
        name=project_name,
        auth=auth,
        vercel=vercel,
        liveblocks_secret=liveblocks_secret,
        git=git,
        install=install,
        open_browser=open_browser,
        package_manager=selected_package_manager,
    )

    answers = collect_answers(flags, ask_interactively)
    if answers is ABORTED:
        console.print("[bold bright_red]Cancelled[/bold bright_red]")
        console.print()
        raise typer.Exit(0)

    settings = Settings.from_env()
    local_client = httpx.Client(verify=False if skip_tls else ssl_context)
    try:
        outcome = create(
            answers,
            package_manager=selected_package_manager,
            cwd=Path.cwd(),
            settings=settings,
            client=local_client,
            github_token=github_token,
            callback_timeout=callback_timeout,
            debug=debug,
        )
    except Exception as e:
        console.print(Panel(f"Setup failed: {e}", title="Failure", border_style="red"))
        if debug:
            _env_pairs = [
                ("Python", sys.version.split()[0]),
                ("Platform", sys.platform),
                ("CWD", str(Path.cwd())),
                ("Template", settings.template_repo),
                ("Package manager", selected_package_manager),
            ]
            _label_width = max(len(k) for k, _ in _env_pairs)
            env_lines = [f"{k.ljust(_label_width)} → [bright_black]{v}[/bright_black]" for k, v in _env_pairs]
            console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))
        raise typer.Exit(1)
    finally:
        local_client.close()

    if outcome in FAILED_OUTCOMES:
        raise typer.Exit(1)


@app.command()
def check():
    """Check that the tools used during setup are installed."""
    show_banner()
    console.print("[bold]Checking for installed tools...[/bold]\n")

    tracker = StepTracker("Check Available Tools")

    tracker.add("git", "Git version control")
    tracker.add("node", "Node.js")
    tracker.add("npm", "npm")
    tracker.add("pnpm", "pnpm")
    tracker.add("yarn", "Yarn")

    git_ok = check_tool_for_tracker("git", tracker)
    node_ok = check_tool_for_tracker("node", tracker)
    managers_ok = [check_tool_for_tracker(tool, tracker) for tool in PACKAGE_MANAGERS]

    console.print(tracker.render())

    console.print("\n[bold green]create-liveblocks-app is ready to use![/bold green]")

    if not git_ok:
        console.print("[dim]Tip: Install git to initialize a repository for your project[/dim]")
    if not node_ok or not any(managers_ok):
        console.print("[dim]Tip: Install Node.js and a package manager to run the starter kit[/dim]")


def main():
    app()


if __name__ == "__main__":
    main()
