"""Dependency installation and git steps that run after the files are written."""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping

from rich.panel import Panel

from .config import PACKAGE_MANAGERS
from .ui import console

INITIAL_COMMIT_MESSAGE = "Initial commit from create-liveblocks-app"
CONFIGURE_COMMIT_MESSAGE = "Configure Liveblocks starter kit"


def get_package_manager(environ: Mapping[str, str] | None = None) -> str:
    """Detect the package manager that launched us from npm_config_user_agent."""
    environ = os.environ if environ is None else environ
    user_agent = environ.get("npm_config_user_agent", "")
    for manager in ("yarn", "pnpm", "npm"):
        if user_agent.startswith(manager):
            return manager
    return "npm"


def check_tool(tool: str) -> bool:
    """Check if a tool is installed."""
    return shutil.which(tool) is not None


def run_command(cmd: list[str], cwd: Path, *, quiet: bool = False) -> bool:
    """Run ``cmd`` in ``cwd``; report a failure instead of raising."""
    try:
        subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True)
        return True
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        if not quiet:
            console.print(f"[red]Error running command:[/red] {' '.join(cmd)}")
            if isinstance(e, subprocess.CalledProcessError):
                console.print(f"[red]Exit code:[/red] {e.returncode}")
                if e.stderr:
                    console.print(Panel(e.stderr.strip(), title="Error output", border_style="red"))
            else:
                console.print(f"[red]{e}[/red]")
        return False


def install(app_dir: Path, package_manager: str, *, quiet: bool = False) -> bool:
    """Install dependencies. A failure leaves the written files in place."""
    if package_manager not in PACKAGE_MANAGERS:
        console.print(f"[yellow]Unknown package manager '{package_manager}', running it anyway[/yellow]")
    return run_command([package_manager, "install"], app_dir, quiet=quiet)


def initialize_git(app_dir: Path, *, quiet: bool = False) -> bool:
    """Create a fresh repository holding the whole project in one commit."""
    for cmd in (
        ["git", "init"],
        ["git", "add", "."],
        ["git", "commit", "-m", INITIAL_COMMIT_MESSAGE],
    ):
        if not run_command(cmd, app_dir, quiet=quiet):
            return False
    return True


def stage_and_commit(app_dir: Path, *, quiet: bool = False) -> bool:
    """Commit the configured files into the repository Vercel created.

    The commit lets the Vercel integration pick up the changes.
    """
    for cmd in (
        ["git", "add", "."],
        ["git", "commit", "-m", CONFIGURE_COMMIT_MESSAGE],
    ):
        if not run_command(cmd, app_dir, quiet=quiet):
            return False
    return True
