"""The starter kit setup run, from collected answers to a ready project."""

import shutil
import webbrowser
from enum import Enum
from pathlib import Path
from typing import Callable

import httpx
from rich.live import Live
from rich.panel import Panel

from . import patchers
from .callback_server import CallbackCancelled, CallbackTimeout
from .config import ENV_FILE, LIVEBLOCKS_SECRET_KEY, MANIFEST_FILE, NEXTAUTH_FILE, Settings
from .integrations import launch_general_integration, launch_vercel_integration
from .post_setup import initialize_git, install, stage_and_commit
from .prompts import SetupAnswers
from .repository import clone_private_repo, clone_repo, confirm_directory_empty
from .ui import StepTracker, console


class Outcome(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DIRECTORY_NOT_EMPTY = "directory-not-empty"
    EMPTY_CLONE = "empty-clone"
    CALLBACK_TIMEOUT = "callback-timeout"


def _cancelled() -> Outcome:
    console.print("[bold bright_red]Cancelled[/bold bright_red]")
    console.print()
    return Outcome.CANCELLED


def _discard(app_dir: Path, created: bool) -> None:
    if created and app_dir.exists():
        shutil.rmtree(app_dir)


def _browser_opener(opener: Callable[[str], object], debug: bool) -> Callable[[str], None]:
    def open_url(url: str) -> None:
        if debug:
            console.print(Panel(url, title="Integration URL", border_style="magenta"))
        if not opener(url):
            console.print(f"[yellow]Could not open a browser. Open this URL to continue:[/yellow] {url}")
    return open_url


def create(
    answers: SetupAnswers,
    *,
    package_manager: str,
    cwd: Path,
    settings: Settings,
    client: httpx.Client | None = None,
    github_token: str | None = None,
    opener: Callable[[str], object] = webbrowser.open,
    callback_timeout: float | None = None,
    debug: bool = False,
) -> Outcome:
    """Set up the Next.js starter kit in ``cwd / answers.name``.

    Files are queued while the project is prepared and only written once the
    template is in place; no step after a failed precondition touches disk.
    """
    # The integrations need the browser; without it there is nothing to do
    if answers.needs_browser and not answers.open_browser:
        return _cancelled()

    app_dir = cwd / answers.name
    created = not app_dir.exists()
    session_secret = patchers.generate_session_secret()

    if not confirm_directory_empty(app_dir):
        return Outcome.DIRECTORY_NOT_EMPTY

    open_url = _browser_opener(opener, debug)
    liveblocks_secret_key = None
    cloned_private_repo = False

    try:
        if answers.vercel:
            with console.status("[bold white]Opening Vercel, continue deploying then check back...[/bold white]") as status:
                vercel_data = launch_vercel_integration(
                    answers.name, session_secret, settings, opener=open_url, timeout=callback_timeout
                )
                liveblocks_secret_key = vercel_data.secret(LIVEBLOCKS_SECRET_KEY)
                if vercel_data.repo:
                    status.update("[bold white]Cloning new repo...[/bold white]")
                    cloned_private_repo = clone_private_repo(vercel_data.repo.url, app_dir)
            console.print("[green]✓[/green] Vercel deployment complete")

        if answers.liveblocks_secret:
            with console.status("[bold white]Opening Liveblocks, import your API key then check back...[/bold white]"):
                liveblocks_data = launch_general_integration(
                    settings, opener=open_url, timeout=callback_timeout
                )
                liveblocks_secret_key = liveblocks_data.secret(LIVEBLOCKS_SECRET_KEY)
            console.print("[green]✓[/green] Liveblocks secret key added")
    except CallbackTimeout as e:
        console.print(Panel(str(e), title="[red]Integration timed out[/red]", border_style="red"))
        _discard(app_dir, created)
        return Outcome.CALLBACK_TIMEOUT
    except (CallbackCancelled, KeyboardInterrupt):
        _discard(app_dir, created)
        return _cancelled()

    env_variables = patchers.build_env_variables(
        answers.auth, session_secret, liveblocks_secret_key=liveblocks_secret_key
    )

    tracker = StepTracker("Set up Next.js Starter Kit")
    for key, label in [
        ("clone", "Clone starter kit"),
        ("auth", "Set up authentication"),
        ("env", f"Add {ENV_FILE}"),
        ("manifest", f"Update {MANIFEST_FILE}"),
        ("write", "Write files"),
        ("install", f"Install with {package_manager}"),
        ("git", "Git repository"),
    ]:
        tracker.add(key, label)

    flushed = False
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            if cloned_private_repo:
                tracker.skip("clone", "using repository created by Vercel")
            else:
                tracker.start("clone", settings.template_repo)
                if not clone_repo(settings.template_repo, app_dir, client=client, github_token=github_token):
                    tracker.error("clone", "no files")
                    live.stop()
                    console.print()
                    console.print("[bold bright_red]Target repo is empty[/bold bright_red]")
                    console.print()
                    _discard(app_dir, created)
                    return Outcome.EMPTY_CLONE
                tracker.complete("clone", settings.template_repo)

            files_to_write: list[patchers.PendingWrite] = []

            tracker.start("auth")
            nextauth_location = app_dir.joinpath(*NEXTAUTH_FILE)
            nextauth_source = nextauth_location.read_text(encoding="utf-8")
            files_to_write.append(patchers.PendingWrite(
                nextauth_location, patchers.add_auth_provider_setup(answers.auth, nextauth_source)
            ))
            tracker.complete("auth", answers.auth)

            tracker.start("env")
            files_to_write.append(patchers.PendingWrite(
                app_dir / ENV_FILE, patchers.render_env_file(env_variables)
            ))
            tracker.complete("env", f"{len(env_variables)} variables")

            tracker.start("manifest")
            manifest_location = app_dir / MANIFEST_FILE
            files_to_write.append(patchers.PendingWrite(
                manifest_location, patchers.render_manifest(manifest_location.read_text(encoding="utf-8"))
            ))
            tracker.complete("manifest")

            tracker.start("write")
            patchers.flush(files_to_write)
            flushed = True
            tracker.complete("write", f"{len(files_to_write)} files")
        except Exception:
            if not flushed:
                _discard(app_dir, created)
            raise

        if answers.install:
            tracker.start("install")
            if install(app_dir, package_manager, quiet=True):
                tracker.complete("install")
            else:
                tracker.error("install", f"run '{package_manager} install' manually")
        else:
            tracker.skip("install", "not requested")

        if answers.git:
            tracker.start("git")
            if initialize_git(app_dir, quiet=True):
                tracker.complete("git", "initialized")
            else:
                tracker.error("git", "init failed")
        elif answers.vercel:
            tracker.start("git")
            if stage_and_commit(app_dir, quiet=True):
                tracker.complete("git", "changes committed")
            else:
                tracker.error("git", "commit failed")
        else:
            tracker.skip("git", "not requested")

    console.print(tracker.render())
    print_next_steps(answers, package_manager, app_dir, settings, installed=tracker.status("install") == "done")
    return Outcome.COMPLETED


def print_next_steps(answers: SetupAnswers, package_manager: str, app_dir: Path, settings: Settings, *, installed: bool) -> None:
    cmd = f"{package_manager}{' run' if package_manager == 'npm' else ''}"
    steps_lines = [f"1. Go to the project folder: [cyan]cd {answers.name}[/cyan]"]
    if not installed:
        steps_lines.append(f"{len(steps_lines) + 1}. [cyan]{package_manager} install[/cyan]")
    steps_lines.append(f"{len(steps_lines) + 1}. [cyan]{cmd} dev[/cyan]")

    missing = patchers.missing_env_keys(app_dir / ENV_FILE)
    if missing:
        steps_lines.append("")
        steps_lines.append(f"Fill in these values in [cyan]{ENV_FILE}[/cyan]:")
        steps_lines.extend(f"  • {key}" for key in missing)

    console.print()
    console.print(Panel(
        "\n".join(steps_lines),
        title="Start using the Next.js Starter Kit",
        border_style="cyan",
        padding=(1, 2),
    ))
    console.print()
    console.print("[bold bright_magenta]✨ Ready to collaborate![/bold bright_magenta]")
    console.print()
    if answers.auth and answers.auth != "demo":
        console.print("[bold]Read the guide to finish setting up your authentication, and the rest of your app:[/bold]")
    else:
        console.print("[bold]Read the guide to finish setting up your app:[/bold]")
    console.print(settings.guide_url)
    console.print()
