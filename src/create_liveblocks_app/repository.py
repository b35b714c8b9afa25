"""Materialize the starter kit: empty-directory check, template download, private clone."""

import shutil
import subprocess
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import httpx
from rich.panel import Panel

from .config import github_auth_headers
from .ui import console


class TemplateDownloadError(RuntimeError):
    """The template archive could not be fetched or read."""


@dataclass(frozen=True)
class TemplateLocation:
    owner: str
    repo: str
    subpath: str = ""
    ref: str = "main"

    @property
    def archive_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/archive/{self.ref}.zip"

    @property
    def tree_url(self) -> str:
        url = f"https://github.com/{self.owner}/{self.repo}"
        if self.subpath:
            url += f"/tree/{self.ref}/{self.subpath}"
        return url


def parse_repo_directory(repo_dir: str) -> TemplateLocation:
    """Parse a degit-style ``owner/repo[/sub/path][#ref]`` location."""
    location, _, ref = repo_dir.partition("#")
    parts = [p for p in location.strip("/").split("/") if p]
    if len(parts) < 2:
        raise ValueError(f"Invalid template location '{repo_dir}': expected owner/repo[/path][#ref]")
    return TemplateLocation(parts[0], parts[1], "/".join(parts[2:]), ref or "main")


def confirm_directory_empty(app_dir: Path) -> bool:
    """Make sure ``app_dir`` exists and is empty.

    Returns False, after telling the user, when the directory already holds
    files. Nothing is touched in that case.
    """
    if app_dir.exists():
        if not app_dir.is_dir() or any(app_dir.iterdir()):
            error_panel = Panel(
                f"Directory '[cyan]{app_dir.name}[/cyan]' already exists and is not empty\n"
                "Please choose a different project name or remove the existing directory.",
                title="[red]Directory Conflict[/red]",
                border_style="red",
                padding=(1, 2)
            )
            console.print()
            console.print(error_panel)
            return False
        return True

    app_dir.mkdir(parents=True)
    return True


def _has_files(path: Path) -> bool:
    return any(p.is_file() for p in path.rglob("*") if ".git" not in p.relative_to(path).parts)


def _extract_subdirectory(zip_path: Path, subpath: str, app_dir: Path) -> int:
    """Copy the archive entries under ``<root>/<subpath>/`` into ``app_dir``."""
    written = 0
    target_root = app_dir.resolve()
    with zipfile.ZipFile(zip_path, 'r') as zip_ref:
        for info in zip_ref.infolist():
            parts = PurePosixPath(info.filename).parts
            # GitHub archives wrap everything in a single "<repo>-<ref>/" directory
            relative = parts[1:]
            if subpath:
                prefix = tuple(PurePosixPath(subpath).parts)
                if relative[:len(prefix)] != prefix:
                    continue
                relative = relative[len(prefix):]
            if not relative or info.is_dir():
                continue

            dest = (app_dir / Path(*relative)).resolve()
            if target_root not in dest.parents:
                continue
            dest.parent.mkdir(parents=True, exist_ok=True)
            with zip_ref.open(info) as src, open(dest, 'wb') as dst:
                shutil.copyfileobj(src, dst)
            written += 1
    return written


def clone_repo(repo_dir: str, app_dir: Path, *, client: httpx.Client | None = None, github_token: str | None = None) -> bool:
    """Download the public template into ``app_dir``.

    Returns False when the download failed or the template produced no files.
    """
    if client is None:
        with httpx.Client() as owned_client:
            return clone_repo(repo_dir, app_dir, client=owned_client, github_token=github_token)

    location = parse_repo_directory(repo_dir)
    try:
        written = _download_and_extract(client, location, app_dir, github_token)
    except TemplateDownloadError as e:
        console.print(Panel(str(e), title="[red]Template download failed[/red]", border_style="red"))
        return False
    return written > 0


def _download_and_extract(client: httpx.Client, location: TemplateLocation, app_dir: Path, github_token: str | None) -> int:
    with tempfile.TemporaryDirectory() as temp_dir:
        zip_path = Path(temp_dir) / f"{location.repo}.zip"
        try:
            with client.stream(
                "GET",
                location.archive_url,
                timeout=60,
                follow_redirects=True,
                headers=github_auth_headers(github_token),
            ) as response:
                if response.status_code != 200:
                    raise TemplateDownloadError(
                        f"Download of {location.archive_url} failed with {response.status_code}"
                    )
                with open(zip_path, 'wb') as f:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise TemplateDownloadError(f"Error downloading template: {e}") from e

        try:
            return _extract_subdirectory(zip_path, location.subpath, app_dir)
        except zipfile.BadZipFile as e:
            raise TemplateDownloadError(f"Template archive is corrupt: {e}") from e


def clone_private_repo(repo_url: str, app_dir: Path) -> bool:
    """``git clone`` a repository created by an integration into ``app_dir``."""
    try:
        subprocess.run(
            ["git", "clone", repo_url, str(app_dir)],
            check=True,
            capture_output=True,
            text=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        detail = getattr(e, "stderr", None) or str(e)
        console.print(Panel(detail.strip(), title=f"[red]Could not clone {repo_url}[/red]", border_style="red"))
        return False
    return _has_files(app_dir)
