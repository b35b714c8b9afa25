from __future__ import annotations

import subprocess
from pathlib import Path

import httpx
import pytest

from create_liveblocks_app import repository
from create_liveblocks_app.repository import (
    TemplateLocation,
    clone_private_repo,
    clone_repo,
    confirm_directory_empty,
    parse_repo_directory,
)


def _client_serving(body: bytes, requests: list[httpx.Request], status: int = 200) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status, content=body)
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_parse_repo_directory():
    assert parse_repo_directory("liveblocks/liveblocks/starter-kits/nextjs-starter-kit") == TemplateLocation(
        "liveblocks", "liveblocks", "starter-kits/nextjs-starter-kit", "main"
    )
    assert parse_repo_directory("me/kit#v2") == TemplateLocation("me", "kit", "", "v2")
    with pytest.raises(ValueError):
        parse_repo_directory("just-a-name")


def test_confirm_directory_empty_creates_missing_directory(tmp_path: Path):
    app_dir = tmp_path / "app"

    assert confirm_directory_empty(app_dir) is True
    assert app_dir.is_dir()


def test_confirm_directory_empty_accepts_empty_directory(tmp_path: Path):
    assert confirm_directory_empty(tmp_path) is True


def test_confirm_directory_empty_rejects_existing_files(tmp_path: Path):
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    (app_dir / "notes.txt").write_text("keep me", encoding="utf-8")

    assert confirm_directory_empty(app_dir) is False
    assert [p.name for p in app_dir.iterdir()] == ["notes.txt"]
    assert (app_dir / "notes.txt").read_text(encoding="utf-8") == "keep me"


def test_clone_repo_extracts_only_the_template_directory(tmp_path: Path, template_archive: bytes):
    requests: list[httpx.Request] = []
    app_dir = tmp_path / "app"
    app_dir.mkdir()

    ok = clone_repo(
        "liveblocks/liveblocks/starter-kits/nextjs-starter-kit",
        app_dir,
        client=_client_serving(template_archive, requests),
        github_token="ghp_test",
    )

    assert ok is True
    assert str(requests[0].url) == "https://github.com/liveblocks/liveblocks/archive/main.zip"
    assert requests[0].headers["authorization"] == "Bearer ghp_test"
    files = sorted(p.relative_to(app_dir).as_posix() for p in app_dir.rglob("*") if p.is_file())
    assert files == ["README.md", "package.json", "pages/api/auth/[...nextauth].ts"]
    assert (app_dir / "README.md").read_text(encoding="utf-8") == "# Next.js Starter Kit\n"


def test_clone_repo_reports_empty_template(tmp_path: Path, archive_builder):
    archive = archive_builder({"liveblocks-main/README.md": "# monorepo\n"})

    ok = clone_repo("liveblocks/liveblocks/starter-kits/missing", tmp_path, client=_client_serving(archive, []))

    assert ok is False
    assert list(tmp_path.iterdir()) == []


def test_clone_repo_skips_entries_escaping_the_target(tmp_path: Path, archive_builder):
    archive = archive_builder({
        "kit-main/template/../../../evil.txt": "nope",
        "kit-main/template/index.ts": "export {}",
    })
    app_dir = tmp_path / "app"
    app_dir.mkdir()

    assert clone_repo("me/kit/template", app_dir, client=_client_serving(archive, [])) is True
    assert not (tmp_path / "evil.txt").exists()
    assert (app_dir / "index.ts").exists()


def test_clone_repo_returns_false_on_http_error(tmp_path: Path):
    app_dir = tmp_path / "app"
    app_dir.mkdir()

    assert clone_repo("me/kit", app_dir, client=_client_serving(b"missing", [], status=404)) is False
    assert list(app_dir.iterdir()) == []


def test_clone_repo_returns_false_on_corrupt_archive(tmp_path: Path):
    app_dir = tmp_path / "app"
    app_dir.mkdir()

    assert clone_repo("me/kit", app_dir, client=_client_serving(b"not a zip", [])) is False
    assert list(app_dir.iterdir()) == []


def test_clone_repo_returns_false_on_transport_error(tmp_path: Path):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(refuse))

    assert clone_repo("me/kit", tmp_path, client=client) is False


def test_clone_repo_closes_the_client_it_creates(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, archive_builder):
    created = []
    real_client = httpx.Client
    archive = archive_builder({"kit-main/index.ts": "export {}"})

    def make_client(**kwargs):
        client = real_client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=archive)))
        created.append(client)
        return client

    monkeypatch.setattr(repository.httpx, "Client", make_client)

    assert repository.clone_repo("me/kit", tmp_path) is True
    assert len(created) == 1
    assert created[0].is_closed


def test_clone_private_repo_clones_with_git(tmp_path: Path, git_identity):
    source = tmp_path / "source"
    source.mkdir()
    (source / "package.json").write_text("{}", encoding="utf-8")
    for cmd in (["git", "init"], ["git", "add", "."], ["git", "commit", "-m", "init"]):
        subprocess.run(cmd, cwd=source, check=True, capture_output=True)
    app_dir = tmp_path / "app"
    app_dir.mkdir()

    assert clone_private_repo(str(source), app_dir) is True
    assert (app_dir / "package.json").exists()
    assert (app_dir / ".git").is_dir()


def test_clone_private_repo_failure_returns_false(tmp_path: Path, git_identity):
    app_dir = tmp_path / "app"
    app_dir.mkdir()

    assert clone_private_repo(str(tmp_path / "does-not-exist"), app_dir) is False
