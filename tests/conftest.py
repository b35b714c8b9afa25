from __future__ import annotations

import io
import json
import shutil
import zipfile
from pathlib import Path

import pytest

NEXTAUTH_SOURCE = '''import NextAuth from "next-auth";
import CredentialsProvider from "next-auth/providers/credentials";
import { getUser } from "../../../lib/server";

export const authOptions = {
  secret: process.env.NEXTAUTH_SECRET,
  pages: {
    signIn: "/signin",
  },
  providers: [
    CredentialsProvider({
      name: "Credentials",
      credentials: {
        email: { label: "Email", type: "text" },
      },
      async authorize(credentials) {
        const user = await getUser(credentials?.email ?? "");
        return user ? { id: user.id, name: user.name, scopes: [["read", ["rooms"]]] } : null;
      },
    }),
  ],
};

export default NextAuth(authOptions);
'''

PACKAGE_JSON = {
    "name": "nextjs-starter-kit",
    "version": "1.0.0",
    "private": True,
    "scripts": {"dev": "next dev", "build": "next build"},
    "dependencies": {"@liveblocks/client": "^1.0.0", "next": "13.0.0"},
}

STARTER_KIT_FILES = {
    "package.json": json.dumps(PACKAGE_JSON),
    "pages/api/auth/[...nextauth].ts": NEXTAUTH_SOURCE,
    "README.md": "# Next.js Starter Kit\n",
}


def write_starter_kit(app_dir: Path) -> None:
    for relative, content in STARTER_KIT_FILES.items():
        target = app_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")


def build_archive(entries: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture()
def template_archive() -> bytes:
    entries = {"liveblocks-main/README.md": "# monorepo\n", "liveblocks-main/starter-kits/other/index.ts": "x"}
    for relative, content in STARTER_KIT_FILES.items():
        entries[f"liveblocks-main/starter-kits/nextjs-starter-kit/{relative}"] = content
    return build_archive(entries)


@pytest.fixture()
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Starter Kit")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "starter@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Starter Kit")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "starter@example.com")


@pytest.fixture()
def nextauth_source() -> str:
    return NEXTAUTH_SOURCE


@pytest.fixture()
def starter_kit():
    return write_starter_kit


@pytest.fixture()
def archive_builder():
    return build_archive
