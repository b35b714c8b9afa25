"""Text patches applied to the cloned starter kit and the queue that writes them."""

import base64
import json
import re
import secrets
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from .config import LIVEBLOCKS_SECRET_KEY, NEXTAUTH_SECRET

# Content of a `providers: [...]` array. Only holds while the array nests
# brackets at most three levels deep.
FIND_PROVIDERS = re.compile(
    r"providers:\s*\[(?:[^\[\]]|\[(?:[^\[\]]|\[(?:[^\[\]]|\[[^\[\]]*\])*\])*\])*\]"
)

# The CredentialsProvider import, as long as it sits on a single line
FIND_IMPORT = re.compile(r"^import\s+CredentialsProvider[\w\W]+?$", re.MULTILINE)

# Characters an unquoted dotenv value cannot carry verbatim
NEEDS_QUOTING = re.compile(r"[\s#'\"]")

GITHUB_AUTH_PROVIDER = """
    GithubProvider({
      clientId: process.env.GITHUB_CLIENT_ID as string,
      clientSecret: process.env.GITHUB_CLIENT_SECRET as string,
    }),
"""

AUTH0_AUTH_PROVIDER = """
    Auth0Provider({
      clientId: process.env.AUTH0_CLIENT_ID as string,
      clientSecret: process.env.AUTH0_CLIENT_SECRET as string,
      issuer: process.env.AUTH0_ISSUER_BASE_URL,
    }),
"""

AUTH_PROVIDER_CODE = {
    "demo": "",
    "github": GITHUB_AUTH_PROVIDER,
    "auth0": AUTH0_AUTH_PROVIDER,
}

AUTH_PROVIDER_IMPORTS = {
    "demo": 'import CredentialsProvider from "next-auth/providers/credentials";',
    "github": 'import GithubProvider from "next-auth/providers/github";',
    "auth0": 'import Auth0Provider from "next-auth/providers/auth0";',
}

AUTH_ENV_VARIABLES = {
    "demo": [],
    "github": ["GITHUB_CLIENT_ID", "GITHUB_CLIENT_SECRET"],
    "auth0": ["AUTH0_CLIENT_ID", "AUTH0_CLIENT_SECRET", "AUTH0_ISSUER_BASE_URL"],
}


@dataclass(frozen=True)
class PendingWrite:
    location: Path
    content: str


def generate_session_secret() -> str:
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def get_auth_provider(auth: str) -> str:
    return AUTH_PROVIDER_CODE.get(auth, "")


def get_auth_provider_import(auth: str) -> str:
    return AUTH_PROVIDER_IMPORTS.get(auth, "")


def add_auth_provider_setup(auth: str, source: str) -> str:
    """Swap the providers array and the CredentialsProvider import for ``auth``.

    Unknown providers produce empty substitutions.
    """
    provider_block = "providers: [" + get_auth_provider(auth) + "  ]"
    content = FIND_PROVIDERS.sub(lambda _: provider_block, source, count=1)
    provider_import = get_auth_provider_import(auth)
    return FIND_IMPORT.sub(lambda _: provider_import, content, count=1)


def auth_env_variables(auth: str) -> list[tuple[str, str]]:
    return [(key, "") for key in AUTH_ENV_VARIABLES.get(auth, [])]


def build_env_variables(
    auth: str,
    session_secret: str,
    *,
    liveblocks_secret_key: str | None = None,
) -> list[tuple[str, str]]:
    """Ordered env entries for ``.env.local``.

    ``LIVEBLOCKS_SECRET_KEY`` is only listed when an integration ran, i.e. when
    ``liveblocks_secret_key`` is not None (it may still be empty).
    """
    entries = []
    if liveblocks_secret_key is not None:
        entries.append((LIVEBLOCKS_SECRET_KEY, liveblocks_secret_key))
    entries.extend(auth_env_variables(auth))
    entries.append((NEXTAUTH_SECRET, session_secret))
    return entries


def _env_value(value: str) -> str:
    if not NEEDS_QUOTING.search(value):
        return value
    if value.endswith("\\"):
        # dotenv would read the closing quote as escaped
        raise ValueError(f"Cannot write {value!r} to an env file")
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def render_env_file(entries: list[tuple[str, str]]) -> str:
    """``KEY=VALUE`` lines in entry order.

    Values that dotenv would otherwise trim or cut at an inline comment are
    single-quoted, so ``read_env_file`` gives back exactly what was written.
    """
    return "\n".join(f"{key}={_env_value(value)}" for key, value in entries)


def read_env_file(path: Path) -> dict:
    return {key: value or "" for key, value in dotenv_values(path, interpolate=False).items()}


def missing_env_keys(path: Path) -> list[str]:
    """Keys in the env file that were written without a value."""
    return [key for key, value in read_env_file(path).items() if not value]


def render_manifest(text: str) -> str:
    return json.dumps(json.loads(text), indent=2, ensure_ascii=False)


def flush(queue: list[PendingWrite]) -> None:
    """Replace each queued file whole, in queue order."""
    for write in queue:
        write.location.write_text(write.content, encoding="utf-8")
