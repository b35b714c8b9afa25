"""Constants and environment-driven settings for create-liveblocks-app."""

import os
from dataclasses import dataclass
from typing import Mapping

# Auth providers the starter kit knows how to wire up
AUTH_PROVIDERS = {
    "demo": "Add your own authentication later",
    "github": "Sign in with GitHub (instructions in guide)",
    "auth0": "Sign in with Auth0 (instructions in guide)",
}

PACKAGE_MANAGERS = ("npm", "yarn", "pnpm")

TEMPLATE_REPO_DIRECTORY = "liveblocks/liveblocks/starter-kits/nextjs-starter-kit"
GUIDE_URL = "https://liveblocks.io/docs/guides/nextjs-starter-kit"
LIVEBLOCKS_INTEGRATION_URL = "https://liveblocks.io/integrations/general"
VERCEL_DEPLOY_URL = "https://vercel.com/new/clone"

LIVEBLOCKS_SECRET_KEY = "LIVEBLOCKS_SECRET_KEY"
NEXTAUTH_SECRET = "NEXTAUTH_SECRET"

# Files patched inside the cloned starter kit, relative to the app directory
NEXTAUTH_FILE = ("pages", "api", "auth", "[...nextauth].ts")
ENV_FILE = ".env.local"
MANIFEST_FILE = "package.json"


def github_token_from_env(cli_token: str | None = None, environ: Mapping[str, str] | None = None) -> str | None:
    """Return sanitized GitHub token (cli arg takes precedence) or None."""
    environ = os.environ if environ is None else environ
    return ((cli_token or environ.get("GH_TOKEN") or environ.get("GITHUB_TOKEN") or "").strip()) or None


def github_auth_headers(cli_token: str | None = None, environ: Mapping[str, str] | None = None) -> dict:
    """Return Authorization header dict only when a non-empty token exists."""
    token = github_token_from_env(cli_token, environ)
    return {"Authorization": f"Bearer {token}"} if token else {}


@dataclass(frozen=True)
class Settings:
    template_repo: str = TEMPLATE_REPO_DIRECTORY
    integration_url: str = LIVEBLOCKS_INTEGRATION_URL
    vercel_deploy_url: str = VERCEL_DEPLOY_URL
    vercel_integration_id: str = ""
    guide_url: str = GUIDE_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        return cls(
            template_repo=environ.get("CREATE_LIVEBLOCKS_APP_TEMPLATE_REPO") or TEMPLATE_REPO_DIRECTORY,
            integration_url=environ.get("LIVEBLOCKS_INTEGRATION_URL") or LIVEBLOCKS_INTEGRATION_URL,
            vercel_deploy_url=environ.get("VERCEL_DEPLOY_URL") or VERCEL_DEPLOY_URL,
            vercel_integration_id=(environ.get("VERCEL_INTEGRATION_ID") or "").strip(),
            guide_url=environ.get("CREATE_LIVEBLOCKS_APP_GUIDE_URL") or GUIDE_URL,
        )
