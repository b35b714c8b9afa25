"""Browser-based integrations that hand secrets back through the callback server."""

import base64
import json
import webbrowser
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urlencode

from .callback_server import wait_for_callback
from .config import LIVEBLOCKS_SECRET_KEY, NEXTAUTH_SECRET, Settings
from .repository import parse_repo_directory


@dataclass(frozen=True)
class EnvRequest:
    name: str
    type: str = "secret"


@dataclass(frozen=True)
class EnvValue:
    name: str
    value: str


@dataclass(frozen=True)
class IntegrationPayload:
    env: list[EnvRequest]
    callback_urls: list[str]
    env_ready: list[EnvValue] | None = None

    def to_dict(self) -> dict:
        data = {"env": [{"name": e.name, "type": e.type} for e in self.env]}
        if self.env_ready is not None:
            data["envReady"] = [{"name": e.name, "value": e.value} for e in self.env_ready]
        data["callbackUrls"] = list(self.callback_urls)
        return data


@dataclass(frozen=True)
class RepoDescriptor:
    type: str
    location: str

    @property
    def url(self) -> str:
        return f"https://{self.type}.com/{self.location}"


@dataclass(frozen=True)
class IntegrationResult:
    env: dict = field(default_factory=dict)
    repo: RepoDescriptor | None = None

    @classmethod
    def from_callback(cls, data: dict) -> "IntegrationResult":
        env = data.get("env")
        repo = data.get("repo")
        descriptor = None
        if isinstance(repo, dict) and repo.get("type") and repo.get("location"):
            descriptor = RepoDescriptor(str(repo["type"]), str(repo["location"]))
        return cls(env=dict(env) if isinstance(env, dict) else {}, repo=descriptor)

    def secret(self, key: str) -> str:
        """Return the named value, or an empty string when it was not sent back."""
        value = self.env.get(key)
        return str(value) if value else ""


def encode_payload(payload: IntegrationPayload) -> str:
    """Compact JSON, base64url encoded without padding."""
    raw = json.dumps(payload.to_dict(), separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_payload(encoded: str) -> dict:
    padded = encoded + "=" * (-len(encoded) % 4)
    return json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))


def vercel_deploy_url(settings: Settings, encoded: str, name: str) -> str:
    template = parse_repo_directory(settings.template_repo)
    params = {
        "repository-url": template.tree_url,
        "project-name": name,
        "repository-name": name,
    }
    if settings.vercel_integration_id:
        params["integration-ids"] = settings.vercel_integration_id
    params["external-id"] = encoded
    return f"{settings.vercel_deploy_url}?{urlencode(params)}"


def general_integration_url(settings: Settings, encoded: str) -> str:
    return f"{settings.integration_url}?{urlencode({'data': encoded})}"


def launch_vercel_integration(
    name: str,
    session_secret: str,
    settings: Settings,
    *,
    opener: Callable[[str], object] = webbrowser.open,
    wait: Callable = wait_for_callback,
    timeout: float | None = None,
) -> IntegrationResult:
    """Deploy the starter kit on Vercel and collect the Liveblocks secret it creates.

    The result may also name the repository Vercel created for the project.
    """
    def initiate(origin: str) -> None:
        payload = IntegrationPayload(
            env=[EnvRequest(LIVEBLOCKS_SECRET_KEY, "secret")],
            env_ready=[EnvValue(NEXTAUTH_SECRET, session_secret)],
            callback_urls=[origin],
        )
        opener(vercel_deploy_url(settings, encode_payload(payload), name))

    return IntegrationResult.from_callback(wait(initiate, timeout=timeout))


def launch_general_integration(
    settings: Settings,
    *,
    opener: Callable[[str], object] = webbrowser.open,
    wait: Callable = wait_for_callback,
    timeout: float | None = None,
) -> IntegrationResult:
    """Let the user import a Liveblocks secret key from the dashboard."""
    def initiate(origin: str) -> None:
        payload = IntegrationPayload(
            env=[EnvRequest(LIVEBLOCKS_SECRET_KEY, "secret")],
            callback_urls=[origin],
        )
        opener(general_integration_url(settings, encode_payload(payload)))

    return IntegrationResult.from_callback(wait(initiate, timeout=timeout))
