"""Setup questions and the decision table that decides which ones get asked.

Every question has a resolver ``(flags, answers) -> value | ASK``. Resolvers
are plain functions of what is already known, so the whole table can be
evaluated without touching the terminal. ``collect_answers`` drives the table
with an injected ``ask`` callable.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

from .config import AUTH_PROVIDERS


class PromptCancelled(Exception):
    """Raised by an ``ask`` callable when the user aborts a prompt."""


class Aborted:
    """Result of a setup run the user cancelled part way through."""

    def __repr__(self):
        return "ABORTED"

    def __bool__(self):
        return False


ABORTED = Aborted()

# Resolver return value meaning "this question has to be asked"
ASK = object()


@dataclass(frozen=True)
class SetupFlags:
    name: str | None = None
    auth: str | None = None
    vercel: bool | None = None
    liveblocks_secret: bool | None = None
    git: bool | None = None
    install: bool | None = None
    open_browser: bool | None = None
    package_manager: str = "npm"


@dataclass(frozen=True)
class SetupAnswers:
    name: str
    auth: str
    vercel: bool
    liveblocks_secret: bool
    git: bool
    install: bool
    open_browser: bool

    @property
    def needs_browser(self) -> bool:
        return self.vercel or self.liveblocks_secret


@dataclass(frozen=True)
class Question:
    name: str
    kind: str  # "text", "select" or "confirm"
    message: str
    default: Any = None
    choices: dict = field(default_factory=dict)


def _flag_or_ask(value):
    return ASK if value is None else value


def _resolve_name(flags: SetupFlags, answers: Mapping[str, Any]):
    return flags.name or ASK


def _resolve_auth(flags: SetupFlags, answers: Mapping[str, Any]):
    # Unknown providers are ignored so the user gets to pick a valid one
    if flags.auth and flags.auth in AUTH_PROVIDERS:
        return flags.auth
    return ASK


def _resolve_vercel(flags: SetupFlags, answers: Mapping[str, Any]):
    return _flag_or_ask(flags.vercel)


def _resolve_liveblocks_secret(flags: SetupFlags, answers: Mapping[str, Any]):
    # The Vercel integration fetches the secret key itself, so the question is skipped
    if answers["vercel"]:
        return flags.liveblocks_secret if flags.liveblocks_secret is not None else False
    return _flag_or_ask(flags.liveblocks_secret)


def _resolve_git(flags: SetupFlags, answers: Mapping[str, Any]):
    # Vercel creates the repository, so the question is skipped and an explicit flag still wins
    if answers["vercel"]:
        return flags.git if flags.git is not None else False
    return _flag_or_ask(flags.git)


def _resolve_install(flags: SetupFlags, answers: Mapping[str, Any]):
    return _flag_or_ask(flags.install)


def _resolve_open_browser(flags: SetupFlags, answers: Mapping[str, Any]):
    if not (answers["vercel"] or answers["liveblocks_secret"]):
        return False
    return _flag_or_ask(flags.open_browser)


QUESTION_TABLE: tuple[tuple[Question, Callable[[SetupFlags, Mapping[str, Any]], Any]], ...] = (
    (
        Question("name", "text", "What would you like to name your project directory?"),
        _resolve_name,
    ),
    (
        Question(
            "auth",
            "select",
            "Which authentication method would you like to use in your project?",
            default="demo",
            choices=AUTH_PROVIDERS,
        ),
        _resolve_auth,
    ),
    (
        Question("vercel", "confirm", "Would you like to deploy on Vercel?", default=True),
        _resolve_vercel,
    ),
    (
        Question(
            "liveblocks_secret",
            "confirm",
            "Would you like to get your Liveblocks secret key automatically (recommended)?",
            default=True,
        ),
        _resolve_liveblocks_secret,
    ),
    (
        Question("git", "confirm", "Would you like to initialize a new git repository?", default=True),
        _resolve_git,
    ),
    (
        Question("install", "confirm", "Would you like to install with {package_manager}?", default=True),
        _resolve_install,
    ),
    (
        Question("open_browser", "confirm", "Open browser window to continue set up?", default=True),
        _resolve_open_browser,
    ),
)


def resolve(flags: SetupFlags, answers: Mapping[str, Any]) -> tuple[dict, Question | None]:
    """Fill in every answer that needs no prompt, up to the next question to ask.

    Returns the extended answers and the question to ask next, or ``None`` when
    the answers are complete. The inputs are not modified.
    """
    known = dict(answers)
    for question, resolver in QUESTION_TABLE:
        if question.name in known:
            continue
        value = resolver(flags, known)
        if value is ASK:
            message = question.message.format(package_manager=flags.package_manager)
            return known, replace(question, message=message)
        known[question.name] = value
    return known, None


def collect_answers(flags: SetupFlags, ask: Callable[[Question], Any]) -> SetupAnswers | Aborted:
    """Ask only the questions the flags leave open.

    Returns ``ABORTED`` as soon as ``ask`` raises ``PromptCancelled``.
    """
    known: dict = {}
    while True:
        known, question = resolve(flags, known)
        if question is None:
            return SetupAnswers(**known)
        try:
            value = ask(question)
        except PromptCancelled:
            return ABORTED
        known = {**known, question.name: value}
