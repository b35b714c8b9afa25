from __future__ import annotations

import pytest

from create_liveblocks_app.prompts import (
    ABORTED,
    PromptCancelled,
    Question,
    SetupAnswers,
    SetupFlags,
    collect_answers,
    resolve,
)


class ScriptedAsk:
    """Answers questions from a dict and records what was asked."""

    def __init__(self, replies: dict):
        self.replies = replies
        self.asked: list[Question] = []

    def __call__(self, question: Question):
        self.asked.append(question)
        return self.replies[question.name]


def _never_ask(question: Question):
    raise AssertionError(f"unexpected prompt: {question.name}")


def test_fully_specified_flags_issue_no_prompts():
    flags = SetupFlags(
        name="demo",
        auth="demo",
        vercel=False,
        liveblocks_secret=False,
        git=True,
        install=False,
    )

    answers = collect_answers(flags, _never_ask)

    assert answers == SetupAnswers(
        name="demo",
        auth="demo",
        vercel=False,
        liveblocks_secret=False,
        git=True,
        install=False,
        open_browser=False,
    )


def test_vercel_skips_secret_and_git_questions():
    ask = ScriptedAsk({"install": True, "open_browser": True})
    flags = SetupFlags(name="app", auth="github", vercel=True)

    answers = collect_answers(flags, ask)

    assert [q.name for q in ask.asked] == ["install", "open_browser"]
    assert answers.vercel is True
    assert answers.liveblocks_secret is False
    assert answers.git is False


def test_vercel_keeps_explicit_secret_and_git_flags():
    flags = SetupFlags(
        name="app", auth="demo", vercel=True, liveblocks_secret=True, git=True, install=False, open_browser=True
    )

    answers = collect_answers(flags, _never_ask)

    assert answers == SetupAnswers(
        name="app",
        auth="demo",
        vercel=True,
        liveblocks_secret=True,
        git=True,
        install=False,
        open_browser=True,
    )


def test_vercel_with_only_git_flag_skips_the_secret_question():
    flags = SetupFlags(name="a", auth="demo", vercel=True, git=True, install=False, open_browser=True)

    answers = collect_answers(flags, _never_ask)

    assert answers.git is True
    assert answers.liveblocks_secret is False


def test_questions_follow_table_order_when_nothing_is_given():
    ask = ScriptedAsk({
        "name": "my-app",
        "auth": "auth0",
        "vercel": False,
        "liveblocks_secret": True,
        "git": False,
        "install": True,
        "open_browser": True,
    })

    answers = collect_answers(SetupFlags(package_manager="pnpm"), ask)

    assert [q.name for q in ask.asked] == [
        "name", "auth", "vercel", "liveblocks_secret", "git", "install", "open_browser",
    ]
    assert ask.asked[5].message == "Would you like to install with pnpm?"
    assert answers.name == "my-app"
    assert answers.auth == "auth0"


def test_browser_question_only_when_an_integration_is_chosen():
    ask = ScriptedAsk({"liveblocks_secret": False})
    flags = SetupFlags(name="app", auth="demo", vercel=False, git=False, install=False)

    answers = collect_answers(flags, ask)

    assert [q.name for q in ask.asked] == ["liveblocks_secret"]
    assert answers.open_browser is False


def test_unknown_auth_flag_is_asked_again():
    ask = ScriptedAsk({"auth": "github"})
    flags = SetupFlags(name="app", auth="okta", vercel=False, liveblocks_secret=False, git=False, install=False)

    answers = collect_answers(flags, ask)

    assert [q.name for q in ask.asked] == ["auth"]
    assert ask.asked[0].choices.keys() == {"demo", "github", "auth0"}
    assert answers.auth == "github"


def test_cancellation_returns_aborted():
    calls = []

    def cancel(question: Question):
        calls.append(question.name)
        raise PromptCancelled(question.message)

    result = collect_answers(SetupFlags(name="app"), cancel)

    assert result is ABORTED
    assert not result
    assert calls == ["auth"]


def test_resolve_is_pure_and_stops_at_next_question():
    flags = SetupFlags(name="app", auth="demo")
    answers = {"name": "app"}

    known, question = resolve(flags, answers)

    assert answers == {"name": "app"}
    assert known == {"name": "app", "auth": "demo"}
    assert question is not None and question.name == "vercel"


@pytest.mark.parametrize(
    ("vercel", "secret", "needs_browser"),
    [(True, False, True), (False, True, True), (False, False, False)],
)
def test_needs_browser(vercel, secret, needs_browser):
    answers = SetupAnswers("a", "demo", vercel, secret, False, False, True)
    assert answers.needs_browser is needs_browser
