"""Prompt builder: turns a requested action into the text sent to the model.

User-supplied ``code`` and ``description`` are substituted verbatim into the
template slots. They are not escaped or sanitised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from codeassist.pipeline.actions import DEFAULT_REFACTOR_FOCUS, Action, resolve_action


@dataclass(frozen=True)
class PromptMessage:
    role: Literal["user", "system"]
    content: str


def build_prompt(
    action: str | Action | None,
    code: str,
    language: str,
    description: str | None = None,
    locale: str = "Chinese",
) -> str:
    """Render the prompt template selected by ``action``.

    Refactor requests without a description get the default optimisation
    focus; every other template receives the description as given.
    """
    definition = resolve_action(action)
    if definition.action is Action.REFACTOR:
        description = description or DEFAULT_REFACTOR_FOCUS
    # Values are not re-parsed by format(), so braces in user code are safe.
    return definition.prompt.format(
        code=code,
        language=language,
        description="" if description is None else description,
        locale=locale,
    )


def build_messages(
    action: str | Action | None,
    code: str,
    language: str,
    description: str | None = None,
    locale: str = "Chinese",
) -> list[PromptMessage]:
    """Wrap the rendered prompt in the single user message the model receives."""
    content = build_prompt(action, code, language, description, locale=locale)
    return [PromptMessage(role="user", content=content)]
