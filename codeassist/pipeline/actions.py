"""Action registry: the closed set of operations a client can request.

The only place where prompt templates and response wrappers are defined.
Every ``Action`` member has exactly one ``ActionDefinition``; unknown action
strings resolve to ``Action.DEFAULT`` so the fallback path is explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Action(str, Enum):
    REFACTOR = "refactor"
    DEBUG = "debug"
    COMMENT = "comment"
    GENERATE = "generate"
    DEFAULT = "default"

    @classmethod
    def parse(cls, value: str | Action | None) -> Action:
        """Exact, case-sensitive match on the action name, else DEFAULT."""
        if isinstance(value, Action):
            return value
        for member in cls:
            if member.value == value:
                return member
        return cls.DEFAULT


@dataclass(frozen=True)
class ActionDefinition:
    action: Action
    # str.format template; slots: {code} {language} {description} {locale}
    prompt: str
    # str.format template; slot: {content}
    wrapper: str = "{content}"


DEFAULT_REFACTOR_FOCUS = "performance/readability/robustness"


ACTION_REGISTRY: dict[Action, ActionDefinition] = {
    Action.REFACTOR: ActionDefinition(
        action=Action.REFACTOR,
        prompt=(
            "Analyse the following {language} code for optimisation points, "
            "sort them by priority and give a concrete change for each. "
            "Code: {code}. "
            "Optimisation focus: {description}. "
            "Requirements: 1. Show the code before and after each change "
            "2. Explain the benefit of every optimisation point. "
            "Write all explanations in {locale}."
        ),
        wrapper='<div class="diff-view">{content}</div>',
    ),
    Action.DEBUG: ActionDefinition(
        action=Action.DEBUG,
        prompt=(
            "Diagnose and fix the problem in the following {language} code. "
            "Code: {code}. "
            'Observed symptom: "{description}". '
            "Requirements: 1. Locate the root cause 2. Provide the fixed code "
            "3. Give advice that prevents the problem from recurring. "
            "Write all explanations in {locale}."
        ),
        wrapper='<div class="error-analysis">{content}</div>',
    ),
    Action.COMMENT: ActionDefinition(
        action=Action.COMMENT,
        prompt=(
            "Add comments to the following {language} code. "
            "Code: {code}. "
            "Requirements: 1. Function-level documentation comments "
            "2. Inline comments on key logic lines "
            "3. Explain complex algorithms using {locale} terminology."
        ),
        wrapper='<div class="comment-block">{content}</div>',
    ),
    Action.GENERATE: ActionDefinition(
        action=Action.GENERATE,
        prompt=(
            "You are a senior {language} developer. Generate code strictly "
            'according to this requirement: "{code}". '
            "Requirements: 1. Follow the latest {language} syntax conventions "
            "2. Add the necessary exception handling "
            "3. Output format: a code block."
        ),
        wrapper="<pre><code>{content}</code></pre>",
    ),
    Action.DEFAULT: ActionDefinition(
        action=Action.DEFAULT,
        prompt=(
            "Process the following request in {locale}, "
            "keeping the code itself unchanged: {code}"
        ),
    ),
}


def resolve_action(value: str | Action | None) -> ActionDefinition:
    """Look up the definition for an action name (unknown names -> DEFAULT)."""
    return ACTION_REGISTRY[Action.parse(value)]
