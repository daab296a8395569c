"""Response formatter: wraps the model's answer in an action-specific fragment."""

from __future__ import annotations

from codeassist.pipeline.actions import Action, resolve_action


def format_response(action: str | Action | None, final_content: str) -> str:
    """Wrap ``final_content`` for display; unmapped actions return it unchanged."""
    return resolve_action(action).wrapper.format(content=final_content)
