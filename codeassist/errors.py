"""Error taxonomy shared by the pipeline, the stores and the HTTP routes.

Routes catch these at the boundary and answer with fixed, generic payloads;
the detail only ever reaches the server log.
"""

from __future__ import annotations


class CodeAssistError(Exception):
    """Base class for every error raised on purpose by codeassist."""


class UpstreamError(CodeAssistError):
    """The model API could not be reached, timed out, or answered non-2xx."""


class ValidationError(CodeAssistError):
    """The caller supplied data the service refuses to act on."""


class DuplicateUsernameError(ValidationError):
    def __init__(self, username: str):
        super().__init__(f"Username '{username}' already exists")
        self.username = username


class InvalidCredentialsError(ValidationError):
    """Unknown username or wrong password. Callers never learn which."""


class PersistenceError(CodeAssistError):
    """The document store is unreachable or rejected a read/write."""


class InternalError(CodeAssistError):
    """Anything unclassified raised while processing a request."""
