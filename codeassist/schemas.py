"""Request/response models: the contract between the server and its clients."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class ProcessRequest(BaseModel):
    """Body of POST /api/process.

    Every field is optional on the wire; the action falls back to the
    default template when absent or unrecognised. Numbers are accepted and
    used as their string form.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    code: str = ""
    action: str = ""
    username: str = ""
    language: str = ""
    description: str | None = None


class Credentials(BaseModel):
    """Body of POST /api/register and POST /api/login."""

    username: str
    password: str


class HistoryEntry(BaseModel):
    """One processed request, as returned by GET /api/history."""

    code: str
    action: str
    timestamp: datetime = Field(default_factory=_utcnow)


class UserAccount(BaseModel):
    """A stored account. ``password`` holds the bcrypt hash, never plaintext."""

    username: str
    password: str
