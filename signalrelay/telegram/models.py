"""Telegram update models: the subset of the webhook envelope we use."""

from dataclasses import dataclass
from typing import Optional


def _section(payload: dict, key: str) -> dict:
    """Return a nested object, treating anything that is not one as absent."""
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _string(payload: dict, key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


def _integer(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


@dataclass(frozen=True)
class CallbackQuery:
    """A button press: the action token plus where the button lives."""

    id: str
    data: str
    chat_id: int
    message_id: int
    from_id: int = 0


@dataclass(frozen=True)
class Update:
    """One webhook update; at most one of the two parts is set."""

    update_id: int
    callback_query: Optional[CallbackQuery] = None
    message_text: Optional[str] = None

    @classmethod
    def from_payload(cls, payload) -> "Update":
        """Build an ``Update`` from the decoded webhook body.

        Unknown, partial or mistyped sections are tolerated: a nested part
        that is not an object counts as absent, and a non-string ``data`` or
        ``text`` reads as empty.

        Raises:
            ValueError: If *payload* is not a JSON object.
        """
        if not isinstance(payload, dict):
            raise ValueError("update body must be a JSON object")

        callback = None
        cq = payload.get("callback_query")
        if isinstance(cq, dict):
            message = _section(cq, "message")
            callback = CallbackQuery(
                id=str(cq.get("id", "")),
                data=_string(cq, "data"),
                chat_id=_integer(_section(message, "chat"), "id"),
                message_id=_integer(message, "message_id"),
                from_id=_integer(_section(cq, "from"), "id"),
            )

        text = None
        message = payload.get("message")
        if isinstance(message, dict):
            text = _string(message, "text")

        return cls(
            update_id=_integer(payload, "update_id"),
            callback_query=callback,
            message_text=text,
        )
