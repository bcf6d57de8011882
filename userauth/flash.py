"""One-shot notices carried across a redirect in the client session."""

from __future__ import annotations

from typing import Dict, List, MutableMapping


SESSION_KEY = "flash_messages"


class Notices:
    """Per-request accumulator for flash messages.

    Messages added during one request are stored in the signed session and
    handed to the next render, which consumes them.
    """

    def __init__(self, session: MutableMapping[str, object]) -> None:
        self._session = session

    def add(self, message: str, *, category: str = "info") -> None:
        messages = self._session.get(SESSION_KEY)
        if not isinstance(messages, list):
            messages = []
        messages.append({"message": message, "category": category})
        self._session[SESSION_KEY] = messages

    def success(self, message: str) -> None:
        self.add(message, category="success")

    def error(self, message: str) -> None:
        self.add(message, category="error")

    def consume(self) -> List[Dict[str, str]]:
        messages = self._session.pop(SESSION_KEY, [])
        if isinstance(messages, list):
            return messages
        return []


def messages_in(messages: List[Dict[str, str]], category: str) -> List[str]:
    return [item["message"] for item in messages if item.get("category") == category]


__all__ = ["Notices", "SESSION_KEY", "messages_in"]
