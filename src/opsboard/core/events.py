"""
GitHub webhook events.

Verifies webhook signatures, reduces payloads to the fields the dashboard
shows, and keeps the most recent events in a bounded in-memory buffer that
subscribers can follow.

Example:
    >>> buffer = EventBuffer(max_events=100)
    >>> event = buffer.add("issues", "opened", {"number": 7})
    >>> [e.id for e in buffer.since(0)]
    ['1']
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 100
DEFAULT_RECENT = 20
SIGNATURE_PREFIX = "sha256="


class GitHubEvent(BaseModel):
    """A received webhook event."""

    id: str = Field(..., description="Monotonic event ID (as a string)")
    type: str = Field(..., description="X-GitHub-Event header value")
    action: str = Field(default="", description="Payload action, if any")
    payload: dict[str, Any] = Field(default_factory=dict, description="Summarized payload")
    received_at: str = Field(..., description="When the event arrived (ISO 8601)")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


Subscriber = Callable[[GitHubEvent], None]


def verify_signature(payload: bytes, signature: str | None, secret: str | None) -> bool:
    """
    Verify an ``X-Hub-Signature-256`` header.

    Args:
        payload: Raw request body
        signature: Header value (``sha256=<hex>``), or None if absent
        secret: Webhook secret; an empty secret disables verification

    Returns:
        True if the signature matches (or verification is disabled)
    """
    if not secret:
        return True
    if not signature:
        return False
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    expected = (SIGNATURE_PREFIX + digest).encode()
    # Header values arrive as latin-1 text and may hold any byte
    return hmac.compare_digest(signature.encode("utf-8", "surrogateescape"), expected)


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def _items(obj: Any, key: str) -> list[Any]:
    value = _get(obj, key)
    return value if isinstance(value, list) else []


def summarize_event(event_type: str, body: Any) -> dict[str, Any]:
    """
    Reduce a webhook payload to what the dashboard displays.

    Fields of an unexpected shape come out as None rather than raising.

    Args:
        event_type: X-GitHub-Event header value
        body: Parsed webhook payload

    Returns:
        Summary dict; unknown event types yield ``{"raw": "unsummarized"}``
    """
    if event_type == "issues":
        issue = _get(body, "issue")
        return {
            "number": _get(issue, "number"),
            "title": _get(issue, "title"),
            "state": _get(issue, "state"),
            "user": _get(_get(issue, "user"), "login"),
            "labels": [_get(label, "name") for label in _items(issue, "labels")],
            "url": _get(issue, "html_url"),
        }

    if event_type == "pull_request":
        pr = _get(body, "pull_request")
        return {
            "number": _get(pr, "number"),
            "title": _get(pr, "title"),
            "state": _get(pr, "state"),
            "merged": _get(pr, "merged"),
            "user": _get(_get(pr, "user"), "login"),
            "url": _get(pr, "html_url"),
        }

    if event_type == "push":
        commits = []
        for commit in _items(body, "commits")[:5]:
            message = _get(commit, "message")
            commits.append(
                {
                    "message": message.split("\n")[0] if isinstance(message, str) else "",
                    "author": _get(_get(commit, "author"), "name"),
                }
            )
        return {
            "ref": _get(body, "ref"),
            "commits": commits,
            "pusher": _get(_get(body, "pusher"), "name"),
        }

    if event_type == "projects_v2_item":
        return {"changes": _get(body, "changes"), "projectItem": _get(body, "projects_v2_item")}

    return {"raw": "unsummarized"}


class EventBuffer:
    """
    Bounded buffer of recent webhook events with subscriber fan-out.

    Attributes:
        max_events: Number of events kept; older events are dropped
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        if max_events < 1:
            raise ValueError(f"max_events must be >= 1, got {max_events}")
        self.max_events = max_events
        self._events: deque[GitHubEvent] = deque(maxlen=max_events)
        self._subscribers: list[Subscriber] = []
        self._next_id = 0
        self._lock = threading.Lock()

    @property
    def total_received(self) -> int:
        """Events received since startup, including dropped ones."""
        return self._next_id

    @property
    def buffered(self) -> int:
        """Events currently held in the buffer."""
        return len(self._events)

    def add(self, event_type: str, action: str, payload: dict[str, Any]) -> GitHubEvent:
        """
        Record an event and notify subscribers.

        A subscriber that raises is removed; the others are still notified.

        Returns:
            The stored event with its assigned ID
        """
        with self._lock:
            self._next_id += 1
            event = GitHubEvent(
                id=str(self._next_id),
                type=event_type,
                action=action,
                payload=payload,
                received_at=datetime.now(timezone.utc).isoformat(),
            )
            self._events.append(event)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed, unsubscribing")
                self._unsubscribe(callback)

        return event

    def recent(self, limit: int = DEFAULT_RECENT) -> list[GitHubEvent]:
        """Return the most recent events, oldest first."""
        with self._lock:
            events = list(self._events)
        return events[-limit:] if limit > 0 else []

    def since(self, event_id: int) -> list[GitHubEvent]:
        """Return buffered events with an ID greater than ``event_id``."""
        with self._lock:
            return [e for e in self._events if int(e.id) > event_id]

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for new events.

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self._unsubscribe(callback)

    def _unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)


__all__ = [
    "EventBuffer",
    "GitHubEvent",
    "summarize_event",
    "verify_signature",
]
