"""Enums and typed containers shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class Marketplace(str, Enum):
    """Marketplaces a source product can come from."""

    AMAZON = "amazon"
    WALMART = "walmart"
    TARGET = "target"
    HOMEDEPOT = "homedepot"


class ErrorKind(str, Enum):
    UNSUPPORTED_MARKETPLACE = "unsupported_marketplace"
    NO_CANDIDATES = "no_candidates"
    BELOW_THRESHOLD = "below_threshold"
    EXTRACTION_ERROR = "extraction_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    BUSY = "busy"
    CONTEXT_ERROR = "context_error"


class BelowThresholdPolicy(str, Enum):
    RETURN_ANYWAY = "return_anyway"
    FAIL = "fail"


class ConcurrencyPolicy(str, Enum):
    QUEUE = "queue"
    REJECT = "reject"


class CoordinatorState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_RESULT = "awaiting_result"
    RESOLVED = "resolved"
    CLEANED_UP = "cleaned_up"


class Resolution(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class MessageKind(str, Enum):
    """Message kinds exchanged between the coordinator and a search context."""

    START_MATCH = "START_MATCH"
    MATCH_FOUND = "MATCH_FOUND"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    MATCH_ERROR = "MATCH_ERROR"


RESULT_MESSAGE_KINDS = frozenset(
    {MessageKind.MATCH_FOUND, MessageKind.MATCH_NOT_FOUND, MessageKind.MATCH_ERROR}
)


class ExtractionOutcome(str, Enum):
    """How a page scan ended, independent of which strategy ran."""

    OK = "ok"
    NO_ELEMENTS = "no_elements"
    UNPARSEABLE = "unparseable"


@dataclass
class ContextMessage:
    """One-shot message crossing the context boundary.

    ``context_id`` always names the search context the message belongs to so
    the coordinator can drop anything that did not originate from its own
    context.
    """

    kind: MessageKind
    context_id: str
    request_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_result(self) -> bool:
        return self.kind in RESULT_MESSAGE_KINDS
