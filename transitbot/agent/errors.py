"""Categorized failure log for turn processing, with health metrics."""

import json
import time
from collections import Counter, deque
from collections.abc import Callable
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

# Window used for the "last hour" count in health metrics
RATE_WINDOW_S = 3600


class ErrorCategory(Enum):
    """Where in a turn a failure happened."""

    INPUT_REJECTED = "input_rejected"  # Guardrail refusal, not a fault
    LLM_TIMEOUT = "llm_timeout"
    LLM_API_ERROR = "llm_api_error"
    LLM_FOLLOWUP_ERROR = "llm_followup_error"  # Phrasing a tool result failed
    TOOL_FAULT = "tool_fault"
    UNKNOWN = "unknown"


@dataclass
class TurnFailure:
    """One logged failure; serialized as a JSON line when a log file is set."""

    timestamp: float
    category: str
    message: str
    exception_type: str | None = None
    tool_name: str | None = None
    context: dict[str, Any] | None = None
    severity: str = "error"


class ErrorLogger:
    """
    Records failures that were turned into user-facing replies.

    Every failure goes to loguru at its severity and into in-memory counters
    that back ``/health``. With a ``log_path`` a dedicated loguru sink also
    writes each failure as one JSON line; the sink is enqueued so the write
    happens off the event loop. Call ``close()`` to flush it. Nothing here
    raises for the caller.
    """

    def __init__(
        self,
        log_path: Path | None = None,
        clock: Callable[[], float] = time.time,
        keep_recent: int = 50,
    ):
        self._sink_key = f"turn-failures-{id(self)}"
        self._sink_id: int | None = None
        if log_path:
            self._sink_id = logger.add(
                log_path,
                format="{extra[failure_json]}",
                filter=lambda record: record["extra"].get("sink") == self._sink_key,
                level="DEBUG",
                enqueue=True,
            )
        self._clock = clock
        self._by_category: Counter[ErrorCategory] = Counter()
        self._recent: deque[TurnFailure] = deque(maxlen=keep_recent)

    def log(
        self,
        category: ErrorCategory,
        message: str,
        tool_name: str | None = None,
        context: dict[str, Any] | None = None,
        severity: str = "error",
        exception_type: str | None = None,
    ) -> TurnFailure:
        """Record a failure and return the stored entry."""
        failure = TurnFailure(
            timestamp=self._clock(),
            category=category.value,
            message=message,
            exception_type=exception_type,
            tool_name=tool_name,
            context=context,
            severity=severity,
        )
        self._by_category[category] += 1
        self._recent.append(failure)

        logger.bind(
            sink=self._sink_key, failure_json=json.dumps(asdict(failure), default=str)
        ).log(severity.upper(), f"[{category.value}] {message}")
        return failure

    def log_exception(
        self,
        category: ErrorCategory,
        exception: BaseException,
        context: dict[str, Any] | None = None,
    ) -> TurnFailure:
        return self.log(
            category,
            str(exception) or type(exception).__name__,
            context=context,
            exception_type=type(exception).__name__,
        )

    def close(self) -> None:
        """Flush and detach the JSONL sink, if any."""
        if self._sink_id is not None:
            logger.remove(self._sink_id)
            self._sink_id = None

    def recent(self, limit: int = 10) -> list[dict[str, Any]]:
        """Newest failures last."""
        return [asdict(f) for f in list(self._recent)[-limit:]]

    def get_metrics(self) -> dict[str, Any]:
        """Counters for health checks."""
        cutoff = self._clock() - RATE_WINDOW_S
        return {
            "total_errors": sum(self._by_category.values()),
            "errors_by_category": {c.value: n for c, n in self._by_category.items()},
            "errors_last_hour": sum(1 for f in self._recent if f.timestamp >= cutoff),
        }

    def reset_metrics(self) -> None:
        self._by_category.clear()
        self._recent.clear()
