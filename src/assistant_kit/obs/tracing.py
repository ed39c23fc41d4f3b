"""Invocation tracing and token accounting."""

from __future__ import annotations

import re
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from assistant_kit.types import ToolTrace

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]", flags=re.UNICODE)


@dataclass(slots=True)
class InvocationRecord:
    trace_id: str
    timestamp_utc: str
    assistant: str
    method: str
    session_id: str | None
    prompt: str
    answer: str
    retrieved_chunk_ids: list[str]
    tool_traces: list[ToolTrace]
    input_tokens: int
    output_tokens: int
    latency_ms: float
    error: str | None = None
    error_category: str | None = None


class TraceStore:
    """In-memory, bounded store of invocation records."""

    def __init__(self, max_records: int = 1000) -> None:
        self._records: OrderedDict[str, InvocationRecord] = OrderedDict()
        self._max_records = max_records

    def create_record(
        self,
        *,
        assistant: str,
        method: str,
        session_id: str | None,
        prompt: str,
        answer: str,
        latency_ms: float,
        retrieved_chunk_ids: list[str] | None = None,
        tool_traces: list[ToolTrace] | None = None,
        error: str | None = None,
        error_category: str | None = None,
    ) -> InvocationRecord:
        record = InvocationRecord(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            assistant=assistant,
            method=method,
            session_id=session_id,
            prompt=prompt,
            answer=answer,
            retrieved_chunk_ids=retrieved_chunk_ids or [],
            tool_traces=tool_traces or [],
            input_tokens=estimate_token_count(prompt),
            output_tokens=estimate_token_count(answer),
            latency_ms=latency_ms,
            error=error,
            error_category=error_category,
        )
        self._records[record.trace_id] = record
        while len(self._records) > self._max_records:
            self._records.popitem(last=False)
        return record

    def get(self, trace_id: str) -> InvocationRecord:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[InvocationRecord]:
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, float | int]:
        """Aggregate invocation metrics for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "failed_requests": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "total_tool_calls": 0,
                "total_input_tokens": 0,
                "total_output_tokens": 0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        return {
            "total_requests": total,
            "failed_requests": sum(1 for record in records if record.error),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "total_tool_calls": sum(len(record.tool_traces) for record in records),
            "total_input_tokens": sum(record.input_tokens for record in records),
            "total_output_tokens": sum(record.output_tokens for record in records),
        }


@dataclass(slots=True)
class Timer:
    """Simple context timer used around invocations."""

    _start: float = 0.0
    elapsed_ms: float = field(default=0.0)

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def estimate_token_count(text: str) -> int:
    return len(_TOKEN_PATTERN.findall(text))
