from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class RunLogEntry:
    run_id: str
    index: int
    source: str
    status: str
    error_code: str | None
    input_chars: int
    output_chars: int
    warnings: list[str]
    elapsed_ms: float
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RunLogger:
    """Appends one JSON line per converted record."""

    def __init__(self, log_file: Path | None) -> None:
        self._log_file = log_file
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._log_file is not None

    def append(self, entry: RunLogEntry) -> None:
        if self._log_file is None:
            return
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


@dataclass(slots=True)
class BatchSummary:
    timestamp: float = field(default_factory=time.time)
    total: int = 0
    successes: int = 0
    failures: int = 0
    warnings: dict[str, int] = field(default_factory=dict)

    def add_warnings(self, warnings: list[str]) -> None:
        for warning in warnings:
            self.warnings[warning] = self.warnings.get(warning, 0) + 1

    def as_dict(self) -> dict[str, object]:
        return {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.timestamp)),
            "total": self.total,
            "successes": self.successes,
            "failures": self.failures,
            "warnings": dict(self.warnings),
        }


__all__ = ["BatchSummary", "RunLogEntry", "RunLogger"]
