from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def now_iso() -> str:
    """Локальное время с таймзоной, точность до секунд (2026-01-11T18:22:10+01:00)."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


@dataclass
class Stopwatch:
    """
    Назначение:
        Замер длительности команды по monotonic-часам (не зависит от смены
        системного времени).
    """

    started: float = field(default_factory=time.monotonic)

    def elapsed_ms(self) -> int:
        return int(round((time.monotonic() - self.started) * 1000))


__all__ = ["new_run_id", "now_iso", "Stopwatch"]
