"""Per-stage wall-clock timing for a single pipeline run."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass


@dataclass
class Stage:
    name: str
    start_ms: float
    end_ms: float = 0.0

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms


class StageTimer:
    def __init__(self) -> None:
        self.start_time = time.monotonic()
        self.stages: dict[str, Stage] = {}

    @contextmanager
    def stage(self, name: str) -> Iterator[Stage]:
        """Time a block. The duration is recorded even when the block raises."""
        s = Stage(name=name, start_ms=self.elapsed_ms)
        try:
            yield s
        finally:
            s.end_ms = self.elapsed_ms
            self.stages[name] = s

    def duration_ms(self, name: str) -> float:
        s = self.stages.get(name)
        return s.duration_ms if s else 0.0

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000
