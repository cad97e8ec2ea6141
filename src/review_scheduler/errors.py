"""Scheduler exceptions.

入力が不変条件を満たさない場合に送出する例外群。I/O を行わないため
リトライ可能なエラーは存在しない。
"""

from __future__ import annotations


class SchedulerError(Exception):
    """Base class for scheduler failures."""


class InvalidStateError(SchedulerError, ValueError):
    """Prior review state violates an invariant (e.g. negative repetitions)."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field}={value!r}: {reason}")


class InvalidQualityError(SchedulerError, ValueError):
    """Quality score outside the SM-2 0-5 scale."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"quality must be an integer between 0 and 5, got {value!r}")
