"""Review session coordination around the pure scheduler.

レビュー画面（呼び出し側）とストアの間を取り持つ層。状態の読み出し →
スケジューラ計算 → 完全な新状態の書き込みを (user_id, item_id) ごとに
直列化し、同一カードの同時採点による上書き競合を防ぐ。
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Protocol

from structlog import contextvars as structlog_contextvars

from .logging import logger
from .models.review import ReviewOutcome, ReviewState
from .srs import SpacedRepetitionScheduler, is_due, resolve_now


class ReviewStore(Protocol):
    """Persistence port for per-user, per-item review states."""

    def get(self, user_id: str, item_id: str) -> ReviewState | None: ...

    def put(self, user_id: str, item_id: str, state: ReviewState) -> None: ...

    def list_due(self, user_id: str, now: datetime, limit: int) -> list[tuple[str, ReviewState]]: ...


class InMemoryReviewStore:
    """Process-local ReviewStore. Nothing survives a restart."""

    def __init__(self) -> None:
        self._states: dict[tuple[str, str], ReviewState] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str, item_id: str) -> ReviewState | None:
        with self._lock:
            return self._states.get((user_id, item_id))

    def put(self, user_id: str, item_id: str, state: ReviewState) -> None:
        with self._lock:
            self._states[(user_id, item_id)] = state

    def list_due(self, user_id: str, now: datetime, limit: int) -> list[tuple[str, ReviewState]]:
        """Equivalent of ``WHERE due_date <= now ORDER BY due_date, item_id LIMIT ?``."""
        with self._lock:
            rows = [
                (item_id, state)
                for (owner, item_id), state in self._states.items()
                if owner == user_id and is_due(state.due_date, now)
            ]
        rows.sort(key=lambda row: (row[1].due_date.astimezone(timezone.utc), row[0]))
        return rows[: max(0, limit)]


class ReviewSession:
    """Serialized read-compute-write of review states per (user_id, item_id).

    The per-item lock table grows by one entry for every pair ever touched
    and is never pruned.
    """

    def __init__(self, store: ReviewStore, scheduler: SpacedRepetitionScheduler | None = None) -> None:
        self.store = store
        self.scheduler = scheduler or SpacedRepetitionScheduler()
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str, item_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault((user_id, item_id), threading.Lock())

    def enroll(self, user_id: str, item_id: str, now: datetime | None = None) -> ReviewState:
        """Create a new-card state if none exists; existing states are left untouched."""
        with self._lock_for(user_id, item_id):
            existing = self.store.get(user_id, item_id)
            if existing is not None:
                return existing
            state = self.scheduler.new_state(now)
            self.store.put(user_id, item_id, state)
            logger.info("srs_item_enrolled", user_id=user_id, item_id=item_id)
            return state

    def submit(
        self,
        user_id: str,
        item_id: str,
        outcome: ReviewOutcome,
        now: datetime | None = None,
    ) -> ReviewState:
        """Grade one item and persist the resulting state.

        保存済み状態が無いカードは新規カードとして扱う。
        """
        now = resolve_now(now)
        with self._lock_for(user_id, item_id), structlog_contextvars.bound_contextvars(
            user_id=user_id, item_id=item_id
        ):
            prior = self.store.get(user_id, item_id) or self.scheduler.new_state(now)
            state = self.scheduler.schedule(prior, outcome, now)
            self.store.put(user_id, item_id, state)
            logger.info(
                "srs_review_recorded",
                outcome=outcome.value,
                repetitions=state.repetitions,
                interval_days=state.interval_days,
                ease_factor=round(state.ease_factor, 4),
                due_date=state.due_date.isoformat(),
            )
            return state

    def due_items(
        self,
        user_id: str,
        now: datetime | None = None,
        limit: int = 20,
    ) -> list[tuple[str, ReviewState]]:
        """Items whose due date has passed, oldest first."""
        now = resolve_now(now)
        return [
            (item_id, state)
            for item_id, state in self.store.list_due(user_id, now, limit)
            if is_due(state.due_date, now)
        ]
