from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from app.common.cancellation import CancellationToken
from app.db.record_store import RecordStore, StoreError, StoreUnavailableError
from app.features.records import Student, Submission
from app.features.students.repository import StudentRepository
from .repository import ProgressRepository
from .schemas import ClassProgress, ProgressBatch, ProgressCounts, ProgressRow

logger = logging.getLogger("progress.service")

ERROR_UNAVAILABLE = "store_unavailable"
ERROR_QUERY_FAILED = "query_failed"


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def select_submission(submissions: Sequence[Submission]) -> Optional[Submission]:
    """Pick the submission that stands for an (assignment, student) pair.

    The most recent by timestamp wins; on equal timestamps, or when no
    submission carries one, the first returned by the store is kept.
    """
    chosen: Optional[Submission] = None
    for submission in submissions:
        if chosen is None:
            chosen = submission
            continue
        current, candidate = chosen.timestamp, submission.timestamp
        if candidate is None:
            continue
        if current is None or _utc(candidate) > _utc(current):
            chosen = submission
    return chosen


class ProgressService:
    def __init__(self, store: Optional[RecordStore] = None):
        self.repo = ProgressRepository(store)
        self.students = StudentRepository(store)
        self.log = logger

    async def _count(self, student_id: str, class_id: str) -> ProgressCounts:
        assignments = await self.repo.list_active_assignments(class_id)
        completed = 0
        # Sequential within one student; concurrency happens across students
        for assignment in assignments:
            submissions = await self.repo.list_submissions(assignment.id, student_id)
            submission = select_submission(submissions)
            if submission is not None and submission.counts_as_completed:
                completed += 1
        return ProgressCounts(total=len(assignments), completed=completed)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def compute_progress_row(self, student_id: str, class_id: Optional[str]) -> ProgressRow:
        if not class_id:
            return ProgressRow(student_id=student_id)
        try:
            counts = await self._count(student_id, class_id)
        except StoreUnavailableError as exc:
            self.log.warning("progress_store_unavailable student=%s class=%s error=%s", student_id, class_id, exc)
            return ProgressRow(student_id=student_id, error=ERROR_UNAVAILABLE)
        except StoreError as exc:
            self.log.warning("progress_query_failed student=%s class=%s error=%s", student_id, class_id, exc)
            return ProgressRow(student_id=student_id, error=ERROR_QUERY_FAILED)
        except Exception:
            self.log.exception("progress_failed student=%s class=%s", student_id, class_id)
            return ProgressRow(student_id=student_id, error=ERROR_QUERY_FAILED)
        return ProgressRow(student_id=student_id, total=counts.total, completed=counts.completed)

    async def compute_progress(self, student_id: str, class_id: Optional[str]) -> ProgressCounts:
        """Completion counts for one student in one class; ``{0, 0}`` on any failure."""
        row = await self.compute_progress_row(student_id, class_id)
        return ProgressCounts(total=row.total, completed=row.completed)

    async def compute_progress_batch(
        self,
        students: Sequence[Student],
        token: Optional[CancellationToken] = None,
    ) -> Optional[ProgressBatch]:
        """Progress for every student at once, each against their own class.

        Returns ``None`` when ``token`` was cancelled while the batch ran.
        Raises ``StoreUnavailableError`` when no row could reach the store.
        """
        rows = await asyncio.gather(*(self.compute_progress_row(s.id, s.class_id) for s in students))
        if token is not None and token.cancelled:
            self.log.info("progress_batch_discarded students=%d reason=%s", len(rows), token.reason)
            return None
        if rows and all(row.error == ERROR_UNAVAILABLE for row in rows):
            raise StoreUnavailableError("record store is unreachable")
        batch = ProgressBatch(rows={row.student_id: row for row in rows})
        if batch.failed:
            self.log.warning("progress_batch_partial failed=%d total=%d", len(batch.failed), len(rows))
        return batch

    async def load_roster(self, class_id: str) -> List[Student]:
        try:
            return await self.students.list_by_class(class_id)
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self.log.warning("roster_query_failed class=%s error=%s", class_id, exc)
            return []

    async def compute_class_progress(
        self,
        class_id: str,
        token: Optional[CancellationToken] = None,
    ) -> Optional[ClassProgress]:
        students = await self.load_roster(class_id)
        # Roster rows without a class reference belong to the class they were listed under
        students = [s.model_copy(update={"class_id": s.class_id or class_id}) for s in students]
        batch = await self.compute_progress_batch(students, token)
        if batch is None:
            return None
        return ClassProgress(class_id=class_id, students=students, batch=batch)


T = TypeVar("T")
Loader = Callable[[str, CancellationToken], Awaitable[Optional[T]]]


class ClassProgressTracker(Generic[T]):
    """Latest-selection-wins loader for one consuming view.

    Selecting another class cancels the batch still running for the previous
    one, so only results for the current selection are ever committed.
    """

    def __init__(self, loader: Optional[Loader] = None) -> None:
        self._loader = loader or progress_service.compute_class_progress
        self._token: Optional[CancellationToken] = None
        self.class_id: Optional[str] = None
        self.current: Optional[T] = None

    async def load(self, class_id: str) -> Optional[T]:
        if self._token is not None:
            self._token.cancel("selection_changed")
        token = CancellationToken()
        self._token = token
        try:
            result = await self._loader(class_id, token)
        except Exception as exc:
            # A superseded load is discarded whether it returned or failed
            if token.cancelled:
                logger.info("progress_load_discarded class=%s reason=%s error=%s", class_id, token.reason, exc)
                return None
            raise
        if result is None or token.cancelled:
            return None
        self.class_id = class_id
        self.current = result
        return result

    def close(self) -> None:
        if self._token is not None:
            self._token.cancel("closed")


progress_service = ProgressService()
