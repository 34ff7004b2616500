from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from app.common.cancellation import CancellationToken
from app.common.utils import percentage
from app.db.record_store import RecordStore, StoreError, StoreUnavailableError
from app.features.progress.repository import ProgressRepository
from app.features.progress.schemas import ClassProgress, ProgressRow
from app.features.progress.service import ProgressService, progress_service
from app.features.records import Student
from app.features.students.repository import StudentRepository
from .schemas import ClassGarden, ClassSummary, GardenCard, ParentGarden
from .stages import classify
from .statistics import summarize_class

logger = logging.getLogger("garden.service")


def _card(student: Student, row: ProgressRow, own_child: bool = False) -> GardenCard:
    return GardenCard(
        student_id=student.id,
        name=student.name,
        completion_rate=row.percentage,
        stage=classify(row.percentage),
        total_assignments=row.total,
        completed_assignments=row.completed,
        error=row.error,
        is_own_child=own_child,
    )


class GardenService:
    """Teacher and parent garden views built on top of the progress aggregator."""

    def __init__(self, store: Optional[RecordStore] = None, progress: Optional[ProgressService] = None):
        if progress is None:
            progress = ProgressService(store) if store is not None else progress_service
        self.progress = progress
        self.students = StudentRepository(store)
        self.assignments = ProgressRepository(store)
        self.log = logger

    async def _count_active_assignments(self, class_id: str, progress: ClassProgress) -> int:
        try:
            return len(await self.assignments.list_active_assignments(class_id))
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self.log.warning("assignment_count_failed class=%s error=%s", class_id, exc)
            return max((row.total for row in progress.rows), default=0)

    def _summarise(self, progress: ClassProgress, total_assignments: int) -> ClassSummary:
        rows = progress.rows
        stats = summarize_class(rows)
        completed = sum(row.completed for row in rows)
        return ClassSummary(
            class_id=progress.class_id,
            total_students=len(rows),
            total_assignments=total_assignments,
            completed_assignments=completed,
            average_completion_rate=percentage(completed, len(rows) * total_assignments),
            average_growth=stats.average_growth,
            blooming_count=stats.blooming_count,
            performance_distribution=stats.distribution,
        )

    async def get_class_garden(
        self, class_id: str, token: Optional[CancellationToken] = None
    ) -> Optional[ClassGarden]:
        progress = await self.progress.compute_class_progress(class_id, token)
        if progress is None:
            return None
        rows = progress.rows
        return ClassGarden(
            class_id=class_id,
            statistics=summarize_class(rows),
            students=[_card(student, row) for student, row in zip(progress.students, rows)],
        )

    async def get_class_summary(
        self, class_id: str, token: Optional[CancellationToken] = None
    ) -> Optional[ClassSummary]:
        progress = await self.progress.compute_class_progress(class_id, token)
        if progress is None:
            return None
        total_assignments = await self._count_active_assignments(class_id, progress)
        return self._summarise(progress, total_assignments)

    async def _summary_or_none(self, class_id: str) -> Optional[ClassSummary]:
        try:
            return await self.get_class_summary(class_id)
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self.log.warning("class_summary_failed class=%s error=%s", class_id, exc)
            return None

    async def get_parent_garden(self, parent_id: str) -> ParentGarden:
        try:
            children = await self.students.list_by_parent(parent_id)
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self.log.warning("children_query_failed parent=%s error=%s", parent_id, exc)
            children = []
        if not children:
            return ParentGarden(parent_id=parent_id, class_summaries=[], children=[])

        batch = await self.progress.compute_progress_batch(children)
        rows = batch.ordered(children) if batch is not None else [ProgressRow(student_id=c.id) for c in children]
        cards = [_card(child, row, own_child=True) for child, row in zip(children, rows)]

        class_ids: List[str] = []
        for child in children:
            if child.class_id and child.class_id not in class_ids:
                class_ids.append(child.class_id)
        summaries = await asyncio.gather(*(self._summary_or_none(cid) for cid in class_ids))
        return ParentGarden(
            parent_id=parent_id,
            class_summaries=[s for s in summaries if s is not None],
            children=cards,
        )


garden_service = GardenService()
