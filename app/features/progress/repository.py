from __future__ import annotations

from typing import List, Optional

from app.core.config import get_settings
from app.db.record_store import RecordStore, record_store
from app.features.records import Assignment, Submission, parse_records


class ProgressRepository:
    """Assignment and submission lookups used to compute completion."""

    def __init__(self, store: Optional[RecordStore] = None) -> None:
        self.store = store or record_store

    async def list_active_assignments(self, class_id: str) -> List[Assignment]:
        settings = get_settings()
        rows = await self.store.query(
            settings.assignments_table,
            [("classId", class_id), ("status", "active")],
        )
        # The filter already asks for active rows; re-check in case the store ignores it
        return [a for a in parse_records(Assignment, rows, "assignment") if a.is_active]

    async def list_submissions(self, assignment_id: str, student_id: str) -> List[Submission]:
        settings = get_settings()
        rows = await self.store.query(
            settings.submissions_table,
            [("assignmentId", assignment_id), ("studentId", student_id)],
        )
        return parse_records(Submission, rows, "submission")
