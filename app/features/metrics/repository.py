from __future__ import annotations

from typing import List, Optional

from app.core.config import get_settings
from app.db.record_store import RecordStore, record_store
from app.features.records import StudyTimeEntry, Submission, parse_records


class MetricsRepository:
    def __init__(self, store: Optional[RecordStore] = None) -> None:
        self.store = store or record_store

    async def list_class_submissions(self, class_id: str) -> List[Submission]:
        rows = await self.store.query(get_settings().submissions_table, [("classId", class_id)])
        return parse_records(Submission, rows, "submission")

    async def list_student_submissions(self, student_id: str) -> List[Submission]:
        rows = await self.store.query(get_settings().submissions_table, [("studentId", student_id)])
        return parse_records(Submission, rows, "submission")

    async def list_study_time(self, student_id: str) -> List[StudyTimeEntry]:
        rows = await self.store.query(get_settings().study_time_table, [("studentId", student_id)])
        return parse_records(StudyTimeEntry, rows, "study_time")
