from __future__ import annotations

from typing import List, Optional

from app.core.config import get_settings
from app.db.record_store import RecordStore, record_store
from app.features.records import Student, parse_records


class StudentRepository:
    """Roster reads. Students are maintained elsewhere; this side only looks them up."""

    def __init__(self, store: Optional[RecordStore] = None) -> None:
        self.store = store or record_store

    @property
    def _table(self) -> str:
        return get_settings().students_table

    async def list_by_class(self, class_id: str) -> List[Student]:
        rows = await self.store.query(self._table, [("classId", class_id)])
        return parse_records(Student, rows, "student")

    async def list_by_parent(self, parent_id: str) -> List[Student]:
        rows = await self.store.query(self._table, [("parentId", parent_id)])
        return parse_records(Student, rows, "student")

    async def get(self, student_id: str) -> Optional[Student]:
        rows = await self.store.query(self._table, [("id", student_id)])
        students = parse_records(Student, rows, "student")
        return students[0] if students else None
