from __future__ import annotations
from pydantic import BaseModel, computed_field
from typing import Dict, List, Optional

from app.common.utils import percentage
from app.features.garden.stages import GrowthStage, classify
from app.features.records import Student


class ProgressCounts(BaseModel):
    total: int = 0
    completed: int = 0

    @computed_field
    @property
    def percentage(self) -> int:
        return percentage(self.completed, self.total)


class ProgressRow(ProgressCounts):
    student_id: str
    # None when the row was computed cleanly; otherwise why it fell back to zeros
    error: Optional[str] = None

    @property
    def stage(self) -> GrowthStage:
        return classify(self.percentage)


class ProgressBatch(BaseModel):
    rows: Dict[str, ProgressRow] = {}

    @property
    def failed(self) -> List[str]:
        return [sid for sid, row in self.rows.items() if row.error]

    def ordered(self, students: List[Student]) -> List[ProgressRow]:
        return [self.rows.get(s.id) or ProgressRow(student_id=s.id) for s in students]


class ClassProgress(BaseModel):
    class_id: str
    students: List[Student]
    batch: ProgressBatch

    @property
    def rows(self) -> List[ProgressRow]:
        return self.batch.ordered(self.students)


class StudentProgressOut(BaseModel):
    student_id: str
    class_id: Optional[str] = None
    total: int
    completed: int
    percentage: int
    stage: GrowthStage
