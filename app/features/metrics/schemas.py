from __future__ import annotations
from datetime import date
from pydantic import BaseModel, computed_field


# ------------------- Subjects -------------------
class SubjectPerf(BaseModel):
    subject: str
    child_avg: int = 0
    class_avg: int = 0

    @computed_field
    @property
    def delta(self) -> int:
        return self.child_avg - self.class_avg


class ClassRankingRow(BaseModel):
    subject: str
    student_id: str
    student_name: str
    avg_score: float
    rank: int


# ------------------- Student trends -------------------
class MonthlyScore(BaseModel):
    month: str
    avg_score: int


class SubmissionStats(BaseModel):
    submitted: int = 0
    missed: int = 0


class WeeklyEngagement(BaseModel):
    minutes: float
    recommended_minutes: int
    week_start: date
