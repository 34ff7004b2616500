from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Awaitable, Dict, List, Optional, Sequence

from app.common.ranking import rank_by_score
from app.common.utils import current_timestamp, round_half_up
from app.core.config import get_settings
from app.db.record_store import RecordStore, StoreError, StoreUnavailableError
from app.features.records import StudyTimeEntry, Submission
from .repository import MetricsRepository
from .schemas import ClassRankingRow, MonthlyScore, SubjectPerf, SubmissionStats, WeeklyEngagement

logger = logging.getLogger("metrics.service")

OTHER_SUBJECT = "Other"
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
SUBMITTED_STATUSES = frozenset({"approved", "submitted", "pending", "needsRevision"})
MISSED_STATUSES = frozenset({"missed"})


@dataclass
class _Tally:
    total: float = 0.0
    count: int = 0

    def add(self, score: float) -> None:
        self.total += score
        self.count += 1

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0

    @property
    def rounded(self) -> int:
        return round_half_up(self.mean) if self.count else 0


@dataclass
class _StudentScores(_Tally):
    name: str = ""


def _subject_of(submission: Submission) -> str:
    return submission.subject or OTHER_SUBJECT


class SubjectMetricsService:
    """Subject averages, subject rankings and per-student score trends."""

    def __init__(self, store: Optional[RecordStore] = None, subjects: Optional[Sequence[str]] = None):
        self.repo = MetricsRepository(store)
        self._subjects = list(subjects) if subjects else None
        self.log = logger

    @property
    def subjects(self) -> List[str]:
        return list(self._subjects or get_settings().metric_subjects)

    def _subject_order(self, seen: Sequence[str]) -> List[str]:
        order = self.subjects
        return order + [s for s in seen if s not in order]

    async def _safe(self, what: str, key: str, fetch: Awaitable[list]) -> list:
        try:
            return await fetch
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self.log.warning("metrics_%s_failed key=%s error=%s", what, key, exc)
            return []

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    async def get_subject_averages_for_student(
        self, student_id: str, class_id: Optional[str] = None
    ) -> List[SubjectPerf]:
        """Child vs class average per subject; unscored records are ignored."""
        if not class_id:
            return [SubjectPerf(subject=s) for s in self.subjects]
        submissions = await self._safe("class_submissions", class_id, self.repo.list_class_submissions(class_id))

        class_tallies: Dict[str, _Tally] = {s: _Tally() for s in self.subjects}
        child_tallies: Dict[str, _Tally] = {s: _Tally() for s in self.subjects}
        for submission in submissions:
            subject = _subject_of(submission)
            class_tally = class_tallies.setdefault(subject, _Tally())
            child_tally = child_tallies.setdefault(subject, _Tally())
            if submission.score is None:
                continue
            class_tally.add(submission.score)
            if submission.student_id == student_id:
                child_tally.add(submission.score)

        return [
            SubjectPerf(
                subject=subject,
                child_avg=child_tallies[subject].rounded,
                class_avg=class_tallies[subject].rounded,
            )
            for subject in self._subject_order(list(class_tallies))
        ]

    async def get_subject_rankings_for_class(self, class_id: Optional[str]) -> List[ClassRankingRow]:
        """Per-subject ranking of students by average score, ranks 1..N per subject."""
        if not class_id:
            return []
        submissions = await self._safe("class_submissions", class_id, self.repo.list_class_submissions(class_id))

        by_subject: Dict[str, Dict[str, _StudentScores]] = {}
        for submission in submissions:
            if submission.score is None or not submission.student_id:
                continue
            students = by_subject.setdefault(_subject_of(submission), {})
            scores = students.get(submission.student_id)
            if scores is None:
                scores = students[submission.student_id] = _StudentScores(
                    name=submission.student_name or submission.student_id
                )
            scores.add(submission.score)

        rows: List[ClassRankingRow] = []
        for subject in self._subject_order(list(by_subject)):
            students = by_subject.get(subject)
            if not students:
                continue
            for rank, (student_id, scores) in rank_by_score(students.items(), lambda item: item[1].mean):
                rows.append(
                    ClassRankingRow(
                        subject=subject,
                        student_id=student_id,
                        student_name=scores.name,
                        avg_score=scores.mean,
                        rank=rank,
                    )
                )
        return rows

    # ------------------------------------------------------------------
    # Student trends
    # ------------------------------------------------------------------

    async def get_monthly_average_scores(self, student_id: str) -> List[MonthlyScore]:
        submissions = await self._safe("student_submissions", student_id, self.repo.list_student_submissions(student_id))
        tallies: Dict[int, _Tally] = {}
        now = current_timestamp()
        for submission in submissions:
            if submission.score is None:
                continue
            # Undated submissions are treated as happening now
            when = submission.created_at or submission.submitted_at or now
            tallies.setdefault(when.month, _Tally()).add(submission.score)
        return [
            MonthlyScore(month=MONTHS[month - 1], avg_score=tallies[month].rounded)
            for month in range(1, 13)
            if month in tallies
        ]

    async def get_submission_stats(self, student_id: str) -> SubmissionStats:
        submissions = await self._safe("student_submissions", student_id, self.repo.list_student_submissions(student_id))
        stats = SubmissionStats()
        for submission in submissions:
            if submission.status in SUBMITTED_STATUSES:
                stats.submitted += 1
            elif submission.status in MISSED_STATUSES:
                stats.missed += 1
        return stats

    async def get_weekly_engagement(self, student_id: str, today: Optional[date] = None) -> WeeklyEngagement:
        """Study minutes logged during the ISO week containing ``today``."""
        today = today or current_timestamp().date()
        entries: List[StudyTimeEntry] = await self._safe("study_time", student_id, self.repo.list_study_time(student_id))
        week = today.isocalendar()[:2]
        minutes = 0.0
        for entry in entries:
            day = entry.day or today
            if day.isocalendar()[:2] == week:
                minutes += entry.minutes or 0
        return WeeklyEngagement(
            minutes=minutes,
            recommended_minutes=get_settings().recommended_weekly_minutes,
            week_start=today - timedelta(days=today.isoweekday() - 1),
        )


metrics_service = SubjectMetricsService()
