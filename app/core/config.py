from __future__ import annotations

import os
from functools import lru_cache
from typing import List
from dotenv import load_dotenv, find_dotenv

_env_path = find_dotenv(".env") or ".env"
load_dotenv(_env_path, override=False)

DEFAULT_SUBJECTS = "Math,Science,Reading,Writing,Art"


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Settings:
    """Central configuration (env driven)."""

    def __init__(self) -> None:
        # Supabase
        raw_url = os.getenv("SUPABASE_URL", "")
        self.supabase_url: str = raw_url.rstrip("/")
        self.supabase_anon_key: str = os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY", "")
        self.supabase_service_role_key: str = (
            os.getenv("SUPABASE_SERVICE_ROLE_KEY")
            or os.getenv("SUPABASE_SERVICE_KEY")
            or ""
        )
        # The aggregation engine only reads; prefer the service key when present
        self.supabase_key: str = self.supabase_service_role_key or self.supabase_anon_key
        self.store_query_timeout: float = float(os.getenv("STORE_QUERY_TIMEOUT", "10"))
        # Collections
        self.students_table: str = os.getenv("STUDENTS_TABLE", "students")
        self.assignments_table: str = os.getenv("ASSIGNMENTS_TABLE", "assignments")
        self.submissions_table: str = os.getenv("SUBMISSIONS_TABLE", "submissions")
        self.study_time_table: str = os.getenv("STUDY_TIME_TABLE", "studyTime")
        self.leaderboard_table: str = os.getenv("LEADERBOARD_TABLE", "leaderboard")
        # Aggregation
        self.leaderboard_limit: int = _int_env("LEADERBOARD_LIMIT", 10)
        self.metric_subjects: List[str] = _split_csv(os.getenv("METRIC_SUBJECTS", DEFAULT_SUBJECTS)) or _split_csv(DEFAULT_SUBJECTS)
        self.recommended_weekly_minutes: int = _int_env("RECOMMENDED_WEEKLY_MINUTES", 180)
        # App meta
        self.app_name: str = "Garden Progress Backend"
        self.debug: bool = os.getenv("DEBUG", "False").lower() == "true"

    @property
    def store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
