from __future__ import annotations
from pydantic import BaseModel
from typing import Dict, List, Optional

from .stages import GrowthStage
from .statistics import ClassStatistics


class GardenCard(BaseModel):
    student_id: str
    name: str
    completion_rate: int
    stage: GrowthStage
    total_assignments: int
    completed_assignments: int
    # Set when the row fell back to zeros because its queries failed
    error: Optional[str] = None
    is_own_child: bool = False


class ClassGarden(BaseModel):
    class_id: str
    statistics: ClassStatistics
    students: List[GardenCard]


class ClassSummary(BaseModel):
    """Aggregates that are safe to show to every parent of the class."""
    class_id: str
    total_students: int
    total_assignments: int
    completed_assignments: int
    average_completion_rate: int
    average_growth: int
    blooming_count: int
    performance_distribution: Dict[str, int]


class ParentGarden(BaseModel):
    parent_id: str
    class_summaries: List[ClassSummary]
    children: List[GardenCard]
