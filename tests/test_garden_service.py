import httpx
import pytest

from app.db.record_store import StoreUnavailableError
from app.features.garden.service import GardenService

pytestmark = pytest.mark.anyio


def _school(settings):
    return {
        settings.students_table: [
            {"id": "s1", "classId": "c1", "parentId": "p1", "name": "Ana"},
            {"id": "s2", "classId": "c1", "parentId": "p2", "name": "Ben"},
            {"id": "s3", "classId": "c1", "parentId": "p3", "name": "Cai"},
            {"id": "s4", "classId": "c2", "parentId": "p1", "name": "Dee"},
        ],
        settings.assignments_table: [
            {"id": "a1", "classId": "c1", "status": "active"},
            {"id": "a2", "classId": "c1", "status": "active"},
            {"id": "a4", "classId": "c2", "status": "active"},
        ],
        settings.submissions_table: [
            {"id": "x1", "assignmentId": "a1", "studentId": "s1", "status": "approved"},
            {"id": "x2", "assignmentId": "a2", "studentId": "s1", "status": "approved"},
            {"id": "x3", "assignmentId": "a1", "studentId": "s2", "status": "pending"},
            {"id": "x4", "assignmentId": "a2", "studentId": "s2", "status": "needsRevision"},
            {"id": "x5", "assignmentId": "a4", "studentId": "s4", "status": "submitted"},
        ],
    }


async def test_class_garden_cards_and_statistics(settings, make_store):
    _, store = make_store(_school(settings))
    garden = await GardenService(store).get_class_garden("c1")

    assert [card.name for card in garden.students] == ["Ana", "Ben", "Cai"]
    assert [card.completion_rate for card in garden.students] == [100, 50, 0]
    assert [card.stage.label for card in garden.students] == ["Blooming", "Seedling", "Seed"]
    assert garden.statistics.student_count == 3
    assert garden.statistics.average_growth == 50
    assert garden.statistics.blooming_count == 1


async def test_class_summary_is_anonymous(settings, make_store):
    _, store = make_store(_school(settings))
    summary = await GardenService(store).get_class_summary("c1")

    assert summary.total_students == 3
    assert summary.total_assignments == 2
    assert summary.completed_assignments == 3
    assert summary.average_completion_rate == 50
    assert summary.average_growth == 50
    assert summary.performance_distribution["Blooming"] == 1
    assert "Ana" not in summary.model_dump_json()


async def test_summary_of_empty_class(make_store):
    _, store = make_store({})
    summary = await GardenService(store).get_class_summary("nobody")
    assert summary.total_students == 0
    assert summary.average_completion_rate == 0
    assert summary.average_growth == 0


async def test_parent_garden_shows_own_children_only(settings, make_store):
    _, store = make_store(_school(settings))
    parent = await GardenService(store).get_parent_garden("p1")

    assert [child.student_id for child in parent.children] == ["s1", "s4"]
    assert all(child.is_own_child for child in parent.children)
    assert [child.completion_rate for child in parent.children] == [100, 100]
    assert [s.class_id for s in parent.class_summaries] == ["c1", "c2"]
    assert parent.class_summaries[1].total_students == 1


async def test_parent_without_children(make_store):
    _, store = make_store({})
    parent = await GardenService(store).get_parent_garden("p404")
    assert parent.children == []
    assert parent.class_summaries == []


async def test_unreachable_store_propagates(settings, make_store):
    client, store = make_store(_school(settings))
    client.failures[settings.students_table] = httpx.ConnectError("refused")
    with pytest.raises(StoreUnavailableError):
        await GardenService(store).get_class_garden("c1")
