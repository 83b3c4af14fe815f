"""Tests for DependencyBufferEstimator."""

import pytest

from contracts import ItemKind
from engine import DependencyBufferEstimator
from errors import NotFound


@pytest.fixture
def dependent(store):
    return store.add_item(ItemKind.ISSUE, project_id=1, title="Ship checkout", estimated_hours=20)


def _prerequisite(store, status, hours=5):
    return store.add_item(ItemKind.ISSUE, project_id=1, title=f"Prereq ({status})", status=status, estimated_hours=hours)


class TestEstimateWithDependencies:

    def test_no_dependencies(self, store, dependent):
        result = DependencyBufferEstimator(store).estimate_with_dependencies(dependent.id)

        assert result.adjusted_effort == result.base_effort == 20
        assert result.buffer_hours == 0
        assert result.buffer_percentage == 0
        assert result.dependencies == []
        assert result.breakdown.total == 20

    def test_ten_percent_per_incomplete_prerequisite(self, store, dependent):
        for status in ("In Progress", "To Do", "Done"):
            prereq = _prerequisite(store, status)
            store.add_dependency(ItemKind.ISSUE, prereq.id, dependent.id)

        result = DependencyBufferEstimator(store).estimate_with_dependencies(dependent.id)

        assert result.buffer_percentage == 20
        assert result.buffer_hours == 4
        assert result.adjusted_effort == 24
        assert result.breakdown.dependency_buffer == 4
        assert [d.is_complete for d in result.dependencies] == [False, False, True]
        assert result.dependencies[0].prerequisite_title == "Prereq (In Progress)"
        assert result.dependencies[0].prerequisite_effort == 5
        assert result.dependencies[0].type == "blocks"

    @pytest.mark.parametrize("status", ["Done", "Closed", "Completed"])
    def test_closed_statuses_add_no_buffer(self, store, dependent, status):
        store.add_dependency(ItemKind.ISSUE, _prerequisite(store, status).id, dependent.id)
        result = DependencyBufferEstimator(store).estimate_with_dependencies(dependent.id)
        assert result.buffer_percentage == 0
        assert result.adjusted_effort == result.base_effort

    def test_buffer_monotonicity(self, store, dependent):
        estimator = DependencyBufferEstimator(store)
        seen = [estimator.estimate_with_dependencies(dependent.id).buffer_percentage]
        prereqs = []
        for _ in range(3):
            prereq = _prerequisite(store, "In Progress")
            prereqs.append(prereq)
            store.add_dependency(ItemKind.ISSUE, prereq.id, dependent.id)
            seen.append(estimator.estimate_with_dependencies(dependent.id).buffer_percentage)
        assert seen == sorted(seen)

        for prereq in prereqs:
            store.update_item(ItemKind.ISSUE, prereq.id, status="Done")
            current = estimator.estimate_with_dependencies(dependent.id).buffer_percentage
            assert current <= seen[-1]
            seen.append(current)
        assert seen[-1] == 0

    def test_missing_prerequisite_adds_no_buffer(self, store, dependent):
        store.add_dependency(ItemKind.ISSUE, 999, dependent.id)
        result = DependencyBufferEstimator(store).estimate_with_dependencies(dependent.id)
        assert result.buffer_percentage == 0
        assert result.dependencies[0].prerequisite_status is None
        assert result.dependencies[0].is_complete is False

    def test_base_effort_falls_back_to_rolled_up(self, store):
        epic = store.add_item(ItemKind.ISSUE, project_id=1, title="Epic")
        store.update_item(ItemKind.ISSUE, epic.id, rolled_up_hours=30)
        store.add_dependency(ItemKind.ISSUE, _prerequisite(store, "To Do").id, epic.id)

        result = DependencyBufferEstimator(store).estimate_with_dependencies(epic.id)
        assert result.base_effort == 30
        assert result.adjusted_effort == 33

    def test_configurable_policy(self, store, dependent):
        store.add_dependency(ItemKind.ISSUE, _prerequisite(store, "Blocked").id, dependent.id)
        estimator = DependencyBufferEstimator(store, buffer_percent=25, closed_statuses=["Blocked"])
        assert estimator.estimate_with_dependencies(dependent.id).buffer_percentage == 0

        estimator = DependencyBufferEstimator(store, buffer_percent=25)
        assert estimator.estimate_with_dependencies(dependent.id).adjusted_effort == 25

    def test_empty_closed_statuses_means_nothing_is_closed(self, store, dependent):
        store.add_dependency(ItemKind.ISSUE, _prerequisite(store, "Done").id, dependent.id)
        estimator = DependencyBufferEstimator(store, closed_statuses=[])

        assert estimator.closed_statuses == set()
        result = estimator.estimate_with_dependencies(dependent.id)
        assert result.buffer_percentage == 10
        assert result.dependencies[0].is_complete is False

    def test_edges_are_scoped_by_kind(self, store, dependent):
        action = store.add_item(ItemKind.ACTION_ITEM, project_id=1, title="Action", estimated_hours=10)
        prereq = _prerequisite(store, "To Do")
        store.add_dependency(ItemKind.ISSUE, prereq.id, dependent.id)

        result = DependencyBufferEstimator(store).estimate_with_dependencies(action.id, ItemKind.ACTION_ITEM)
        assert result.dependencies == []

    def test_unknown_item(self, store):
        with pytest.raises(NotFound):
            DependencyBufferEstimator(store).estimate_with_dependencies(12345)
