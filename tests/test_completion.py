"""Unit tests for completion evaluation."""

import asyncio

import pytest

from carltm.completion import (
    calculate_average_completion, check_intent_completion, get_completion_percentage
)


class TestCheckIntentCompletion:
    """Test the archival trigger."""

    def test_completed_by_percentage(self, project, store):
        intent = project.item("stories", "login", "login", completion_percentage=100, phase="testing")
        result = asyncio.run(check_intent_completion(store, intent))

        assert result.completed is True
        assert result.intent_path == intent
        assert result.state_path == project.state_path(intent)
        assert result.state_data['phase'] == "testing"

    def test_completed_by_phase(self, project, store):
        intent = project.item("stories", "login", "login", completion_percentage=60, phase="completed")
        assert asyncio.run(check_intent_completion(store, intent)).completed is True

    def test_in_progress(self, project, store):
        intent = project.item("stories", "login", "login", completion_percentage=85, phase="development")
        result = asyncio.run(check_intent_completion(store, intent))

        assert result.completed is False
        assert result.state_data == {'completion_percentage': 85, 'phase': 'development'}

    def test_missing_state(self, project, store):
        intent = project.intent("stories", "login", "login")
        result = asyncio.run(check_intent_completion(store, intent))

        assert result.completed is False
        assert result.state_data is None

    def test_unparsable_state(self, project, store):
        intent = project.intent("stories", "login", "login")
        project.state_path(intent).write_text("phase: [unclosed\n", encoding='utf-8')
        result = asyncio.run(check_intent_completion(store, intent))

        assert result.completed is False
        assert result.state_data is None

    def test_metadata_is_not_consulted(self, project, store):
        """A nested 100% does not trigger archival."""
        intent = project.item("stories", "login", "login",
                              metadata={'completion_percentage': 100, 'status': 'completed'})
        assert asyncio.run(check_intent_completion(store, intent)).completed is False

    def test_not_an_intent_path(self, project, store):
        result = asyncio.run(check_intent_completion(store, project.dir / "notes.md"))
        assert result.completed is False
        assert result.state_data is None


class TestGetCompletionPercentage:
    """Test percentage resolution."""

    def test_top_level(self, project, store):
        intent = project.item("features", "auth", "auth", completion_percentage=42.5)
        assert asyncio.run(get_completion_percentage(store, project.state_path(intent))) == 42.5

    def test_metadata(self, project, store):
        intent = project.item("features", "auth", "auth", metadata={'completion_percentage': 30})
        assert asyncio.run(get_completion_percentage(store, project.state_path(intent))) == 30

    def test_completed_status(self, project, store):
        intent = project.item("features", "auth", "auth", status="completed")
        assert asyncio.run(get_completion_percentage(store, project.state_path(intent))) == 100

    def test_default_zero(self, project, store):
        intent = project.item("features", "auth", "auth", phase="planning")
        assert asyncio.run(get_completion_percentage(store, project.state_path(intent))) == 0

    def test_clamped(self, project, store):
        intent = project.item("features", "auth", "auth", completion_percentage=250)
        assert asyncio.run(get_completion_percentage(store, project.state_path(intent))) == 100

    def test_missing(self, project, store):
        assert asyncio.run(get_completion_percentage(store, project.dir / "gone.state.carl")) is None

    def test_not_a_mapping(self, project, store):
        path = project.dir / "list.state.carl"
        path.write_text("- 1\n- 2\n", encoding='utf-8')
        assert asyncio.run(get_completion_percentage(store, path)) is None


class TestCalculateAverageCompletion:
    """Test averaging."""

    def test_mean(self):
        assert calculate_average_completion([100, 50, 0]) == 50

    def test_empty(self):
        assert calculate_average_completion([]) == 0

    def test_nulls_filtered(self):
        assert calculate_average_completion([100, None, 50]) == 75

    def test_only_nulls(self):
        assert calculate_average_completion([None, None]) == 0

    def test_rounded(self):
        assert calculate_average_completion([100, 0, 0]) == pytest.approx(33.33)
