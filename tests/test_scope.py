"""Unit tests for scope resolution."""

from pathlib import Path

import pytest

from carltm.scope import (
    get_completed_directory, get_scope_directory, get_scope_type_from_path,
    state_path_for, item_id_from_path, item_name
)


class TestCompletedDirectory:
    """Test getCompletedDirectory-style classification."""

    @pytest.mark.parametrize("path, expected", [
        ("/x/epics/y.intent.carl", "epics/completed"),
        ("/x/features/y.intent.carl", "features/completed"),
        ("/x/stories/y.intent.carl", "stories/completed"),
        ("/x/technical/y.intent.carl", "technical/completed"),
        ("/x/unknown/y.intent.carl", "technical/completed"),
    ])
    def test_completed_directory(self, path, expected):
        result = get_completed_directory(path, "/project")
        assert result == Path("/project") / expected

    def test_first_scope_in_order_wins(self):
        """epics is checked before stories regardless of position."""
        assert get_scope_directory("/stories/epics/y.intent.carl") == "epics"

    def test_segment_match_only(self):
        """A directory that merely contains a scope name does not match."""
        assert get_scope_directory("/x/my-epics/y.intent.carl") == "technical"


class TestScopeType:
    """Test scope type labels."""

    @pytest.mark.parametrize("path, expected", [
        ("/x/epics/y.intent.carl", "epic"),
        ("/x/features/y.intent.carl", "feature"),
        ("/x/stories/y.intent.carl", "story"),
        ("/x/technical/y.intent.carl", "technical"),
        ("/x/unknown/y.intent.carl", "item"),
    ])
    def test_scope_type(self, path, expected):
        assert get_scope_type_from_path(path) == expected


class TestStatePath:
    """Test intent to state path derivation."""

    def test_suffix_substitution(self):
        assert state_path_for("/p/stories/login.intent.carl") == Path("/p/stories/login.state.carl")

    def test_only_the_suffix_changes(self):
        path = "/p/stories/x.intent.carl.d/login.intent.carl"
        assert state_path_for(path) == Path("/p/stories/x.intent.carl.d/login.state.carl")

    def test_not_an_intent(self):
        with pytest.raises(ValueError):
            state_path_for("/p/stories/login.md")

    def test_item_id(self):
        assert item_name("/p/stories/user.login.intent.carl") == "user.login"
        assert item_id_from_path("/p/stories/user.login.intent.carl") == "user_login"
