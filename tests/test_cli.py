"""Tests for the carltm command line interface."""

from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from carltm.cli import main


def invoke(project, *args):
    return CliRunner().invoke(main, ["--root", str(project.config.root)] + list(args))


class TestCli:
    """Test CLI commands."""

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "carltm" in result.output

    def test_status(self, project):
        project.item("stories", "login", "login", completion_percentage=10)
        project.item("stories", "old", "old", completed=True, completion_percentage=100)

        result = invoke(project, "status")

        assert result.exit_code == 0
        assert "stories: 1 active, 1 completed" in result.output

    def test_status_without_project(self, tmp_path):
        result = CliRunner().invoke(main, ["--root", str(tmp_path), "status"])
        assert "No CARL project found" in result.output

    def test_check(self, project):
        done = project.item("stories", "login", "login", completion_percentage=100)
        pending = project.item("stories", "logout", "logout", completion_percentage=30)
        missing = project.intent("stories", "signup", "signup")

        assert "is completed (100.0%)" in invoke(project, "check", str(done)).output
        assert "is in progress (30.0%)" in invoke(project, "check", str(pending)).output
        assert "State file not found" in invoke(project, "check", str(missing)).output

    def test_review_requires_paths(self, project):
        result = invoke(project, "review")
        assert "--full" in result.output

    def test_review_full(self, project):
        with patch('carltm.cli.CompletionOrchestrator.full_project_review',
                   new=AsyncMock(return_value=2)) as review:
            result = invoke(project, "review", "--full")

        review.assert_awaited_once()
        assert "Processed 2 completion(s)" in result.output

    def test_recalc(self, project):
        parent = project.item("features", "auth", "auth", children=["login"], completion_percentage=0)
        project.item("stories", "login", "login", parent_id="auth", completion_percentage=40)

        result = invoke(project, "recalc", str(parent))

        assert result.exit_code == 0
        assert "0.0% → 40.0%" in result.output

    def test_graph(self, project):
        project.item("features", "auth", "auth", children=["login"], completion_percentage=40)
        project.item("stories", "login", "login", parent_id="auth", completion_percentage=40)

        result = invoke(project, "graph")

        lines = result.output.splitlines()
        assert lines[0].endswith("features/auth.intent.carl (40.0%)")
        assert lines[1].startswith("   📌 ")
        assert lines[1].endswith("stories/login.intent.carl (40.0%)")

    def test_validate(self, project):
        project.item("stories", "login", "login", completion_percentage=10)
        assert "All records are valid" in invoke(project, "validate").output

        bad = project.intent("stories", "broken", "broken")
        bad.write_text("name: missing id\n", encoding='utf-8')
        result = invoke(project, "validate")

        assert result.exit_code == 1
        assert "'id' is a required property" in result.output
