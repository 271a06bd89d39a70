"""
Tests for the project metadata in pyproject.toml.
"""

import tomllib
from pathlib import Path

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


class TestProjectMetadata:
    """Test packaging metadata."""

    def setup_method(self):
        """Load the project table."""
        with open(PYPROJECT, 'rb') as f:
            self.project = tomllib.load(f)["project"]

    def test_design_notes_not_published_as_readme(self):
        """The design ledger is not the package long description."""
        assert self.project.get("readme") != "DESIGN.md"

    def test_runtime_dependencies_declared(self):
        """Every third-party runtime import is declared."""
        names = {dep.split(">")[0].split("=")[0].lower() for dep in self.project["dependencies"]}
        assert names == {"pyyaml", "typer", "rich"}

    def test_cli_entry_point(self):
        """The console script points at the typer app."""
        assert self.project["scripts"]["claude-usage-stats"] == "claude_usage_stats.cli.main:app"
