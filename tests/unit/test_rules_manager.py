"""Unit tests for the YAML routing rules manager."""

import pytest
from pydantic import ValidationError

from issue_intake.triage.domain import DEFAULT_RULES
from issue_intake.triage.infrastructure import RoutingRulesManager

RULES_YAML = """
default_route:
  team: Operations
  assignee: Ana
rules:
  - include: [invoice]
    team: Finance
    assignee: Bo
"""


class TestRoutingRulesManager:
    """Test suite for loading, reloading and watching the rules file."""

    @pytest.mark.unit
    def test_missing_file_uses_built_in_rules(self, tmp_path):
        manager = RoutingRulesManager()

        config = manager.load(tmp_path / "absent.yaml")

        assert len(config.rules) == len(DEFAULT_RULES)
        assert manager.router.route(details="please cancel").assignee_name == "Hamza"

    @pytest.mark.unit
    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(RULES_YAML)
        manager = RoutingRulesManager()

        manager.load(path)

        assert manager.router.route(details="Invoice overdue").team_name == "Finance"
        assert manager.router.route(details="cancel").assignee_name == "Ana"
        # Routes absent from the file keep their defaults
        assert manager.router.route(category="bug").assignee_name == "Canyon"

    @pytest.mark.unit
    def test_invalid_file_fails_initial_load(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  - include: []\n    team: X\n    assignee: Y\n")

        with pytest.raises(ValidationError):
            RoutingRulesManager().load(path)

    @pytest.mark.unit
    def test_reload_picks_up_changes(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(RULES_YAML)
        manager = RoutingRulesManager()
        manager.load(path)
        held_router = manager.router

        path.write_text(RULES_YAML.replace("Bo", "Cy"))

        assert manager.reload() is True
        assert manager.router.route(details="invoice").assignee_name == "Cy"
        assert held_router.route(details="invoice").assignee_name == "Bo"

    @pytest.mark.unit
    def test_broken_reload_keeps_previous_table(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(RULES_YAML)
        manager = RoutingRulesManager()
        manager.load(path)

        path.write_text("rules: [unterminated")

        assert manager.reload() is False
        assert manager.router.route(details="invoice").assignee_name == "Bo"

    @pytest.mark.unit
    def test_non_mapping_reload_rejected(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(RULES_YAML)
        manager = RoutingRulesManager()
        manager.load(path)

        path.write_text("- just\n- a list\n")

        assert manager.reload() is False
        assert manager.config.default_route.assignee == "Ana"

    @pytest.mark.unit
    def test_reload_before_load(self):
        assert RoutingRulesManager().reload() is False

    @pytest.mark.unit
    def test_router_before_load_raises(self):
        with pytest.raises(RuntimeError):
            RoutingRulesManager().router

    @pytest.mark.unit
    def test_watching_absent_file_is_skipped(self, tmp_path):
        manager = RoutingRulesManager()
        manager.load(tmp_path / "absent.yaml")

        manager.start_watching()
        manager.stop_watching()

    @pytest.mark.unit
    def test_start_and_stop_watching(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(RULES_YAML)
        manager = RoutingRulesManager()
        manager.load(path)

        manager.start_watching()
        manager.stop_watching()
        manager.stop_watching()
