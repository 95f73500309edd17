"""
Tests for plan parsing, validation and building.
"""

import json

import pytest
from operations_builder import BuilderSettings, OperationHost, OperationSpec, PlanParser
from operations_builder.exceptions import ConfigurationError


@pytest.fixture
def host():
    return OperationHost()


class TestOperationSpec:
    """Tests for OperationSpec."""

    def test_defaults(self):
        spec = OperationSpec("exec", ["ls"])

        assert spec.args == ["ls"]
        assert spec.kwargs == {}
        assert spec.calls == []
        assert spec.role == "task"

    def test_to_dict(self):
        spec = OperationSpec("tmp_dir", kwargs={"prefix": "x"}, role="completion")
        assert spec.to_dict() == {
            "operation": "tmp_dir",
            "args": [],
            "kwargs": {"prefix": "x"},
            "calls": [],
            "role": "completion",
        }

    def test_invalid_role(self):
        with pytest.raises(ValueError):
            OperationSpec("exec", role="cleanup")


class TestFromJson:
    """Tests for PlanParser.from_json()."""

    def test_parses_json_string(self):
        plan = json.dumps(
            [
                {"operation": "exec", "args": ["git"], "calls": [{"method": "arg", "args": ["status"]}]},
                {"operation": "tmp_dir", "role": "completion"},
            ]
        )

        specs = PlanParser.from_json(plan)

        assert [spec.operation for spec in specs] == ["exec", "tmp_dir"]
        assert specs[0].calls == [{"method": "arg", "args": ["status"]}]
        assert specs[1].role == "completion"

    def test_accepts_list(self):
        specs = PlanParser.from_json([{"operation": "fs"}])
        assert specs[0].operation == "fs"

    def test_invalid_json(self):
        with pytest.raises(ValueError, match="Invalid JSON"):
            PlanParser.from_json("[{", "broken")

    def test_json_must_be_list(self):
        with pytest.raises(TypeError):
            PlanParser.from_json('{"operation": "exec"}')

    def test_wrong_type(self):
        with pytest.raises(TypeError):
            PlanParser.from_json(42)

    def test_missing_operation(self):
        with pytest.raises(ValueError, match="missing required 'operation' field"):
            PlanParser.from_json([{"args": []}])

    def test_step_must_be_dict(self):
        with pytest.raises(ValueError):
            PlanParser.from_json(["exec"])


class TestValidate:
    """Tests for PlanParser.validate()."""

    def test_valid_plan(self):
        assert PlanParser.validate([{"operation": "exec", "args": ["ls"]}]) == []

    def test_empty_plan(self):
        assert PlanParser.validate([]) == ["Plan cannot be empty"]

    def test_invalid_json(self):
        errors = PlanParser.validate("not json")
        assert len(errors) == 1
        assert "Invalid JSON" in errors[0]

    def test_collects_all_errors(self):
        plan = [
            {"operation": "exce"},
            {"operation": "exec", "role": "cleanup"},
            {"operation": "exec", "args": "ls", "kwargs": []},
            {"operation": "fs", "calls": [{"args": ["x"]}]},
            "exec",
            {},
        ]

        errors = PlanParser.validate(plan)

        assert "Step 0: Unknown operation 'exce'" in errors
        assert "Step 1 (exec): Unknown role 'cleanup'" in errors
        assert "Step 2 (exec): 'args' must be a list" in errors
        assert "Step 2 (exec): 'kwargs' must be a dict" in errors
        assert "Step 3 (fs): Call 0 needs a 'method'" in errors
        assert "Step 4: Expected dict, got str" in errors
        assert "Step 5: Missing required 'operation' field" in errors


class TestBuild:
    """Tests for PlanParser.build()."""

    def test_build_and_run(self, host, tmp_path):
        plan = [
            {"operation": "filesystem_stack", "calls": [{"method": "mkdir", "args": [str(tmp_path / "g")]}]},
            {"operation": "filesystem_stack", "calls": [{"method": "touch", "args": [str(tmp_path / "g" / "g.txt")]}]},
        ]

        result = PlanParser.build(plan, host).run()

        assert result.success
        assert (tmp_path / "g" / "g.txt").is_file()

    def test_rollback_step(self, host, tmp_path):
        plan = [
            {"operation": "filesystem_stack", "calls": [{"method": "mkdir", "args": [str(tmp_path / "g")]}]},
            {
                "operation": "filesystem_stack",
                "role": "rollback",
                "calls": [{"method": "remove", "args": [str(tmp_path / "g")]}],
            },
            {"operation": "filesystem_stack", "calls": [{"method": "rename", "args": [str(tmp_path / "missing"), str(tmp_path / "x")]}]},
        ]

        result = PlanParser.build(plan, host).run()

        assert not result.success
        assert not (tmp_path / "g").exists()

    def test_completion_step(self, host, tmp_path):
        marker = tmp_path / "done"
        plan = [
            {"operation": "filesystem_stack", "calls": [{"method": "mkdir", "args": [str(tmp_path / "g")]}]},
            {"operation": "fs", "role": "completion", "calls": [{"method": "touch", "args": [str(marker)]}]},
        ]

        PlanParser.build(plan, host).run()

        assert marker.exists()

    def test_build_simulated(self, tmp_path):
        host = OperationHost(settings=BuilderSettings(simulate=True))
        plan = [{"operation": "fs", "calls": [{"method": "mkdir", "args": [str(tmp_path / "g")]}]}]

        result = PlanParser.build(plan, host).run()

        assert result["simulated"] is True
        assert not (tmp_path / "g").exists()

    def test_invalid_plan_raises(self, host):
        with pytest.raises(ConfigurationError) as exc_info:
            PlanParser.build([{"operation": "nonexistent"}], host, "deploy")

        assert exc_info.value.operation_name == "deploy"
        assert "Unknown operation 'nonexistent'" in str(exc_info.value)
