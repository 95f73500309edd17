"""
Tests for OperationGroup execution, rollback and completion.
"""

import logging
from pathlib import Path

import pytest
from operations_builder import (
    BaseOperation,
    CommandNotSupportedError,
    CompletionCapable,
    ExecOperation,
    OperationBuilder,
    OperationGroup,
    OperationResult,
    RollbackCapable,
    TmpDirOperation,
)


class UndoableOperation(BaseOperation, RollbackCapable, CompletionCapable):
    """Log run, rollback and completion into a shared list."""

    def __init__(self, name, log, succeed=True):
        self._name = name
        self._log = log
        self._succeed = succeed

    def get_name(self):
        return self._name

    def run(self):
        self._log.append(f"run {self._name}")
        if not self._succeed:
            return OperationResult.failed(self._name, error="boom")
        return OperationResult.succeeded(self._name)

    def rollback(self):
        self._log.append(f"rollback {self._name}")

    def complete(self):
        self._log.append(f"complete {self._name}")


@pytest.fixture
def group():
    return OperationGroup()


@pytest.fixture
def log():
    return []


class TestExecution:
    """Tests for running a group."""

    def test_runs_in_insertion_order(self, group, log):
        group.add_code(lambda: log.append("a"))
        group.add_code(lambda: log.append("b"))
        group.add_code(lambda: log.append("c"))

        result = group.run()

        assert result.success
        assert log == ["a", "b", "c"]
        assert "3 operations" in result.message

    def test_empty_group_succeeds(self, group):
        assert group.run().success

    def test_stops_at_first_failure(self, group, log):
        group.add_code(lambda: log.append("a"))
        group.add(UndoableOperation("bad", log, succeed=False))
        group.add_code(lambda: log.append("never"))

        result = group.run()

        assert not result.success
        assert result["failed_operation"] == "bad"
        assert result["step_index"] == 1
        assert "boom" in result.error
        assert "never" not in log

    def test_exceptions_become_failed_results(self, group):
        def explode():
            raise RuntimeError("kaboom")

        group.add_code(explode)
        result = group.run()

        assert not result.success
        assert "kaboom" in result.error

    def test_exit_code_is_kept(self, group):
        group.add_code(lambda: 3)
        result = group.run()

        assert result.exit_code == 3

    def test_add_operation_list(self, group, log):
        group.add_operation_list([UndoableOperation("a", log), UndoableOperation("b", log)])
        group.run()

        assert log[:2] == ["run a", "run b"]


class TestRollback:
    """Tests for rollback handling."""

    def test_declared_rollback_runs_on_later_failure(self, group, log):
        group.add_code(lambda: log.append("a"))
        group.rollback_code(lambda: log.append("undo a"))
        group.add_code(lambda: False)
        group.rollback_code(lambda: log.append("undo b"))

        group.run()

        assert log == ["a", "undo a"]

    def test_rollbacks_run_in_reverse(self, group, log):
        group.rollback_code(lambda: log.append("first"))
        group.rollback_code(lambda: log.append("second"))
        group.add_code(lambda: False)

        group.run()

        assert log == ["second", "first"]

    def test_rollback_operation(self, group, log):
        group.rollback(UndoableOperation("cleanup", log))
        group.add_code(lambda: False)

        group.run()

        assert "run cleanup" in log

    def test_rollback_capable_operations_undo_themselves(self, group, log):
        group.add(UndoableOperation("a", log))
        group.add(UndoableOperation("b", log, succeed=False))

        group.run()

        assert "rollback a" in log
        assert "rollback b" not in log

    def test_no_rollback_on_success(self, group, log):
        group.rollback_code(lambda: log.append("undo"))
        group.add_code(lambda: None)

        group.run()

        assert log == []

    def test_rollbacks_do_not_carry_over_between_runs(self, group, log):
        outcomes = iter([True, False])
        group.add_code(lambda: None)
        group.rollback_code(lambda: log.append("undo"))
        group.add_code(lambda: next(outcomes))

        assert group.run().success
        assert not group.run().success

        assert log == ["undo"]

    def test_own_rollbacks_do_not_carry_over_between_runs(self, group, log):
        outcomes = iter([True, False])
        group.add(UndoableOperation("a", log))
        group.add_code(lambda: next(outcomes))

        group.run()
        group.run()

        assert log.count("rollback a") == 1

    def test_failing_rollback_does_not_stop_others(self, group, log, caplog):
        def broken():
            raise RuntimeError("rollback broke")

        group.rollback_code(lambda: log.append("still runs"))
        group.rollback_code(broken)
        group.add_code(lambda: False)

        with caplog.at_level(logging.WARNING, logger="operations_builder"):
            group.run()

        assert log == ["still runs"]
        assert "rollback broke" in caplog.text

    def test_declarations_are_listed(self, group):
        rollback = UndoableOperation("r", [])
        completion = UndoableOperation("c", [])
        group.add_code(lambda: None)
        group.rollback(rollback)
        group.completion(completion)

        assert len(group.operations) == 1
        assert group.rollbacks == [rollback]
        assert group.completions == [completion]


class TestCompletion:
    """Tests for completion handling."""

    def test_completions_run_after_success(self, group, log):
        group.completion_code(lambda: log.append("done"))
        group.add_code(lambda: log.append("work"))

        group.run()

        assert log == ["work", "done"]

    def test_completions_run_after_failure(self, group, log):
        group.completion_code(lambda: log.append("done"))
        group.add_code(lambda: False)

        group.run()

        assert log == ["done"]

    def test_completions_run_in_reverse(self, group, log):
        group.add(UndoableOperation("a", log))
        group.add(UndoableOperation("b", log))

        group.run()

        assert log == ["run a", "run b", "complete b", "complete a"]

    def test_completion_is_registered_once_per_run(self, group, log):
        operation = UndoableOperation("a", log)
        group.add(operation)
        group.add_code(lambda: log.append("work"))

        group.run()

        assert log == ["run a", "work", "complete a"]

    def test_declared_completion_operation_is_run(self, group, log):
        group.add_code(lambda: log.append("work"))
        group.completion(UndoableOperation("late", log))

        group.run()

        assert log == ["work", "run late"]

    def test_declared_tmp_dir_is_created_not_deleted(self, group, tmp_path):
        operation = TmpDirOperation("late", tmp_path, False)
        group.add_code(lambda: None)
        group.completion(operation)

        group.run()

        assert Path(operation.get_path()).is_dir()


class TestNesting:
    """Tests for nested groups and builders."""

    def test_child_completions_wait_for_parent(self, group, log):
        child = OperationBuilder()
        child.add_code(lambda: log.append("child"))
        child.completion_code(lambda: log.append("child done"))

        group.add(child)
        group.add_code(lambda: log.append("after"))
        group.run()

        assert log == ["child", "after", "child done"]

    def test_child_rollbacks_run_when_parent_fails(self, group, log):
        child = OperationGroup()
        child.add_code(lambda: log.append("child"))
        child.rollback_code(lambda: log.append("undo child"))

        group.add(child)
        group.add_code(lambda: False)
        group.run()

        assert log == ["child", "undo child"]

    def test_parent_is_set(self, group):
        child = OperationGroup()
        group.add(child)
        assert child.get_parent_group() is group


class TestProgress:
    """Tests for progress reporting."""

    def test_progress_message(self, group, caplog):
        group.progress_message("Building {target}", {"target": "docs"})
        group.add_code(lambda: None)

        with caplog.at_level(logging.INFO, logger="operations_builder"):
            group.run()

        assert "Building docs" in caplog.text

    def test_missing_placeholder_is_left_as_written(self, group, log, caplog):
        group.progress_message("Copied {count} of {total}", {"count": 1})
        group.add_code(lambda: log.append("after"))

        with caplog.at_level(logging.INFO, logger="operations_builder"):
            result = group.run()

        assert result.success
        assert log == ["after"]
        assert "Copied 1 of {total}" in caplog.text

    def test_literal_braces_are_kept(self, group, caplog):
        group.progress_message('payload {"a": 1} for {name}', {"name": "x"})

        with caplog.at_level(logging.INFO, logger="operations_builder"):
            assert group.run().success

        assert 'payload {"a": 1} for x' in caplog.text

    def test_unfilled_message_does_not_skip_cleanup(self, group, log):
        group.add(UndoableOperation("a", log))
        group.progress_message("{missing}")
        group.add_code(lambda: False)

        group.run()

        assert log == ["run a", "rollback a", "complete a"]

    def test_progress_count(self, group, caplog):
        group.set_progress_bar_auto_display_interval(0)
        group.add_code(lambda: None)

        with caplog.at_level(logging.INFO, logger="operations_builder"):
            group.run()

        assert "Progress: 1/1" in caplog.text


class TestCommandTextAndTransfer:
    """Tests for command_text() and transfer_operations_to()."""

    def test_command_text(self, group):
        group.add(ExecOperation("echo").arg("a b"))
        group.add(ExecOperation("ls"))

        assert group.command_text() == "echo 'a b' && ls"

    def test_command_text_requires_commands(self, group):
        group.add_code(lambda: None)
        with pytest.raises(CommandNotSupportedError):
            group.command_text()

    def test_transfer_operations(self, group):
        first, second = ExecOperation("a"), ExecOperation("b")
        group.add(first)
        group.add(second)
        builder = OperationBuilder()

        group.transfer_operations_to(builder)

        assert builder.group.operations == [first, second]
        assert len(group) == 0
