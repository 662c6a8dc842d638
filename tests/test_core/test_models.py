"""Tests for the shared data models."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from mcpdoctor.core.models import (
    Change,
    ChangeKind,
    ErrorKind,
    ErrorRecord,
    Fix,
    FixError,
    FixResult,
    MCPServer,
    RepairPlan,
)


def _error(kind: ErrorKind, server: MCPServer | None = None, message: str = "boom") -> ErrorRecord:
    return ErrorRecord(kind=kind, message=message, server=server)


class TestErrorRecord:
    def test_kind_is_immutable(self, server: MCPServer):
        error = _error(ErrorKind.PATH, server)
        with pytest.raises(FrozenInstanceError):
            error.kind = ErrorKind.CONFIG  # type: ignore[misc]

    def test_kind_values_are_closed_set(self):
        assert {k.value for k in ErrorKind} == {
            "path_error",
            "permission_error",
            "config_error",
            "network_error",
            "env_error",
            "unknown_error",
        }


class TestFixPolicy:
    def test_permission_error_fix_cannot_be_automatic(self, server: MCPServer):
        with pytest.raises(ValueError):
            Fix(error=_error(ErrorKind.PERMISSION, server), description="chmod", automatic_fix=True)

    def test_permission_change_cannot_be_automatic(self, server: MCPServer):
        change = Change(kind=ChangeKind.PERMISSION, description="chmod", server=server)
        with pytest.raises(ValueError):
            Fix(
                error=_error(ErrorKind.CONFIG, server),
                description="chmod",
                changes=[change],
                automatic_fix=True,
            )

    def test_manual_permission_fix_is_allowed(self, server: MCPServer):
        fix = Fix(error=_error(ErrorKind.PERMISSION, server), description="chmod")
        assert fix.automatic_fix is False
        assert fix.touches_permissions is True

    def test_touches_commands(self, server: MCPServer):
        change = Change(ChangeKind.COMMAND, "swap", server, before="python", after="python3")
        fix = Fix(error=_error(ErrorKind.PATH, server), description="swap", changes=[change], automatic_fix=True)
        assert fix.touches_commands is True
        assert fix.server is server


class TestRepairPlan:
    def test_automatic_and_manual_split(self, server: MCPServer):
        auto = Fix(error=_error(ErrorKind.CONFIG, server), description="a", automatic_fix=True)
        manual = Fix(error=_error(ErrorKind.PERMISSION, server), description="m")
        plan = RepairPlan(errors=[auto.error, manual.error], fixes=[auto, manual])

        assert plan.automatic_fixes == [auto]
        assert plan.manual_fixes == [manual]

    def test_unaddressed_errors(self, server: MCPServer):
        config_error = _error(ErrorKind.CONFIG, server)
        network_error = _error(ErrorKind.NETWORK, server)
        serverless = _error(ErrorKind.CONFIG)
        fix = Fix(error=config_error, description="repair", automatic_fix=True)

        plan = RepairPlan(errors=[config_error, network_error, serverless], fixes=[fix])

        assert plan.unaddressed_errors == [network_error, serverless]

    def test_advisor_fixes_do_not_count_as_addressed(self, server: MCPServer):
        network_error = _error(ErrorKind.NETWORK, server)
        advice = Fix(error=network_error, description="check proxy", source="advisor")
        plan = RepairPlan(errors=[network_error], fixes=[advice])

        assert plan.unaddressed_errors == [network_error]


class TestFixResult:
    def test_message_prefers_error(self):
        result = FixResult(success=False, error=FixError(ErrorKind.CONFIG, "Configuration already valid"))
        assert result.message == "Configuration already valid"

    def test_message_falls_back_to_fix_description(self, server: MCPServer):
        fix = Fix(error=_error(ErrorKind.CONFIG, server), description="Fix configuration syntax", automatic_fix=True)
        assert FixResult(success=True, fix=fix).message == "Fix configuration syntax"
