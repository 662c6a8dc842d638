"""Repair plan construction."""

from __future__ import annotations

import logging

from mcpdoctor.core.models import (
    ErrorKind,
    ErrorRecord,
    Fix,
    MCPClient,
    MCPServer,
    RepairPlan,
)
from mcpdoctor.repair.strategies import StrategyRegistry

logger = logging.getLogger("mcpdoctor.planner")


def needs_confirmation(fix: Fix) -> bool:
    """Whether a person must approve ``fix`` before it runs.

    Command substitutions change how a server launches, so they are
    gated even though they are applied automatically by ``fix --all``.
    """
    return not fix.automatic_fix or fix.touches_permissions or fix.touches_commands


class RepairPlanBuilder:
    """Groups errors by server and kind and asks the registry for fixes."""

    def __init__(self, registry: StrategyRegistry | None = None):
        self.registry = registry or StrategyRegistry()

    def build_plan(
        self, errors: list[ErrorRecord], client: MCPClient | None = None
    ) -> RepairPlan:
        """Build a plan with at most one fix per (server, kind) group.

        Errors without a server, or whose server the client does not
        know, stay in ``plan.errors`` but get no fix.
        """
        fixes: list[Fix] = []

        for server, by_kind in self._group(errors, client):
            for kind, group in by_kind.items():
                fix = self._propose(kind, group, server)
                if fix is not None:
                    fixes.append(fix)

        plan = RepairPlan(
            errors=list(errors),
            fixes=fixes,
            requires_confirmation=any(needs_confirmation(f) for f in fixes),
        )
        logger.info(
            "Planned %d fix(es) for %d error(s), %d automatic",
            len(plan.fixes), len(plan.errors), len(plan.automatic_fixes),
        )
        return plan

    def _group(
        self, errors: list[ErrorRecord], client: MCPClient | None
    ) -> list[tuple[MCPServer, dict[ErrorKind, list[ErrorRecord]]]]:
        servers: dict[str, MCPServer] = {}
        groups: dict[str, dict[ErrorKind, list[ErrorRecord]]] = {}

        for error in errors:
            if error.server is None:
                continue

            name = error.server.name
            if name not in servers:
                server = client.find_server(name) if client is not None else error.server
                if server is None:
                    logger.debug("Skipping errors for unknown server %s", name)
                    continue
                servers[name] = server
                groups[name] = {}

            groups[name].setdefault(error.kind, []).append(error)

        return [(servers[name], groups[name]) for name in groups]

    def _propose(
        self, kind: ErrorKind, group: list[ErrorRecord], server: MCPServer
    ) -> Fix | None:
        try:
            return self.registry.propose_fix(kind, group, server)
        except Exception:
            logger.exception("Strategy for %s failed on server %s", kind.value, server.name)
            return None
