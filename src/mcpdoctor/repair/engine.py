"""Repair Engine — orchestrates plan construction and fix application."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable

from mcpdoctor.core.config import DoctorConfig
from mcpdoctor.core.errors import ConfirmationRequiredError, InvalidFixError
from mcpdoctor.core.models import (
    AdvisorAnalysis,
    ErrorKind,
    ErrorRecord,
    Fix,
    FixError,
    FixResult,
    MCPClient,
    RepairPlan,
)
from mcpdoctor.repair.executor import FixExecutor
from mcpdoctor.repair.locks import ServerLocks
from mcpdoctor.repair.planner import RepairPlanBuilder, needs_confirmation
from mcpdoctor.repair.ports import Advisor, BackupStore, ConfigStore
from mcpdoctor.repair.strategies import CommandResolver, StrategyRegistry

logger = logging.getLogger("mcpdoctor.engine")

EVENTS = ("fix_applied", "fix_skipped")


class RepairEngine:
    """Core engine that plans and applies repairs for one machine."""

    def __init__(
        self,
        config_store: ConfigStore,
        backup_store: BackupStore,
        advisor: Advisor | None = None,
        registry: StrategyRegistry | None = None,
        executor: FixExecutor | None = None,
        config: DoctorConfig | None = None,
        locks: ServerLocks | None = None,
    ):
        self.config = config or DoctorConfig()
        self.config_store = config_store
        self.backup_store = backup_store
        self.advisor = advisor

        if registry is None:
            resolver = CommandResolver(
                alternatives=self.config.repair.alternatives,
                probe_timeout=self.config.repair.probe_timeout,
                search_dirs=[Path.cwd(), *map(Path, self.config.repair.search_dirs)],
            )
            registry = StrategyRegistry(resolver)
        self.planner = RepairPlanBuilder(registry)
        self.executor = executor or FixExecutor(
            config_store, timeout=self.config.repair.mutation_timeout
        )
        self.locks = locks or ServerLocks()
        self._listeners: dict[str, list[Callable]] = {event: [] for event in EVENTS}

    def start(self) -> None:
        """Load the backup index and prune old backups."""
        logger.info("Starting repair engine")
        self.backup_store.initialize()

    def on(self, event: str, callback: Callable) -> None:
        """Subscribe to ``fix_applied`` (fix, result) or ``fix_skipped`` (fix)."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(callback)

    def create_repair_plan(self, client: MCPClient, errors: list[ErrorRecord]) -> RepairPlan:
        logger.info("Creating repair plan for %s with %d errors", client.name, len(errors))
        return self.planner.build_plan(errors, client)

    def apply_repair_plan(
        self,
        client: MCPClient,
        plan: RepairPlan,
        confirm: Callable[[Fix], bool] | None = None,
    ) -> list[FixResult]:
        """Apply a full plan, asking ``confirm`` for every gated fix.

        Declined fixes are discarded (reported through ``fix_skipped``)
        and produce no result.
        """
        if plan.requires_confirmation and confirm is None:
            raise ConfirmationRequiredError(
                "Repair plan requires confirmation before it can be applied"
            )
        _check_fixes(plan.fixes)

        logger.info("Applying repair plan with %d fixes", len(plan.fixes))
        with self.locks.hold(_server_names(plan.fixes)):
            accepted = []
            for fix in plan.fixes:
                if needs_confirmation(fix) and not confirm(fix):
                    logger.info("Fix declined: %s", fix.description)
                    self._emit("fix_skipped", fix)
                    continue
                accepted.append(fix)
            return self._apply_fixes(client, accepted)

    def fix_all_issues(self, client: MCPClient, errors: list[ErrorRecord]) -> list[FixResult]:
        """Apply every automatic fix for ``errors``; manual fixes are skipped."""
        logger.info("Fixing all issues for %s", client.name)
        with self.locks.hold(e.server.name for e in errors if e.server is not None):
            plan = self.create_repair_plan(client, errors)

            automatic = []
            for fix in plan.fixes:
                if fix.automatic_fix:
                    automatic.append(fix)
                else:
                    self._emit("fix_skipped", fix)

            _check_fixes(automatic)
            return self._apply_fixes(client, automatic)

    def auto_repair(self, client: MCPClient) -> bool:
        """Best-effort background healing of the client's config file.

        Returns whether a repair was made. Never raises.
        """
        logger.info("Auto-repairing %s", client.name)
        try:
            with self.locks.hold(s.name for s in client.servers):
                self.backup_store.create_automatic_backup_if_needed(client)
                repaired = self.config_store.repair_config(client.config_path, client.type)
        except Exception as e:
            logger.error("Failed to auto-repair %s: %s", client.name, e)
            return False

        if repaired:
            logger.info("Repaired %s configuration", client.name)
        return bool(repaired)

    async def create_ai_repair_plan(
        self,
        client: MCPClient,
        errors: list[ErrorRecord],
        log_content: str = "",
    ) -> RepairPlan:
        """Build the rule plan and, where it falls short, ask the advisor.

        Falls back to the rule plan if the advisor is missing, times out
        or fails.
        """
        plan = self.create_repair_plan(client, errors)

        if self.advisor is None or not self.advisor.is_available():
            logger.warning("AI advisor not available, using rule-based plan only")
            return plan
        if plan.fixes and not plan.unaddressed_errors:
            return plan
        if not log_content.strip() and not errors:
            return plan

        try:
            analysis = await asyncio.wait_for(
                asyncio.to_thread(self.advisor.analyze_log, log_content, list(errors)),
                timeout=self.config.ai.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("AI advisor timed out after %ss", self.config.ai.timeout)
            return plan
        except Exception as e:
            logger.warning("AI advisor failed, using rule-based plan only: %s", e)
            return plan

        return merge_advisor_fixes(plan, analysis)

    def _apply_fixes(self, client: MCPClient, fixes: list[Fix]) -> list[FixResult]:
        if any(f.automatic_fix for f in fixes) and not self._backup_before_mutation(client):
            return [
                FixResult(
                    success=False,
                    error=FixError(
                        kind=ErrorKind.UNKNOWN,
                        message="Backup failed; no changes applied",
                        fixable=False,
                    ),
                    fix=fix,
                )
                for fix in fixes
            ]

        results = []
        for fix in fixes:
            result = self.executor.apply_fix(fix, client)
            results.append(result)
            self._emit("fix_applied", fix, result)
        return results

    def _backup_before_mutation(self, client: MCPClient) -> bool:
        if not Path(client.config_path).exists():
            # Nothing to snapshot; config repair will create the file
            return True
        try:
            self.backup_store.create_backup(client)
        except Exception as e:
            logger.error("Failed to back up %s before repair: %s", client.name, e)
            return False
        return True

    def _emit(self, event: str, *args) -> None:
        for callback in self._listeners[event]:
            try:
                callback(*args)
            except Exception:
                logger.exception("%s listener failed", event)


def merge_advisor_fixes(plan: RepairPlan, analysis: AdvisorAnalysis) -> RepairPlan:
    """Append advisor suggestions to ``plan`` as manual fixes."""
    advisory = [
        replace(fix, automatic_fix=False, source="advisor")
        for fix in analysis.suggested_fixes
    ]
    return RepairPlan(
        errors=plan.errors,
        fixes=[*plan.fixes, *advisory],
        requires_confirmation=plan.requires_confirmation or bool(advisory),
        explanation=analysis.explanation,
        advisor_confidence=analysis.confidence,
    )


def _check_fixes(fixes: Iterable[Fix]) -> None:
    for fix in fixes:
        if fix is None or fix.error is None:
            raise InvalidFixError("Repair plan contains a fix without an error")


def _server_names(fixes: Iterable[Fix]) -> list[str]:
    return [f.server.name for f in fixes if f.server is not None]
