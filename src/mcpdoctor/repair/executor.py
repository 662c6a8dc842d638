"""Fix application against live client configuration."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import Callable

from mcpdoctor.core.errors import InvalidFixError
from mcpdoctor.core.models import (
    ChangeKind,
    ErrorKind,
    Fix,
    FixError,
    FixResult,
    MCPClient,
)
from mcpdoctor.repair.ports import ConfigStore, ConfigUpdate

logger = logging.getLogger("mcpdoctor.executor")


class FixExecutor:
    """Applies a single fix and reports what happened.

    Collaborator failures never escape ``apply_fix``; they come back as
    a failed ``FixResult`` with ``fixable=False``.
    """

    def __init__(self, config_store: ConfigStore, timeout: float | None = None):
        self.config_store = config_store
        self.timeout = timeout
        self._mutation_lock = threading.Lock()
        self._pool: concurrent.futures.ThreadPoolExecutor | None = None
        self._pending: concurrent.futures.Future | None = None
        self._handlers: dict[ErrorKind, Callable[[MCPClient, Fix], FixResult]] = {
            ErrorKind.PATH: self._apply_path_fix,
            ErrorKind.PERMISSION: self._apply_permission_fix,
            ErrorKind.CONFIG: self._apply_config_fix,
        }

    def apply_fix(self, fix: Fix, client: MCPClient) -> FixResult:
        """Apply ``fix`` to ``client``'s configuration."""
        if fix is None or fix.error is None:
            raise InvalidFixError("Fix has no triggering error")

        handler = self._handlers.get(fix.error.kind)
        if handler is None:
            return _failure(
                fix,
                ErrorKind.UNKNOWN,
                f"Cannot fix error of type: {fix.error.kind.value}",
            )

        try:
            return handler(client, fix)
        except Exception as e:
            logger.error("Failed to apply fix '%s': %s", fix.description, e)
            return _failure(fix, ErrorKind.UNKNOWN, f"Failed to apply fix: {e}")

    def _apply_path_fix(self, client: MCPClient, fix: Fix) -> FixResult:
        change = next((c for c in fix.changes if c.kind == ChangeKind.COMMAND), None)
        if change is None or not fix.automatic_fix:
            return _failure(fix, ErrorKind.PATH, "Cannot fix path error automatically")

        server_name = change.server.name if change.server else fix.error.server.name
        update = ConfigUpdate(server_name=server_name, field="command", value=change.after)
        self._call(self.config_store.update_client_config, client, [update])
        logger.info("Updated %s command: %s -> %s", server_name, change.before, change.after)

        return FixResult(success=True, changes=[change], fix=fix)

    def _apply_permission_fix(self, client: MCPClient, fix: Fix) -> FixResult:
        return _failure(fix, ErrorKind.PERMISSION, "Cannot fix permission error automatically")

    def _apply_config_fix(self, client: MCPClient, fix: Fix) -> FixResult:
        repaired = self._call(self.config_store.repair_config, client.config_path, client.type)
        if repaired:
            logger.info("Repaired configuration at %s", client.config_path)
            return FixResult(success=True, changes=list(fix.changes), fix=fix)

        return _failure(fix, ErrorKind.CONFIG, "Configuration already valid")

    def _call(self, func, *args):
        """Run a collaborator call, bounded by ``self.timeout`` when set.

        Calls run one at a time. A call that timed out keeps running in
        the worker, and the next call waits for it to finish first.
        """
        with self._mutation_lock:
            if self.timeout is None:
                return func(*args)

            if self._pending is not None:
                concurrent.futures.wait([self._pending])
                self._pending = None

            if self._pool is None:
                self._pool = concurrent.futures.ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="mcpdoctor-fix"
                )
            future = self._pool.submit(func, *args)
            try:
                return future.result(timeout=self.timeout)
            except concurrent.futures.TimeoutError:
                self._pending = future
                raise TimeoutError(
                    f"{getattr(func, '__name__', 'call')} timed out after {self.timeout}s"
                ) from None


def _failure(fix: Fix, kind: ErrorKind, message: str) -> FixResult:
    return FixResult(
        success=False,
        error=FixError(kind=kind, message=message, fixable=False),
        fix=fix,
    )
