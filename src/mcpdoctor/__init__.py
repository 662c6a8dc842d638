"""mcp-doctor — diagnose and repair local MCP server setups."""

from mcpdoctor._version import __version__
from mcpdoctor.core.models import (
    Change,
    ChangeKind,
    ErrorKind,
    ErrorRecord,
    Fix,
    FixResult,
    RepairPlan,
)
from mcpdoctor.repair.engine import RepairEngine

__all__ = [
    "__version__",
    "Change",
    "ChangeKind",
    "ErrorKind",
    "ErrorRecord",
    "Fix",
    "FixResult",
    "RepairPlan",
    "RepairEngine",
]
