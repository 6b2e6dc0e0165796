"""gitman: Batch-pull your local git clones and batch-clone your GitHub repositories."""

# Guard against deleted CWD (e.g. directory removed by another process).
# rich crashes on import if os.getcwd() fails, so recover before any imports.
import os

try:
    os.getcwd()
except (OSError, PermissionError):
    os.chdir(os.path.expanduser("~"))

from ._version import __version__
from .config import ConfigError, ConfigStore, global_config, local_config
from .core import (
    ActionExecutor,
    ActionKind,
    ActionPlan,
    ActionResult,
    BatchReport,
    BatchState,
    Diagnostic,
    GitOperations,
    ItemStatus,
    LocalScanner,
    Origin,
    RemoteLister,
    RepositoryIndex,
    RepositoryRecord,
    Resolution,
    app,
    discover,
    plan_actions,
    reconcile,
    resolve_selection,
)
from .errors import GitmanError, WorkingRootError
from .formatters import OutputFormatter
from .github import GitHubClient, GitHubError, RemoteRepository
from .schema import get_tool_schema

__all__ = [
    # Version
    "__version__",
    # CLI
    "app",
    # Models
    "ActionKind",
    "ActionPlan",
    "ActionResult",
    "BatchReport",
    "BatchState",
    "Diagnostic",
    "ItemStatus",
    "Origin",
    "RemoteRepository",
    "RepositoryIndex",
    "RepositoryRecord",
    "Resolution",
    # Operations
    "ActionExecutor",
    "GitHubClient",
    "GitOperations",
    "LocalScanner",
    "RemoteLister",
    # Functions
    "discover",
    "get_tool_schema",
    "global_config",
    "local_config",
    "plan_actions",
    "reconcile",
    "resolve_selection",
    # Config
    "ConfigStore",
    # Errors
    "ConfigError",
    "GitHubError",
    "GitmanError",
    "WorkingRootError",
    # Formatters
    "OutputFormatter",
]
