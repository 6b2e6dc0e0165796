"""
gitman: Keep a folder of git clones in step with your GitHub repositories.

Discovers the repositories cloned directly under a folder, lists the remote
repositories you have not cloned yet, lets you pick a subset, then pulls the
local picks and clones the remote ones.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Protocol

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import prompts
from ._version import __version__
from .config import (
    CLONE_PROTOCOL_KEY,
    ORG_KEY,
    SELECTED_REPOS_KEY,
    TOKEN_KEY,
    TYPE_KEY,
    ConfigStore,
    global_config,
    local_config,
)
from .errors import GitmanError, WorkingRootError
from .formatters import OutputFormatter, SpinnerProgress
from .github import TOKEN_HELP_URL, GitHubClient, GitHubError, resolve_token
from .schema import get_tool_schema

logger = logging.getLogger(__name__)

# =============================================================================
# Domain Models
# =============================================================================


class Origin(StrEnum):
    """Where a repository record comes from."""

    LOCAL = "local"
    REMOTE = "remote"


class ActionKind(StrEnum):
    PULL = "pull"
    CLONE = "clone"


class ItemStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class BatchState(StrEnum):
    """Lifecycle of a batch run. There is no failed state for the batch itself."""

    PLANNED = "planned"
    EXECUTING = "executing"
    COMPLETED = "completed"


DEFAULT_BRANCHES = frozenset({"main", "master"})


@dataclass(frozen=True)
class RepositoryRecord:
    """A repository, either cloned under the working root or listed remotely.

    ``branch`` and ``has_uncommitted_changes`` only apply to local records,
    ``clone_address`` only to remote ones.
    """

    name: str
    origin: Origin
    branch: str | None = None
    has_uncommitted_changes: bool = False
    clone_address: str | None = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Repository name must not be empty")
        match self.origin:
            case Origin.LOCAL:
                if self.clone_address is not None:
                    raise ValueError(f"Local repository {self.name!r} has a clone address")
            case Origin.REMOTE:
                if self.branch is not None or self.has_uncommitted_changes:
                    raise ValueError(f"Remote repository {self.name!r} has working tree state")
                if not self.clone_address:
                    raise ValueError(f"Remote repository {self.name!r} has no clone address")

    @classmethod
    def local(
        cls, name: str, branch: str | None = None, has_uncommitted_changes: bool = False
    ) -> RepositoryRecord:
        return cls(
            name=name,
            origin=Origin.LOCAL,
            branch=branch,
            has_uncommitted_changes=has_uncommitted_changes,
        )

    @classmethod
    def remote(cls, name: str, clone_address: str) -> RepositoryRecord:
        return cls(name=name, origin=Origin.REMOTE, clone_address=clone_address)

    @property
    def is_local(self) -> bool:
        return self.origin == Origin.LOCAL

    @property
    def display_label(self) -> str:
        """Rich markup label, recomputed from the current fields."""
        if self.origin == Origin.REMOTE:
            return escape(self.name)

        label = f"[green]{escape(self.name)}[/]"
        if self.branch:
            color = "cyan" if self.branch in DEFAULT_BRANCHES else "yellow"
            label += f" ([{color}]{escape(self.branch)}[/])"
        if self.has_uncommitted_changes:
            label += " [red]⚠ Uncommitted changes[/]"
        return label

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "origin": self.origin.value,
            "branch": self.branch,
            "has_uncommitted_changes": self.has_uncommitted_changes,
            "clone_address": self.clone_address,
        }


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem met while discovering or resolving repositories."""

    stage: str  # "scan", "remote" or "resolve"
    name: str
    reason: str

    def to_dict(self) -> dict:
        return {"stage": self.stage, "name": self.name, "reason": self.reason}


@dataclass(frozen=True)
class StatusSummary:
    """Branch and changed path count of a working tree."""

    branch: str | None
    changed_path_count: int = 0

    @property
    def is_dirty(self) -> bool:
        return self.changed_path_count > 0


@dataclass
class ScanResult:
    records: list[RepositoryRecord] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class Resolution:
    """Records resolved from selected names, plus the names nothing matched."""

    records: list[RepositoryRecord] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)


@dataclass
class ActionPlan:
    """Pulls for local records and clones for remote ones, decided before any side effect."""

    pulls: list[RepositoryRecord] = field(default_factory=list)
    clones: list[RepositoryRecord] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def __post_init__(self):
        if any(record.origin != Origin.LOCAL for record in self.pulls):
            raise ValueError("Only local repositories can be pulled")
        if any(record.origin != Origin.REMOTE for record in self.clones):
            raise ValueError("Only remote repositories can be cloned")

    @property
    def total(self) -> int:
        return len(self.pulls) + len(self.clones)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def to_dict(self) -> dict:
        return {
            "pulls": [r.name for r in self.pulls],
            "clones": [r.name for r in self.clones],
            "skipped": list(self.skipped),
        }


@dataclass
class ActionResult:
    """Outcome of one planned item."""

    name: str
    action: ActionKind | None
    status: ItemStatus
    message: str = ""
    error: str = ""

    @property
    def success(self) -> bool:
        return self.status == ItemStatus.SUCCEEDED

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "action": self.action.value if self.action else None,
            "status": self.status.value,
            "message": self.message,
            "error": self.error,
        }


@dataclass
class BatchReport:
    """Per-item results of a batch run."""

    results: list[ActionResult] = field(default_factory=list)
    state: BatchState = BatchState.PLANNED

    def _with_status(self, status: ItemStatus) -> list[ActionResult]:
        return [r for r in self.results if r.status == status]

    @property
    def succeeded(self) -> list[ActionResult]:
        return self._with_status(ItemStatus.SUCCEEDED)

    @property
    def failed(self) -> list[ActionResult]:
        return self._with_status(ItemStatus.FAILED)

    @property
    def skipped(self) -> list[ActionResult]:
        return self._with_status(ItemStatus.SKIPPED)

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "total": self.attempted,
                "succeeded": len(self.succeeded),
                "failed": len(self.failed),
                "skipped": len(self.skipped),
            },
        }


# =============================================================================
# Git Operations (Low-level)
# =============================================================================


class GitOperations:
    """Low-level Git operations run inside one directory."""

    def __init__(self, repo_path: Path):
        self.repo_path = repo_path

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run a git command in the directory."""
        logger.debug("git %s (in %s)", " ".join(args), self.repo_path)
        return subprocess.run(
            ["git", *args],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            check=check,
        )

    def get_status_summary(self) -> StatusSummary:
        """Get the current branch and changed path count in one command.

        Uses 'git status --porcelain=v2 --branch'. Staged, unstaged, unmerged
        and untracked entries all count as changed paths.

        Raises:
            subprocess.CalledProcessError: git could not read the working tree.
        """
        result = self._run("status", "--porcelain=v2", "--branch")
        branch: str | None = None
        changed = 0
        for line in result.stdout.splitlines():
            if line.startswith("# branch.head "):
                head = line[len("# branch.head ") :]
                branch = None if head == "(detached)" else head
            elif line.startswith(("1 ", "2 ", "u ", "? ")):
                changed += 1
        return StatusSummary(branch=branch, changed_path_count=changed)

    def pull(self) -> tuple[bool, str]:
        """Fast-forward the current branch from its upstream."""
        try:
            result = self._run("pull", "--ff-only", check=False)
            if result.returncode != 0:
                return False, result.stderr.strip() or result.stdout.strip()
            return True, result.stdout.strip()
        except OSError as e:
            return False, str(e)

    def clone(self, address: str, destination: str) -> tuple[bool, str]:
        """Clone address into a new subdirectory of this directory."""
        try:
            result = self._run("clone", "--", address, destination, check=False)
            if result.returncode != 0:
                return False, result.stderr.strip() or result.stdout.strip()
            return True, f"Cloned into {destination}"
        except OSError as e:
            return False, str(e)


def query_status(path: Path) -> StatusSummary:
    return GitOperations(path).get_status_summary()


def git_pull(record: RepositoryRecord, root_path: Path) -> tuple[bool, str]:
    return GitOperations(root_path / record.name).pull()


def git_clone(record: RepositoryRecord, root_path: Path) -> tuple[bool, str]:
    return GitOperations(root_path).clone(record.clone_address or "", record.name)


# =============================================================================
# Discovery
# =============================================================================


class LocalScanner:
    """Find the git working trees directly under a root directory."""

    def __init__(
        self,
        root_path: Path,
        max_workers: int = 8,
        status_query: Callable[[Path], StatusSummary] | None = None,
    ):
        self.root_path = root_path
        self.max_workers = max_workers
        self.status_query = status_query or query_status

    def find_candidates(self) -> list[str]:
        """Names of immediate subdirectories that contain a .git entry."""
        try:
            children = sorted(self.root_path.iterdir())
        except OSError as e:
            raise WorkingRootError(f"Cannot read directory {self.root_path}: {e}") from e

        names = []
        for child in children:
            try:
                if child.is_dir() and (child / ".git").exists():
                    names.append(child.name)
            except OSError as e:
                logger.warning("Skipping %s: %s", child.name, e)
        return names

    def inspect(self, name: str) -> RepositoryRecord:
        summary = self.status_query(self.root_path / name)
        return RepositoryRecord.local(
            name,
            branch=summary.branch,
            has_uncommitted_changes=summary.is_dirty,
        )

    def _inspect_safely(self, name: str) -> RepositoryRecord | Diagnostic:
        try:
            return self.inspect(name)
        except subprocess.CalledProcessError as e:
            reason = (e.stderr or "").strip() or f"git exited with status {e.returncode}"
        except Exception as e:
            reason = str(e) or type(e).__name__
        logger.warning("Could not read git status of %s: %s", name, reason)
        return Diagnostic(stage="scan", name=name, reason=reason)

    def scan(self) -> ScanResult:
        """Inspect every candidate, in parallel. Per-item failures become diagnostics."""
        names = self.find_candidates()

        if len(names) <= 1:
            outcomes = [self._inspect_safely(name) for name in names]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self._inspect_safely, names))

        result = ScanResult()
        for outcome in outcomes:
            if isinstance(outcome, Diagnostic):
                result.diagnostics.append(outcome)
            else:
                result.records.append(outcome)
        return result


class RemoteLister:
    """List remote repositories as records, degrading to none on any failure."""

    def __init__(
        self,
        token: str | None,
        protocol: str = "ssh",
        *,
        client_factory: Callable[[str], GitHubClient] = GitHubClient,
    ):
        self.token = token
        self.protocol = protocol
        self.client_factory = client_factory

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def list_records(
        self, org: str | None = None
    ) -> tuple[list[RepositoryRecord], list[Diagnostic]]:
        if not self.token:
            return [], []

        try:
            with self.client_factory(self.token) as client:
                repositories = client.list_repositories(org=org)
        except GitHubError as e:
            logger.warning("No remote repositories available this run: %s", e)
            return [], [Diagnostic(stage="remote", name=org or "github", reason=str(e))]

        records = []
        diagnostics = []
        for repo in repositories:
            address = repo.clone_address(self.protocol)
            if not address:
                diagnostics.append(
                    Diagnostic(stage="remote", name=repo.name, reason="No clone address")
                )
                continue
            records.append(RepositoryRecord.remote(repo.name, address))
        return records, diagnostics

    def list_organizations(self) -> list[str]:
        if not self.token:
            return []
        try:
            with self.client_factory(self.token) as client:
                return client.list_organizations()
        except GitHubError as e:
            logger.warning("Could not list organizations: %s", e)
            return []


def reconcile(
    local_records: Sequence[RepositoryRecord], remote_records: Sequence[RepositoryRecord]
) -> list[RepositoryRecord]:
    """Drop remote records whose name is already cloned locally (stable)."""
    local_names = {record.name for record in local_records}
    return [record for record in remote_records if record.name not in local_names]


@dataclass
class RepositoryIndex:
    """Everything discovered for one run, owned by the caller.

    ``remote`` is already reconciled against ``local``; ``remote_by_name``
    keeps the full remote listing so stale selections still resolve.
    """

    local: list[RepositoryRecord] = field(default_factory=list)
    remote: list[RepositoryRecord] = field(default_factory=list)
    local_by_name: dict[str, RepositoryRecord] = field(default_factory=dict)
    remote_by_name: dict[str, RepositoryRecord] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        local_records: Sequence[RepositoryRecord],
        remote_records: Sequence[RepositoryRecord] = (),
        diagnostics: Iterable[Diagnostic] = (),
    ) -> RepositoryIndex:
        return cls(
            local=list(local_records),
            remote=reconcile(local_records, remote_records),
            local_by_name={record.name: record for record in local_records},
            remote_by_name={record.name: record for record in remote_records},
            diagnostics=list(diagnostics),
        )

    def resolve(self, names: Iterable[str]) -> Resolution:
        return resolve_selection(names, self.local_by_name, self.remote_by_name)

    def to_dict(self) -> dict:
        return {
            "local": [r.to_dict() for r in self.local],
            "remote": [r.to_dict() for r in self.remote],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def discover(
    root_path: Path,
    lister: RemoteLister,
    org: str | None = None,
    max_workers: int = 8,
    scanner: LocalScanner | None = None,
) -> RepositoryIndex:
    """Scan the root and list remote repositories concurrently, then reconcile."""
    scanner = scanner or LocalScanner(root_path, max_workers=max_workers)
    with ThreadPoolExecutor(max_workers=2) as executor:
        scan_future = executor.submit(scanner.scan)
        remote_future = executor.submit(lister.list_records, org)
        scan = scan_future.result()
        remote_records, remote_diagnostics = remote_future.result()
    return RepositoryIndex.build(
        scan.records, remote_records, [*scan.diagnostics, *remote_diagnostics]
    )


# =============================================================================
# Selection and Planning
# =============================================================================


def resolve_selection(
    names: Iterable[str],
    local_by_name: dict[str, RepositoryRecord],
    remote_by_name: dict[str, RepositoryRecord],
) -> Resolution:
    """Map selected names to records. Local records win over remote ones."""
    resolution = Resolution()
    for name in names:
        record = local_by_name.get(name) or remote_by_name.get(name)
        if record is None:
            logger.warning("Unknown repository %r, skipping it", name)
            resolution.unknown.append(name)
        else:
            resolution.records.append(record)
    return resolution


def plan_actions(records: Iterable[RepositoryRecord], skipped: Iterable[str] = ()) -> ActionPlan:
    """Partition records by origin: local ones are pulled, remote ones cloned."""
    plan = ActionPlan(skipped=list(skipped))
    for record in records:
        match record.origin:
            case Origin.LOCAL:
                plan.pulls.append(record)
            case Origin.REMOTE:
                plan.clones.append(record)
    return plan


# =============================================================================
# Execution
# =============================================================================

ItemOperation = Callable[[RepositoryRecord, Path], tuple[bool, str]]


class ProgressListener(Protocol):
    def on_start(self, action: ActionKind, record: RepositoryRecord) -> None: ...

    def on_finish(self, result: ActionResult) -> None: ...


def check_working_root(root_path: Path) -> None:
    """Raise WorkingRootError unless root_path is a readable, writable directory."""
    if not root_path.is_dir():
        raise WorkingRootError(f"{root_path} does not exist or is not a directory")
    if not os.access(root_path, os.R_OK | os.W_OK | os.X_OK):
        raise WorkingRootError(f"{root_path} is not readable and writable")


class ActionExecutor:
    """Run a plan: pulls first, then clones, one item at a time.

    A failing item is recorded and the batch moves on; only an unusable
    working root stops the batch, and it does so before the first item.
    """

    def __init__(
        self,
        pull_one: ItemOperation | None = None,
        clone_one: ItemOperation | None = None,
        progress: ProgressListener | None = None,
    ):
        self.pull_one = pull_one or git_pull
        self.clone_one = clone_one or git_clone
        self.progress = progress

    def run(self, plan: ActionPlan, root_path: Path, dry_run: bool = False) -> BatchReport:
        check_working_root(root_path)

        report = BatchReport()
        report.state = BatchState.EXECUTING
        for record in plan.pulls:
            report.results.append(self._run_one(ActionKind.PULL, record, root_path, dry_run))
        for record in plan.clones:
            report.results.append(self._run_one(ActionKind.CLONE, record, root_path, dry_run))
        for name in plan.skipped:
            report.results.append(
                ActionResult(
                    name=name,
                    action=None,
                    status=ItemStatus.SKIPPED,
                    error="Unknown repository",
                )
            )
        report.state = BatchState.COMPLETED
        return report

    def _run_one(
        self, action: ActionKind, record: RepositoryRecord, root_path: Path, dry_run: bool
    ) -> ActionResult:
        if self.progress:
            self.progress.on_start(action, record)

        if action == ActionKind.CLONE and (root_path / record.name).exists():
            success, message = False, f"Destination '{record.name}' already exists"
        elif dry_run:
            success, message = True, f"Would {action} (dry-run)"
        else:
            operation = self.pull_one if action == ActionKind.PULL else self.clone_one
            try:
                success, message = operation(record, root_path)
            except Exception as e:
                success, message = False, str(e) or type(e).__name__

        if not success:
            logger.warning("%s of %s failed: %s", action.title(), record.name, message)

        result = ActionResult(
            name=record.name,
            action=action,
            status=ItemStatus.SUCCEEDED if success else ItemStatus.FAILED,
            message=message if success else "",
            error="" if success else message,
        )
        if self.progress:
            self.progress.on_finish(result)
        return result


# =============================================================================
# CLI Application
# =============================================================================


app = typer.Typer(
    name="gitman",
    help="Batch-pull your local git clones and batch-clone your GitHub repositories.",
    no_args_is_help=False,
)


@dataclass
class CliState:
    root_path: Path
    verbose: bool = False


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        print(f"gitman {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send gitman's log records to stderr through rich."""
    package_logger = logging.getLogger("gitman")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    )
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_console_and_formatter(json_output: bool) -> tuple[Console, OutputFormatter]:
    """Create console and formatter."""
    console = Console()
    formatter = OutputFormatter(console, use_json=json_output)
    return console, formatter


@contextmanager
def handle_fatal_errors(console: Console) -> Iterator[None]:
    """Turn fatal gitman errors into a message and exit status 2."""
    try:
        yield
    except GitmanError as e:
        console.print(f"[red]Error: {escape(str(e))}[/]")
        raise typer.Exit(2)


def build_remote_lister(global_cfg: ConfigStore) -> RemoteLister:
    token = resolve_token(global_cfg.get(TOKEN_KEY))
    return RemoteLister(token, protocol=global_cfg.get(CLONE_PROTOCOL_KEY) or "ssh")


def store_token(global_cfg: ConfigStore, token: str | None, console: Console) -> None:
    """Save or clear the GitHub token. A cleared token is kept as null."""
    token = (token or "").strip() or None
    global_cfg.set(TOKEN_KEY, token)
    if token:
        console.print("[green]✔[/] GitHub token set")
    else:
        console.print("[green]✔[/] GitHub token cleared")


def discover_with_spinner(
    root_path: Path, console: Console, json_output: bool = False
) -> RepositoryIndex:
    global_cfg = global_config()
    lister = build_remote_lister(global_cfg)
    org = local_config(root_path).get(ORG_KEY)

    if json_output:
        return discover(root_path, lister, org=org)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Loading repositories...", total=None)
        return discover(root_path, lister, org=org)


def scan_with_spinner(root_path: Path, console: Console, json_output: bool = False) -> ScanResult:
    scanner = LocalScanner(root_path)
    if json_output:
        return scanner.scan()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Scanning repositories...", total=None)
        return scanner.scan()


def confirm_and_execute(
    plan: ActionPlan,
    root_path: Path,
    console: Console,
    formatter: OutputFormatter,
    *,
    assume_yes: bool = False,
    dry_run: bool = False,
) -> BatchReport | None:
    """Show the plan, ask for confirmation, run it and print the report.

    Returns None when there was nothing to do or the user declined.
    """
    if plan.is_empty and not plan.skipped:
        formatter.print_nothing_to_do()
        return None

    formatter.print_plan(plan)
    if not assume_yes and not prompts.confirm("Continue?", console):
        console.print("\n[bold magenta]Gitman[/], out.")
        return None

    progress = None if formatter.use_json else SpinnerProgress(console)
    report = ActionExecutor(progress=progress).run(plan, root_path, dry_run=dry_run)
    formatter.print_report(report)
    return report


def run_setup(root_path: Path, global_cfg: ConfigStore, console: Console) -> bool:
    """First-run wizard. Returns False when the user wants to stop here."""
    console.print("Let's quickly set things up for you:\n")
    if not prompts.confirm(
        f"We're at: [cyan]{escape(str(root_path))}[/]\n"
        "  I'll run a quick scan for git repositories here. OK?",
        console,
    ):
        console.print("\nNo worries! Summon me again from another folder that you might prefer.")
        return False

    token = None
    if prompts.confirm("Would you also let me clone remote repositories for you?", console):
        console.print(f"[dim]Create a token at {TOKEN_HELP_URL}[/]")
        token = prompts.ask("Great! Insert a GitHub access token", console, password=True)
    store_token(global_cfg, token, console)
    return True


def run_folder_setup(
    global_cfg: ConfigStore, local_cfg: ConfigStore, console: Console
) -> None:
    """Decide whether this folder tracks personal or organization repositories."""
    organizations = build_remote_lister(global_cfg).list_organizations()
    if organizations:
        kind = prompts.select_one(
            ["Personal", "Organizational"],
            "What type of repositories do you want to manage in this folder?",
            console,
        )
        if kind == "Organizational":
            org = prompts.select_one(
                organizations, "Select an organization to sync with this folder:", console
            )
            local_cfg.set(TYPE_KEY, "org")
            local_cfg.set(ORG_KEY, org)
            return
    local_cfg.set(TYPE_KEY, "personal")


def run_listing(root_path: Path, console: Console, formatter: OutputFormatter) -> BatchReport | None:
    """Interactive listing: choose repositories, then pull and clone them."""
    index = discover_with_spinner(root_path, console)
    formatter.print_diagnostics(index.diagnostics)
    if not index.local and not index.remote:
        console.print("[yellow]No repositories found here.[/]")
        return None

    choices = [prompts.Choice(r.name, r.display_label, "Local") for r in index.local]
    choices += [prompts.Choice(r.name, r.display_label, "Remote") for r in index.remote]
    names = prompts.select_many(choices, "Choose repositories to continue:", console)

    resolution = index.resolve(names)
    plan = plan_actions(resolution.records, skipped=resolution.unknown)
    return confirm_and_execute(plan, root_path, console, formatter)


def run_select(root_path: Path, console: Console) -> None:
    """Pick local repositories for later runs of ``gitman update``."""
    scan = scan_with_spinner(root_path, console)
    choices = [prompts.Choice(r.name, r.display_label) for r in scan.records]
    names = prompts.select_many(choices, "Select repositories to update:", console)
    local_config(root_path).set_selected_repos(names)
    logger.debug("Saved selection: %s", ", ".join(names))
    console.print(
        "[green]✔[/] Selected repositories saved.\n"
        "From now on, run `gitman update` to update your selected repositories.\n"
        "Or, run `gitman update --all` to update all local repositories."
    )


def exit_with(report: BatchReport | None) -> None:
    if report is not None and report.exit_code:
        raise typer.Exit(report.exit_code)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    schema: bool = typer.Option(
        False,
        "--schema",
        help="Output a machine-readable description of the commands",
    ),
    set_token: str = typer.Option(
        None,
        "--set-token",
        help="Store a GitHub personal access token",
    ),
    clear_token: bool = typer.Option(
        False,
        "--clear-token",
        help="Remove the stored GitHub personal access token",
    ),
    directory: Path = typer.Option(
        None,
        "--directory",
        "-C",
        help="Folder holding the repositories (default: current directory)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log debug information to stderr",
    ),
):
    """gitman: list, pick, pull and clone your repositories in one go."""
    configure_logging(verbose)

    if schema:
        print(json.dumps(get_tool_schema(), indent=2))
        raise typer.Exit()

    root_path = (directory or Path(".")).resolve()
    ctx.obj = CliState(root_path=root_path, verbose=verbose)
    console, formatter = get_console_and_formatter(False)

    if set_token is not None or clear_token:
        with handle_fatal_errors(console):
            store_token(global_config(), None if clear_token else set_token, console)
        raise typer.Exit()

    if ctx.invoked_subcommand is not None:
        return

    console.print("Welcome to [bold magenta]Gitman[/]!\n")
    with handle_fatal_errors(console):
        global_cfg = global_config()
        local_cfg = local_config(root_path)
        if global_cfg.is_empty() and not run_setup(root_path, global_cfg, console):
            return
        if not local_cfg.has(TYPE_KEY):
            run_folder_setup(global_cfg, local_cfg, console)
        report = run_listing(root_path, console, formatter)
    exit_with(report)


@app.command(name="list")
def list_repos(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON",
    ),
):
    """List local repositories and remote ones not cloned yet."""
    state: CliState = ctx.obj
    console, formatter = get_console_and_formatter(json_output)
    with handle_fatal_errors(console):
        index = discover_with_spinner(state.root_path, console, json_output)
    formatter.print_repository_index(index, state.root_path)


@app.command()
def select(ctx: typer.Context):
    """Select local repositories for later unattended `gitman update` runs."""
    state: CliState = ctx.obj
    console, _ = get_console_and_formatter(False)
    with handle_fatal_errors(console):
        run_select(state.root_path, console)


@app.command()
def update(
    ctx: typer.Context,
    all_repos: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Update every local repository instead of the saved selection",
    ),
    select_repos: bool = typer.Option(
        False,
        "--select",
        help="Select repositories to batch update with `gitman update`",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be updated without pulling",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON",
    ),
):
    """Batch update local repositories (the saved selection, or all with --all)."""
    state: CliState = ctx.obj
    console, formatter = get_console_and_formatter(json_output)

    if select_repos:
        with handle_fatal_errors(console):
            run_select(state.root_path, console)
        return

    if json_output and not (yes or dry_run):
        console.print("[red]Error: --json needs --yes or --dry-run[/]")
        raise typer.Exit(2)

    with handle_fatal_errors(console):
        local_cfg = local_config(state.root_path)
        if not all_repos and not local_cfg.has(SELECTED_REPOS_KEY):
            if json_output:
                logger.warning("No saved selection: run `gitman update --select` or use --all")
                formatter.print_nothing_to_do()
                return
            console.print(
                "Run `gitman update --select` to select repositories to update.\n"
                "Then run `gitman update` again.\n"
                "Or, run `gitman update --all` to update all local repositories."
            )
            return

        scan = scan_with_spinner(state.root_path, console, json_output)
        index = RepositoryIndex.build(scan.records, diagnostics=scan.diagnostics)
        formatter.print_diagnostics(index.diagnostics)

        if all_repos:
            names = [record.name for record in index.local]
        else:
            names = local_cfg.get_selected_repos()

        resolution = index.resolve(names)
        plan = plan_actions(resolution.records, skipped=resolution.unknown)
        report = confirm_and_execute(
            plan,
            state.root_path,
            console,
            formatter,
            assume_yes=yes or json_output,
            dry_run=dry_run,
        )
    exit_with(report)


@app.command()
def reset(
    ctx: typer.Context,
    global_reset: bool = typer.Option(
        False,
        "--global",
        "-g",
        help="Reset both local and global configuration",
    ),
):
    """Reset this folder's configuration to defaults."""
    state: CliState = ctx.obj
    console, _ = get_console_and_formatter(False)

    with handle_fatal_errors(console):
        if global_reset:
            global_config().clear()
        local_config(state.root_path).clear()

    if global_reset:
        console.print(
            "[green]✔[/] [bold magenta]Gitman[/] global config was cleared.\n"
            "Run `gitman` and it will help you set things up again."
        )
    else:
        console.print(
            "[green]✔[/] [bold magenta]Gitman[/] local config was cleared.\n"
            "Run `gitman` to configure it again in a folder."
        )
