"""Machine-readable description of the gitman commands."""

from __future__ import annotations

from ._version import __version__

_REPOSITORY_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "origin": {"type": "string", "enum": ["local", "remote"]},
        "branch": {"type": ["string", "null"]},
        "has_uncommitted_changes": {"type": "boolean"},
        "clone_address": {"type": ["string", "null"]},
    },
}

_DIAGNOSTIC_SCHEMA = {
    "type": "object",
    "properties": {
        "stage": {"type": "string", "enum": ["scan", "remote", "resolve"]},
        "name": {"type": "string"},
        "reason": {"type": "string"},
    },
}

_REPORT_SCHEMA = {
    "type": "object",
    "properties": {
        "state": {"type": "string", "enum": ["planned", "executing", "completed"]},
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "action": {"type": ["string", "null"], "enum": ["pull", "clone", None]},
                    "status": {"type": "string", "enum": ["succeeded", "failed", "skipped"]},
                    "message": {"type": "string"},
                    "error": {"type": "string"},
                },
            },
        },
        "summary": {
            "type": "object",
            "properties": {
                "total": {"type": "integer"},
                "succeeded": {"type": "integer"},
                "failed": {"type": "integer"},
                "skipped": {"type": "integer"},
            },
        },
    },
}

_DIRECTORY_OPTION = {
    "type": "string",
    "description": "Global option -C/--directory: folder holding the repositories (default: current directory)",
    "default": ".",
}


def get_tool_schema() -> dict:
    """Describe the non-interactive commands, their options and JSON output."""
    return {
        "name": "gitman",
        "version": __version__,
        "description": "Manage a folder of git clones next to your GitHub repositories: list local repositories and remote ones not cloned yet, then batch-pull and batch-clone a selection. Per-item failures never abort a batch; the exit status is 1 when any item failed and 2 on fatal errors.",
        "usage": "gitman [-C <directory>] <command> [options]",
        "tools": [
            {
                "name": "list",
                "description": "List local repositories (branch, uncommitted changes) and remote repositories that are not cloned locally. Remote listing needs a GitHub token (--set-token or GITMAN_GITHUB_TOKEN/GH_TOKEN/GITHUB_TOKEN).",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "directory": _DIRECTORY_OPTION,
                        "json": {
                            "type": "boolean",
                            "description": "Output as JSON for machine parsing",
                            "default": False,
                        },
                    },
                    "required": [],
                },
                "outputSchema": {
                    "type": "object",
                    "properties": {
                        "root": {"type": "string"},
                        "local": {"type": "array", "items": _REPOSITORY_SCHEMA},
                        "remote": {"type": "array", "items": _REPOSITORY_SCHEMA},
                        "diagnostics": {"type": "array", "items": _DIAGNOSTIC_SCHEMA},
                    },
                },
            },
            {
                "name": "update",
                "description": "Pull the saved selection of local repositories (see `gitman select`), or every local repository with --all. Names in the saved selection that are no longer present are reported as skipped.",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "directory": _DIRECTORY_OPTION,
                        "all": {
                            "type": "boolean",
                            "description": "Update every local repository instead of the saved selection",
                            "default": False,
                        },
                        "yes": {
                            "type": "boolean",
                            "description": "Do not ask for confirmation (required with --json unless --dry-run)",
                            "default": False,
                        },
                        "dry_run": {
                            "type": "boolean",
                            "description": "Show what would be updated without pulling",
                            "default": False,
                        },
                        "json": {
                            "type": "boolean",
                            "description": "Output as JSON for machine parsing",
                            "default": False,
                        },
                    },
                    "required": [],
                },
                "outputSchema": _REPORT_SCHEMA,
            },
            {
                "name": "reset",
                "description": "Clear this folder's gitman configuration (type, organization, saved selection). With --global, also clear the user configuration including the GitHub token.",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "directory": _DIRECTORY_OPTION,
                        "global": {
                            "type": "boolean",
                            "description": "Reset global configuration as well",
                            "default": False,
                        },
                    },
                    "required": [],
                },
            },
        ],
    }
