"""Exceptions shared across gitman modules."""


class GitmanError(Exception):
    """Base class for errors gitman reports to the user."""


class WorkingRootError(GitmanError):
    """The working directory cannot be read or written.

    Raised before any pull or clone runs, so nothing has been changed on disk.
    """
