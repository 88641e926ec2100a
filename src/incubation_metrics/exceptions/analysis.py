"""Analysis-related exceptions: repository access, checkouts, diffs, collaborators."""

from typing import Optional

from .base import IncubationMetricsError


class AnalysisError(IncubationMetricsError):
    """Base class for analysis-related errors."""

    pass


class RepositoryAccessError(AnalysisError):
    """Raised when a repository cannot be opened or read.

    Fatal for the repository being analyzed, never for sibling analyses.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Cannot access repository: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason


class CheckoutFailure(AnalysisError):
    """Raised when the working tree cannot be moved to a ref."""

    def __init__(self, ref: str, reason: str):
        super().__init__(f"Cannot checkout {ref}", details={"ref": ref, "reason": reason})
        self.ref = ref
        self.reason = reason


class DiffComputationFailure(AnalysisError):
    """Raised when the diff of a commit against its parent cannot be produced."""

    def __init__(self, sha: str, reason: str):
        super().__init__(
            f"Cannot compute diff for commit {sha}", details={"sha": sha, "reason": reason}
        )
        self.sha = sha
        self.reason = reason


class ExternalCollaboratorFailure(AnalysisError):
    """Raised by an out-of-band or source-tree metrics collaborator."""

    def __init__(self, collaborator: str, reason: str):
        super().__init__(
            f"Collaborator {collaborator} failed",
            details={"collaborator": collaborator, "reason": reason},
        )
        self.collaborator = collaborator
        self.reason = reason


class WindowAssignmentError(AnalysisError):
    """Raised when a selected commit falls into no measurement window."""

    def __init__(self, sha: str, commit_date: str, reason: Optional[str] = None):
        details = {"sha": sha, "date": commit_date}
        if reason:
            details["reason"] = reason
        super().__init__(f"Commit {sha} matches no measurement window", details=details)
        self.sha = sha
        self.commit_date = commit_date
