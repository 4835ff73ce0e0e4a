"""Fatal error taxonomy; each maps to an error JSON and exit code 1."""

from __future__ import annotations

USAGE_TEXT = "Usage: ping-dialog --json '{...}' | --stdin | --version"


class DialogError(RuntimeError):
    """Base for fatal invocation errors reported on the output channel."""

    exit_code = 1


class UsageError(DialogError):
    """No recognized invocation mode."""

    def __init__(self, message: str = USAGE_TEXT) -> None:
        super().__init__(message)


class PayloadDecodeError(DialogError):
    """Request JSON is malformed or misses a required field."""


class DialogDisabledError(DialogError):
    """Local dialogs are turned off in config."""

    def __init__(self) -> None:
        super().__init__(
            "Local dialogs are disabled. Enable with: ping-dialog config set dialog.enabled true"
        )


class AlreadyActiveError(DialogError):
    """Another live process holds the singleton marker."""

    def __init__(self, pid: int = 0) -> None:
        super().__init__("Another dialog is already active")
        self.pid = pid


class MarkerError(DialogError):
    """The singleton marker could not be created."""

    def __init__(self, detail: str) -> None:
        super().__init__("Could not create the dialog marker: {0}".format(detail))
