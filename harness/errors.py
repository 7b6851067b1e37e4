from typing import Iterable, Optional

from harness.models import PermissionKind


class UnhandledInterruption(Exception):
    """Raised when a system dialog shows up that no watcher claims."""

    def __init__(self, alert_text: str):
        super().__init__(f"No watcher matched system dialog: {alert_text!r}")
        self.alert_text = alert_text


class AlertTimeout(Exception):
    """Raised when expected permission prompts never appeared in time."""

    def __init__(self, missing: Iterable[PermissionKind], timeout_s: float):
        self.missing = list(missing)
        self.timeout_s = timeout_s
        names = ", ".join(k.value for k in self.missing)
        super().__init__(
            f"Permission prompt(s) not seen within {timeout_s:.1f}s: {names}. "
            "Was the permission state reset before the run?"
        )


class NavigationFailure(Exception):
    """Raised when the host could not reach a screen."""

    def __init__(self, screen_id: str, reason: Optional[str] = None):
        self.screen_id = screen_id
        msg = f"Could not navigate to screen {screen_id!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class LateRegistration(Exception):
    """Raised when a watcher is registered after the triggering action began."""


class HostActionError(Exception):
    """Raised when a host primitive (tap a label, launch, dump) fails."""
