import logging
from typing import Callable, Dict, Tuple

from harness.errors import LateRegistration
from harness.models import AlertSpec, PermissionDecision, PermissionKind


class AlertInterceptionRegistry:
    """Turns host-driven system dialogs into deterministic button presses.

    One registry per run. It is handed the host driver so it can install
    watchers and press buttons, and every `on_handled` callback it gets is
    expected to write into that run's RunResult only.

    Matching is exact string equality on the dialog text. Two prompts with
    similar wording (contacts vs location) must never be confused, so there is
    no fuzzy fallback.
    """

    def __init__(self, driver):
        self.driver = driver
        self._entries: Dict[str, Tuple[AlertSpec, PermissionDecision, Callable[[PermissionKind], None]]] = {}
        self._armed = False

    def register(
        self,
        spec: AlertSpec,
        decision: PermissionDecision,
        on_handled: Callable[[PermissionKind], None],
    ):
        if self._armed:
            raise LateRegistration(
                f"Watcher for {spec.kind.value} registered after the triggering action started"
            )
        text = spec.expected_alert_text
        if text in self._entries:
            other = self._entries[text][0].kind.value
            raise ValueError(f"Alert text for {spec.kind.value} is already registered for {other}: {text!r}")

        self._entries[text] = (spec, decision, on_handled)

        def watcher(alert_text: str) -> bool:
            # Each watcher only claims its own dialog.
            if alert_text != text:
                return False
            return self.handle(alert_text)

        self.driver.register_interruption_watcher(text, watcher)
        logging.debug("[ALERT] watcher installed kind=%s decision=%s", spec.kind.value, decision.value)

    def arm(self):
        """Called right before the triggering action; no more registrations after this."""
        self._armed = True

    def handle(self, alert_text: str) -> bool:
        entry = self._entries.get(alert_text)
        if entry is None:
            logging.debug("[ALERT] not ours: %r", alert_text)
            return False

        spec, decision, on_handled = entry
        label = spec.button_for(decision)
        logging.info(f"[ALERT] {spec.kind.value} prompt -> pressing '{label}' ({decision.value})")
        self.driver.press_button(label)
        on_handled(spec.kind)
        return True
