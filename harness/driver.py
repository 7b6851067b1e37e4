"""
Host UI driver capability and its Android implementation.

The runner and verifier only ever talk to the `HostDriver` protocol. The
Android version drives a device over adb and emulates the "interruption
monitor" model of UI test frameworks by cooperative polling: whenever the
harness pumps, the driver dumps the hierarchy, and if a runtime permission
dialog is up it offers the dialog text to the registered watchers in order.
"""

import logging
import time
from typing import Callable, List, Protocol, Tuple

from adb.device import AndroidDevice
from harness.android_helpers import (
    _safe_parse_xml as safe_parse_xml,
    find_node_by_res_id,
    find_node_by_text,
    find_permission_dialog_text,
    is_node_visible,
    tap_bounds_center,
)
from harness.errors import HostActionError, NavigationFailure, UnhandledInterruption

Watcher = Callable[[str], bool]


class HostDriver(Protocol):
    def register_interruption_watcher(self, matcher: str, handler: Watcher) -> None: ...

    def reset_interruption_watchers(self) -> None: ...

    def press_button(self, label: str) -> None: ...

    def query_element_visible(self, element_id: str) -> bool: ...

    def navigate_to_screen(self, screen_id: str) -> None: ...

    def launch_app(self) -> None: ...

    def pump_interruptions(self) -> int: ...


def offer_to_watchers(watchers: List[Tuple[str, Watcher]], alert_text: str) -> bool:
    """First watcher to return True consumes the dialog."""
    for matcher, handler in watchers:
        if handler(alert_text):
            logging.debug("[ALERT] claimed by watcher %r", matcher)
            return True
    return False


class AndroidHostDriver:
    """HostDriver on top of AndroidDevice.

    It still doesn't decide anything about scenarios; it just knows how to
    find a dialog, a label or a resource-id in a uiautomator dump.
    """

    # A press that doesn't dismiss the dialog would otherwise loop forever.
    MAX_DIALOGS_PER_PUMP = 8

    def __init__(
        self,
        device: AndroidDevice,
        profile,
        settle_ms: int = 400,
        nav_timeout_s: float = 4.0,
        poll_ms: int = 250,
    ):
        self.device = device
        self.profile = profile
        self.settle_ms = settle_ms
        self.nav_timeout_s = nav_timeout_s
        self.poll_ms = poll_ms
        self._watchers: List[Tuple[str, Watcher]] = []

    # Interruption watchers

    def register_interruption_watcher(self, matcher: str, handler: Watcher):
        self._watchers.append((matcher, handler))

    def reset_interruption_watchers(self):
        self._watchers = []

    def pump_interruptions(self) -> int:
        handled = 0
        while True:
            root = safe_parse_xml(self.device.ui_dump() or "")
            alert_text = find_permission_dialog_text(root)
            if alert_text is None:
                return handled

            if handled >= self.MAX_DIALOGS_PER_PUMP:
                raise HostActionError(f"Permission dialog did not go away: {alert_text!r}")

            logging.info(f"[ALERT] system dialog: {alert_text!r}")
            if not offer_to_watchers(self._watchers, alert_text):
                raise UnhandledInterruption(alert_text)
            handled += 1
            self.device.sleep_ms(self.settle_ms)

    # Primitives

    def press_button(self, label: str):
        root = safe_parse_xml(self.device.ui_dump() or "")
        node = find_node_by_text(root, label)
        if node is None or not tap_bounds_center(self.device, node.attrib.get("bounds", "")):
            raise HostActionError(f"Button {label!r} is not on screen")

    def query_element_visible(self, element_id: str) -> bool:
        root = safe_parse_xml(self.device.ui_dump() or "")
        # An empty dump says nothing about the app; don't report it as "banner missing".
        if root is None:
            raise HostActionError(f"UI dump was empty while querying {element_id!r}")
        node = find_node_by_res_id(root, element_id)
        return node is not None and is_node_visible(node)

    def launch_app(self):
        try:
            self.device.launch_app(self.profile.package)
        except RuntimeError as e:
            raise HostActionError(str(e)) from e
        # First-run prompts usually show before launch "returns"; handle them now
        # so the watchers see the first dialog.
        self.pump_interruptions()

    def navigate_to_screen(self, screen_id: str):
        try:
            screen = self.profile.screen(screen_id)
        except KeyError:
            raise NavigationFailure(screen_id, "unknown screen") from None

        self.pump_interruptions()
        root = safe_parse_xml(self.device.ui_dump() or "")
        if root is None:
            raise NavigationFailure(screen_id, "UI dump was empty")
        if find_node_by_res_id(root, screen.marker_id) is not None:
            return

        tab = find_node_by_text(root, screen.tab_label)
        if tab is None or not tap_bounds_center(self.device, tab.attrib.get("bounds", "")):
            raise NavigationFailure(screen_id, f"tab {screen.tab_label!r} not found")

        deadline = time.monotonic() + self.nav_timeout_s
        while time.monotonic() < deadline:
            root = safe_parse_xml(self.device.ui_dump() or "")
            if find_node_by_res_id(root, screen.marker_id) is not None:
                return
            self.device.sleep_ms(self.poll_ms)
        raise NavigationFailure(screen_id, f"marker {screen.marker_id!r} never appeared")
