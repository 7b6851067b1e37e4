from __future__ import annotations

from typing import Callable, Iterable, Optional

import pytest

from harness.driver import offer_to_watchers
from harness.errors import HostActionError, NavigationFailure, UnhandledInterruption
from harness.models import PermissionDecision, PermissionKind
from harness.profile import AppProfile, default_profile


class FakeHostDriver:
    """Scripted stand-in for a device running the app under test.

    It models what the real app does: whichever button gets pressed on a
    prompt decides that permission, and a banner is shown on a screen when the
    app's own rules say so and the permission isn't granted.
    """

    def __init__(
        self,
        profile: AppProfile,
        dialogs: Optional[Iterable[str]] = None,
        late_dialogs: Optional[Iterable[str]] = None,
        app_rules: Optional[dict] = None,
        unreachable: Iterable[str] = (),
    ):
        self.profile = profile
        if dialogs is None:
            dialogs = [profile.alert_specs[k].expected_alert_text for k in profile.kinds]
        self._launch_dialogs = list(dialogs)
        self._late_dialogs = list(late_dialogs or [])
        self.app_rules = dict(profile.screen_message_rules if app_rules is None else app_rules)
        self.unreachable = set(unreachable)

        self.watchers: list = []
        self.pending: list = []
        self.pressed: list = []
        self.granted: dict = {}
        self.current_screen: Optional[str] = None
        self.launches = 0
        self.pumps = 0
        self.resets = 0
        self.navigations: list = []
        self.on_launch: Optional[Callable[[], None]] = None

    def register_interruption_watcher(self, matcher, handler):
        self.watchers.append((matcher, handler))

    def reset_interruption_watchers(self):
        self.resets += 1
        self.watchers = []

    def launch_app(self):
        self.launches += 1
        self.pending = list(self._launch_dialogs)
        if self.on_launch:
            self.on_launch()
        self.pump_interruptions()

    def pump_interruptions(self) -> int:
        self.pumps += 1
        if self.pumps == 3 and self._late_dialogs:
            self.pending.extend(self._late_dialogs)
            self._late_dialogs = []
        handled = 0
        while self.pending:
            text = self.pending[0]
            if not offer_to_watchers(self.watchers, text):
                raise UnhandledInterruption(text)
            self.pending.pop(0)
            handled += 1
        return handled

    def press_button(self, label: str):
        if not self.pending:
            raise HostActionError(f"Button {label!r} is not on screen")
        text = self.pending[0]
        for spec in self.profile.alert_specs.values():
            if spec.expected_alert_text != text:
                continue
            for decision, button in spec.button_text_for_decision.items():
                if button == label:
                    self.pressed.append((spec.kind, label))
                    self.granted[spec.kind] = decision is PermissionDecision.GRANT
                    return
        raise HostActionError(f"Button {label!r} is not on screen")

    def navigate_to_screen(self, screen_id: str):
        self.navigations.append(screen_id)
        if screen_id in self.unreachable:
            raise NavigationFailure(screen_id, "tab not found")
        self.current_screen = screen_id

    def query_element_visible(self, element_id: str) -> bool:
        kind = next(k for k, v in self.profile.message_elements.items() if v == element_id)
        shows = self.app_rules.get((self.current_screen, kind), False)
        return bool(shows) and not self.granted.get(kind, False)


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def profile() -> AppProfile:
    return default_profile()


@pytest.fixture
def contacts_text(profile) -> str:
    return profile.alert_specs[PermissionKind.CONTACTS].expected_alert_text


@pytest.fixture
def location_text(profile) -> str:
    return profile.alert_specs[PermissionKind.LOCATION].expected_alert_text


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_driver(profile):
    def _make(**kwargs) -> FakeHostDriver:
        return FakeHostDriver(profile, **kwargs)

    return _make
