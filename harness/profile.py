"""
App knowledge table: which prompts the app raises, which screens it has, and
which of those screens show a "permission disabled" banner.

The built-in DEFAULT_PROFILE describes the demo app the harness was written
against (three screens, contacts + location). Point PERMISSION_PROFILE at a
JSON file to describe a different app; see `load_profile` for the format.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from harness.models import AlertSpec, PermissionDecision, PermissionKind


@dataclass(frozen=True)
class ScreenSpec:
    screen_id: str
    # Label of the tab/menu item that opens the screen.
    tab_label: str
    # resource-id that is only present once the screen is showing.
    marker_id: str


@dataclass
class AppProfile:
    package: str
    alert_specs: Dict[PermissionKind, AlertSpec]
    screens: List[ScreenSpec]
    message_elements: Dict[PermissionKind, str]
    screen_message_rules: Dict[Tuple[str, PermissionKind], bool] = field(default_factory=dict)

    def __post_init__(self):
        kinds = set(self.alert_specs)
        missing = [k.value for k in kinds if k not in self.message_elements]
        if missing:
            raise ValueError(f"No banner element id for: {missing}")
        screen_ids = set(self.screen_ids)
        for screen_id, kind in self.screen_message_rules:
            if screen_id not in screen_ids:
                raise ValueError(f"Rule refers to unknown screen {screen_id!r}")
            if kind not in kinds:
                raise ValueError(f"Rule refers to untracked permission {kind.value!r}")

    @property
    def kinds(self) -> List[PermissionKind]:
        return PermissionKind.ordered(self.alert_specs)

    @property
    def screen_ids(self) -> List[str]:
        return [s.screen_id for s in self.screens]

    def screen(self, screen_id: str) -> ScreenSpec:
        for s in self.screens:
            if s.screen_id == screen_id:
                return s
        raise KeyError(screen_id)


def _alert(kind: PermissionKind, text: str, allow: str, deny: str) -> AlertSpec:
    return AlertSpec(
        kind=kind,
        expected_alert_text=text,
        button_text_for_decision={
            PermissionDecision.GRANT: allow,
            PermissionDecision.DENY: deny,
        },
    )


DEMO_PACKAGE = "com.example.nearbyfriends"
DEMO_APP_LABEL = "Nearby Friends"


def default_profile(package: str = DEMO_PACKAGE, app_label: str = DEMO_APP_LABEL) -> AppProfile:
    # Wording matches the Android 12+ permission controller dialogs.
    ids = f"{package}:id"
    return AppProfile(
        package=package,
        alert_specs={
            PermissionKind.CONTACTS: _alert(
                PermissionKind.CONTACTS,
                f"Allow {app_label} to access your contacts?",
                "Allow",
                "Don’t allow",
            ),
            PermissionKind.LOCATION: _alert(
                PermissionKind.LOCATION,
                f"Allow {app_label} to access this device’s location?",
                "While using the app",
                "Don’t allow",
            ),
        },
        screens=[
            ScreenSpec("home", "Home", f"{ids}/home_root"),
            ScreenSpec("friends", "Friends", f"{ids}/friends_root"),
            ScreenSpec("nearby", "Nearby", f"{ids}/nearby_root"),
        ],
        message_elements={
            PermissionKind.CONTACTS: f"{ids}/contacts_disabled_banner",
            PermissionKind.LOCATION: f"{ids}/location_disabled_banner",
        },
        screen_message_rules={
            ("home", PermissionKind.CONTACTS): True,
            ("home", PermissionKind.LOCATION): True,
            ("friends", PermissionKind.CONTACTS): True,
            ("nearby", PermissionKind.LOCATION): True,
        },
    )


DEFAULT_PROFILE = default_profile()


def _kind(value: str) -> PermissionKind:
    try:
        return PermissionKind((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown permission kind: {value!r}") from None


def profile_from_dict(obj: dict) -> AppProfile:
    """Build a profile from its JSON shape.

    {
      "package": "com.example.app",
      "alerts": [{"kind": "contacts", "text": "...", "grant": "Allow", "deny": "Don't allow"}],
      "screens": [{"id": "home", "tab": "Home", "marker": "com.example.app:id/home_root"}],
      "messages": {"contacts": "com.example.app:id/contacts_disabled_banner"},
      "rules": {"home": ["contacts", "location"]}
    }

    `rules` lists, per screen, the kinds whose banner that screen shows when
    the permission is denied.
    """
    if not obj.get("package"):
        raise ValueError("Profile is missing 'package'")

    alerts = {}
    for a in obj.get("alerts") or []:
        kind = _kind(a.get("kind"))
        alerts[kind] = _alert(kind, a.get("text") or "", a.get("grant") or "", a.get("deny") or "")
    if not alerts:
        raise ValueError("Profile has no 'alerts'")

    screens = [
        ScreenSpec(screen_id=s["id"], tab_label=s.get("tab") or s["id"], marker_id=s.get("marker") or "")
        for s in obj.get("screens") or []
    ]

    messages = {_kind(k): v for k, v in (obj.get("messages") or {}).items()}

    rules = {}
    for screen_id, kinds in (obj.get("rules") or {}).items():
        for k in kinds:
            rules[(screen_id, _kind(k))] = True

    return AppProfile(
        package=obj["package"],
        alert_specs=alerts,
        screens=screens,
        message_elements=messages,
        screen_message_rules=rules,
    )


def load_profile(path: str) -> AppProfile:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Permission profile not found: {p}")
    return profile_from_dict(json.loads(p.read_text(encoding="utf-8")))
