from __future__ import annotations

import json
from pathlib import Path

import pytest

import main
from harness import matrix
from harness.models import PermissionKind
from harness.profile import DEMO_APP_LABEL


class RecordingDevice:
    def __init__(self):
        self.calls = []

    def force_stop(self, package):
        self.calls.append(("force_stop", package))

    def pm_clear(self, package):
        self.calls.append(("pm_clear", package))

    def reset_permissions(self, package, permissions):
        self.calls.append(("reset_permissions", package, list(permissions)))

    def screenshot(self, path):
        raise OSError("no device in tests")


class ShotRecordingDevice(RecordingDevice):
    def screenshot(self, path):
        self.calls.append(("screenshot", Path(path).name))
        raise OSError("no device in tests")


@pytest.fixture(autouse=True)
def _no_reset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESET_MODE", "none")
    monkeypatch.setenv("ALERT_TIMEOUT_S", "0")
    monkeypatch.delenv("PERMISSION_PROFILE", raising=False)
    monkeypatch.delenv("APP_PACKAGE", raising=False)
    monkeypatch.delenv("APP_LABEL", raising=False)


def test_run_suite_writes_one_entry_per_scenario(profile, make_driver, tmp_path: Path) -> None:
    run_dir, entries = main.run_suite(
        profile=profile,
        device=RecordingDevice(),
        driver=make_driver(),
        run_dir=str(tmp_path / "run"),
    )

    assert [e["name"] for e in entries] == [
        "contacts-grant_location-grant",
        "contacts-grant_location-deny",
        "contacts-deny_location-grant",
        "contacts-deny_location-deny",
    ]
    assert all(e["outcome"] == "PASS" for e in entries)
    rows = (tmp_path / "run" / "results.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(r)["index"] for r in rows] == [0, 1, 2, 3]
    assert entries[0]["artifacts"]["start"]["path"] is None
    assert entries[0]["artifacts"]["end"]["path"] is None


def test_run_suite_reports_timeouts_without_stopping(profile, make_driver, tmp_path: Path) -> None:
    _, entries = main.run_suite(
        profile=profile,
        device=RecordingDevice(),
        driver=make_driver(dialogs=[]),
        run_dir=str(tmp_path / "run"),
    )

    assert len(entries) == 4
    assert {e["failure_type"] for e in entries} == {"PRECONDITION"}
    assert entries[3]["missing_alerts"] == ["contacts", "location"]


def test_run_one_by_index(profile, make_driver, tmp_path: Path) -> None:
    _, entry = main.run_one("2", profile=profile, device=RecordingDevice(), driver=make_driver(), run_dir=str(tmp_path))

    assert entry["name"] == "contacts-deny_location-grant"
    assert entry["outcome"] == "PASS"


def test_reset_hook_modes(profile) -> None:
    device = RecordingDevice()
    scenario = object()

    main.make_reset_hook(device, profile, "clear")(scenario)
    main.make_reset_hook(device, profile, "permissions")(scenario)

    assert device.calls[:2] == [("force_stop", profile.package), ("pm_clear", profile.package)]
    assert device.calls[3] == (
        "reset_permissions",
        profile.package,
        [
            "android.permission.READ_CONTACTS",
            "android.permission.ACCESS_FINE_LOCATION",
            "android.permission.ACCESS_COARSE_LOCATION",
        ],
    )
    assert main.make_reset_hook(device, profile, "none") is None
    with pytest.raises(ValueError):
        main.make_reset_hook(device, profile, "factory-reset")


def test_app_package_retargets_default_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_PACKAGE", "org.demo")
    monkeypatch.setenv("APP_LABEL", "Demo")

    p = main.load_configured_profile()

    assert p.package == "org.demo"
    assert p.screen("home").marker_id == "org.demo:id/home_root"


def test_app_package_alone_keeps_demo_label(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_PACKAGE", "org.demo")

    p = main.load_configured_profile()

    assert p.package == "org.demo"
    assert p.alert_specs[PermissionKind.CONTACTS].expected_alert_text == (
        f"Allow {DEMO_APP_LABEL} to access your contacts?"
    )


def test_start_frame_is_taken_after_reset(profile, make_driver, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESET_MODE", "clear")
    device = ShotRecordingDevice()
    scenario = matrix.generate(profile.kinds)[0]

    _, entries = main.run_suite(
        scenarios=[scenario],
        profile=profile,
        device=device,
        driver=make_driver(),
        run_dir=str(tmp_path),
    )

    assert device.calls == [
        ("force_stop", profile.package),
        ("pm_clear", profile.package),
        ("screenshot", "00_contacts-grant_location-grant_start.png"),
        ("screenshot", "00_contacts-grant_location-grant_end.png"),
    ]
    assert set(entries[0]["artifacts"]) == {"start", "end"}


def test_failed_reset_has_no_start_frame(profile, make_driver, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESET_MODE", "clear")
    device = ShotRecordingDevice()

    def adb_gone(package):
        raise RuntimeError("adb: no devices/emulators found")

    device.pm_clear = adb_gone

    _, entries = main.run_suite(
        scenarios=matrix.generate(profile.kinds)[:1],
        profile=profile,
        device=device,
        driver=make_driver(),
        run_dir=str(tmp_path),
    )

    assert entries[0]["outcome"] == "FAIL"
    assert list(entries[0]["artifacts"]) == ["end"]


def test_empty_scenario_list_runs_nothing(profile, make_driver, tmp_path: Path) -> None:
    driver = make_driver()

    _, entries = main.run_suite(
        scenarios=[],
        profile=profile,
        device=RecordingDevice(),
        driver=driver,
        run_dir=str(tmp_path),
    )

    assert entries == []
    assert driver.launches == 0
    assert (tmp_path / "results.jsonl").read_text(encoding="utf-8") == ""
