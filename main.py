"""
Entry point for the first-run permission matrix.

For every Grant/Deny combination over the app's permission prompts this
resets the app, launches it, answers each system dialog through exact-text
watchers, walks the app screens checking the "permission disabled" banners,
and writes one verdict per scenario.

Agent orchestration (so an ADK agent can trigger runs) lives in
permission_qa_adk/agent.py and just calls into run_suite / run_one here.
"""

import logging
import os
import sys
from datetime import datetime

from adb.device import AndroidDevice
from harness import artifacts, matrix, report
from harness.driver import AndroidHostDriver
from harness.models import PermissionKind
from harness.profile import DEFAULT_PROFILE, DEMO_APP_LABEL, default_profile, load_profile
from harness.runner import ScenarioRunner

# Runtime permission names behind each prompt, for RESET_MODE=permissions.
ANDROID_PERMISSIONS = {
    PermissionKind.CONTACTS: ["android.permission.READ_CONTACTS"],
    PermissionKind.LOCATION: [
        "android.permission.ACCESS_FINE_LOCATION",
        "android.permission.ACCESS_COARSE_LOCATION",
    ],
}

RESET_MODES = {"clear", "permissions", "none"}

logging.basicConfig(level=logging.INFO, format="%(message)s")


def _bool_env(name: str, default: bool) -> bool:
    v = os.environ.get(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _int_env(name: str, default: int) -> int:
    v = os.environ.get(name)
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    v = os.environ.get(name)
    try:
        return float(v) if v is not None else default
    except ValueError:
        return default


if _bool_env("VERBOSE_LOGS", False):
    logging.getLogger().setLevel(logging.DEBUG)


def load_configured_profile():
    """PERMISSION_PROFILE (json) wins; otherwise the demo profile, optionally re-targeted by APP_PACKAGE."""
    path = os.environ.get("PERMISSION_PROFILE")
    if path:
        return load_profile(path)
    package = os.environ.get("APP_PACKAGE")
    if package:
        return default_profile(package=package, app_label=os.environ.get("APP_LABEL", DEMO_APP_LABEL))
    return DEFAULT_PROFILE


def make_reset_hook(device: AndroidDevice, profile, mode: str):
    """The clean-permission-state precondition, done from outside the harness core."""
    if mode not in RESET_MODES:
        raise ValueError(f"RESET_MODE must be one of {sorted(RESET_MODES)}, got {mode!r}")
    if mode == "none":
        return None

    def reset(scenario):
        device.force_stop(profile.package)
        if mode == "clear":
            device.pm_clear(profile.package)
        else:
            perms = [p for k in profile.kinds for p in ANDROID_PERMISSIONS.get(k, [])]
            device.reset_permissions(profile.package, perms)

    return reset


def run_suite(scenarios=None, profile=None, device=None, driver=None, run_dir=None):
    """Run the matrix (or a subset) and return (run_dir, entries)."""
    logging.info("=== Permission Matrix Run ===")
    logging.info(f"Time: {datetime.now().isoformat(timespec='seconds')}")

    profile = profile or load_configured_profile()
    device = device or AndroidDevice(serial=os.environ.get("ANDROID_SERIAL"))
    poll_ms = _int_env("POLL_MS", 250)
    driver = driver or AndroidHostDriver(
        device,
        profile,
        settle_ms=_int_env("SETTLE_MS", 400),
        nav_timeout_s=_float_env("NAV_TIMEOUT_S", 4.0),
        poll_ms=poll_ms,
    )
    runner = ScenarioRunner(
        driver,
        profile,
        alert_timeout_s=_float_env("ALERT_TIMEOUT_S", 10.0),
        poll_interval_s=poll_ms / 1000.0,
    )
    reset = make_reset_hook(device, profile, os.environ.get("RESET_MODE", "clear").strip().lower())

    scenarios_to_run = list(scenarios if scenarios is not None else matrix.generate(profile.kinds))
    logging.info(f"[MATRIX] package={profile.package} scenarios={len(scenarios_to_run)} screens={profile.screen_ids}")

    run_dir = run_dir or os.path.join(os.environ.get("RUNS_DIR", "runs"), datetime.now().strftime("%Y%m%d_%H%M%S"))
    os.makedirs(run_dir, exist_ok=True)

    entries = []
    for scenario in scenarios_to_run:
        logging.info(f"\n--- Running #{scenario.index} {scenario.name} ---")
        prefix = f"{scenario.index:02d}_{scenario.name}"
        shots = {}

        def before_each(s):
            if reset is not None:
                reset(s)
            # Clean-state frame, before the app is launched.
            shots["start"] = artifacts.capture(device, run_dir, f"{prefix}_start")

        # run_matrix keeps one scenario's failure away from the next.
        (result,) = runner.run_matrix([scenario], before_each=before_each)
        shots["end"] = artifacts.capture(device, run_dir, f"{prefix}_end")
        entry = report.build_entry(result, artifacts=shots)
        logging.info(f"Result: {entry['outcome']} ({entry['failure_type']})")
        entries.append(entry)

    # Write a simple JSONL log for CI + debugging.
    report.write_jsonl(run_dir, entries)
    for line in report.summary_lines(entries):
        logging.info(line)

    logging.info(f"\nDone. Artifacts + results saved under: {run_dir}")
    return run_dir, entries


def run_one(name_or_index: str, profile=None, **kwargs):
    """Run a single scenario (by name or index) and return (run_dir, entry)."""
    profile = profile or load_configured_profile()
    scenario = matrix.find(matrix.generate(profile.kinds), name_or_index)
    run_dir, entries = run_suite(scenarios=[scenario], profile=profile, **kwargs)
    return run_dir, entries[0] if entries else None


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if argv:
        _, entry = run_one(argv[0])
        return 0 if entry and entry["outcome"] == "PASS" else 1
    _, entries = run_suite()
    return 0 if all(e["outcome"] == "PASS" for e in entries) else 1


if __name__ == "__main__":
    sys.exit(main())
