from __future__ import annotations

import json
from pathlib import Path

from harness import matrix, report
from harness.models import Fault, PermissionKind, RunResult, RunState, ScreenMismatch

CONTACTS = PermissionKind.CONTACTS
LOCATION = PermissionKind.LOCATION


def _result(index: int) -> RunResult:
    return RunResult(scenario=matrix.generate([CONTACTS, LOCATION])[index], state=RunState.REPORTED)


def _observed(result: RunResult) -> RunResult:
    result.alerts_observed.update({CONTACTS, LOCATION})
    return result


def test_pass_entry() -> None:
    entry = report.build_entry(_observed(_result(2)), artifacts={"end": {"path": "x.png"}})

    assert entry["outcome"] == "PASS"
    assert entry["failure_type"] == "NONE"
    assert entry["decisions"] == {"contacts": "deny", "location": "grant"}
    assert entry["alerts_observed"] == ["contacts", "location"]
    assert entry["artifacts"] == {"end": {"path": "x.png"}}


def test_failure_types() -> None:
    timeout = _result(0)
    timeout.fault = Fault(type="AlertTimeout", detail="nothing showed up")
    assert report.failure_type(timeout) == "PRECONDITION"

    unhandled = _result(0)
    unhandled.fault = Fault(type="UnhandledInterruption", detail="?", kind=CONTACTS)
    assert report.failure_type(unhandled) == "FAILED_STEP"

    mismatch = _observed(_result(3))
    mismatch.verification_failures.append(ScreenMismatch("home", CONTACTS, expected=True, actual=False))
    assert report.failure_type(mismatch) == "FAILED_ASSERTION"


def test_summary_lists_every_scenario_and_detail() -> None:
    ok = _observed(_result(0))
    bad = _observed(_result(1))
    bad.verification_failures.append(ScreenMismatch("nearby", LOCATION, expected=True, actual=None, error="tab not found"))
    faulted = _result(2)
    faulted.fault = Fault(type="UnhandledInterruption", detail="No watcher matched", kind=CONTACTS)

    lines = report.summary_lines([report.build_entry(r) for r in (ok, bad, faulted)])

    assert lines[0] == "#00 contacts-grant_location-grant: PASS"
    assert "#01 contacts-grant_location-deny: FAIL" in lines
    assert "     nearby/location: expected=True actual=None (tab not found)" in lines
    assert "     UnhandledInterruption [contacts]: No watcher matched" in lines
    assert lines[-1] == "1/3 scenarios passed"


def test_write_jsonl(tmp_path: Path) -> None:
    entries = [report.build_entry(_observed(_result(i))) for i in range(4)]

    path = report.write_jsonl(str(tmp_path / "run"), entries)

    rows = [json.loads(line) for line in Path(path).read_text(encoding="utf-8").splitlines()]
    assert [r["index"] for r in rows] == [0, 1, 2, 3]
    assert all(r["outcome"] == "PASS" for r in rows)
