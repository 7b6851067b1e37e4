import json
import os
from typing import Iterable, List, Optional

from harness.models import RunResult


def failure_type(result: RunResult) -> str:
    """
    Same spirit as the old FAIL STEP vs FAIL ASSERTION split:
    - PRECONDITION: prompts never came, permission state probably wasn't clean
    - FAILED_STEP: the run itself broke (unknown dialog, adb, navigation host error)
    - FAILED_ASSERTION: the run finished but some banner was wrong
    """
    if result.passed:
        return "NONE"
    if result.fault is not None:
        if result.fault.type in ("AlertTimeout", "PreconditionFailed"):
            return "PRECONDITION"
        return "FAILED_STEP"
    if result.missing_alerts:
        return "PRECONDITION"
    return "FAILED_ASSERTION"


def build_entry(result: RunResult, artifacts: Optional[dict] = None) -> dict:
    scenario = result.scenario
    return {
        "index": scenario.index,
        "name": scenario.name,
        "decisions": scenario.as_dict(),
        "outcome": "PASS" if result.passed else "FAIL",
        "failure_type": failure_type(result),
        "fault": result.fault.to_dict() if result.fault else None,
        "alerts_observed": sorted(k.value for k in result.alerts_observed),
        "missing_alerts": [k.value for k in result.missing_alerts],
        "mismatches": [m.to_dict() for m in result.verification_failures],
        "state": result.state.value,
        "artifacts": artifacts or {},
    }


def write_jsonl(run_dir: str, entries: Iterable[dict], filename: str = "results.jsonl") -> str:
    os.makedirs(run_dir, exist_ok=True)
    path = os.path.join(run_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        for e in entries:
            f.write(json.dumps(e, ensure_ascii=False) + "\n")
    return path


def summary_lines(entries: List[dict]) -> List[str]:
    """One line per scenario, then the failure details indented below it."""
    lines = []
    for e in entries:
        lines.append(f"#{e['index']:02d} {e['name']}: {e['outcome']}")
        if e["fault"]:
            f = e["fault"]
            kind = f" [{f['kind']}]" if f.get("kind") else ""
            lines.append(f"     {f['type']}{kind}: {f['detail']}")
        if e["missing_alerts"] and not e["fault"]:
            lines.append(f"     missing alerts: {', '.join(e['missing_alerts'])}")
        for m in e["mismatches"]:
            line = f"     {m['screen']}/{m['kind']}: expected={m['expected']} actual={m['actual']}"
            if m.get("error"):
                line += f" ({m['error']})"
            lines.append(line)

    passed = sum(1 for e in entries if e["outcome"] == "PASS")
    lines.append(f"{passed}/{len(entries)} scenarios passed")
    return lines
