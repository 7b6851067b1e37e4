import itertools
from typing import Iterable, List

from harness.models import PermissionDecision, PermissionKind, Scenario


def generate(kinds: Iterable[PermissionKind]) -> List[Scenario]:
    """Every Grant/Deny combination over `kinds`, in a stable order.

    Kinds follow their enum order and GRANT comes before DENY, so index 0 is
    always "grant everything" and the last index is "deny everything". Reruns
    produce the same indices, which is what makes a failing scenario easy to
    point at in the report.
    """
    ordered = PermissionKind.ordered(kinds)
    decisions = list(PermissionDecision)

    scenarios = []
    for i, combo in enumerate(itertools.product(decisions, repeat=len(ordered))):
        scenarios.append(Scenario(index=i, decisions=tuple(zip(ordered, combo))))
    return scenarios


def find(scenarios: Iterable[Scenario], name_or_index: str) -> Scenario:
    """Look a scenario up by name, or by index when given digits."""
    key = (name_or_index or "").strip()
    for s in scenarios:
        if s.name == key or (key.isdigit() and s.index == int(key)):
            return s
    raise ValueError(f"Unknown scenario: {name_or_index}")
