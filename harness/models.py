"""
Data model for the first-run permission matrix.

Everything here is plain data. The only mutable thing is RunResult, and each
run owns exactly one of those.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Set, Tuple


class PermissionKind(Enum):
    # Definition order is the fixed kind ordering used by the matrix.
    CONTACTS = "contacts"
    LOCATION = "location"

    @classmethod
    def ordered(cls, kinds) -> List["PermissionKind"]:
        order = list(cls)
        return sorted(set(kinds), key=order.index)


class PermissionDecision(Enum):
    GRANT = "grant"
    DENY = "deny"


class RunState(Enum):
    IDLE = "idle"
    PRECONDITION_ASSUMED = "precondition_assumed"
    RUNNING = "running"
    AWAITING_ALERTS = "awaiting_alerts"
    VERIFYING = "verifying"
    REPORTED = "reported"


@dataclass(frozen=True)
class AlertSpec:
    kind: PermissionKind
    expected_alert_text: str
    button_text_for_decision: Mapping[PermissionDecision, str]

    def __post_init__(self):
        missing = [d.value for d in PermissionDecision if not self.button_text_for_decision.get(d)]
        if missing:
            raise ValueError(f"AlertSpec for {self.kind.value} has no button label for: {missing}")
        if not self.expected_alert_text:
            raise ValueError(f"AlertSpec for {self.kind.value} has empty alert text")

    def button_for(self, decision: PermissionDecision) -> str:
        return self.button_text_for_decision[decision]


@dataclass(frozen=True)
class Scenario:
    """One complete Grant/Deny assignment, in fixed kind order."""

    index: int
    decisions: Tuple[Tuple[PermissionKind, PermissionDecision], ...]

    @property
    def kinds(self) -> Tuple[PermissionKind, ...]:
        return tuple(k for k, _ in self.decisions)

    @property
    def name(self) -> str:
        if not self.decisions:
            return "no-permissions"
        return "_".join(f"{k.value}-{d.value}" for k, d in self.decisions)

    def decision_for(self, kind: PermissionKind) -> PermissionDecision:
        for k, d in self.decisions:
            if k is kind:
                return d
        raise KeyError(kind)

    def as_dict(self) -> Dict[str, str]:
        return {k.value: d.value for k, d in self.decisions}


@dataclass(frozen=True)
class ScreenExpectation:
    screen_id: str
    permission_kind: PermissionKind
    decision: PermissionDecision
    expected_message_visible: bool


@dataclass(frozen=True)
class ScreenMismatch:
    screen_id: str
    permission_kind: PermissionKind
    expected: bool
    # None means the screen was never reached; `error` says why.
    actual: Optional[bool]
    error: str = ""

    def to_dict(self) -> dict:
        d = {
            "screen": self.screen_id,
            "kind": self.permission_kind.value,
            "expected": self.expected,
            "actual": self.actual,
        }
        if self.error:
            d["error"] = self.error
        return d


@dataclass(frozen=True)
class Fault:
    type: str
    detail: str
    kind: Optional[PermissionKind] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "kind": self.kind.value if self.kind else None,
            "detail": self.detail,
        }


@dataclass
class RunResult:
    scenario: Scenario
    alerts_observed: Set[PermissionKind] = field(default_factory=set)
    verification_failures: List[ScreenMismatch] = field(default_factory=list)
    fault: Optional[Fault] = None
    state: RunState = RunState.IDLE

    @property
    def required_kinds(self) -> Set[PermissionKind]:
        return set(self.scenario.kinds)

    @property
    def missing_alerts(self) -> List[PermissionKind]:
        return PermissionKind.ordered(self.required_kinds - self.alerts_observed)

    def mark_observed(self, kind: PermissionKind):
        self.alerts_observed.add(kind)

    @property
    def passed(self) -> bool:
        # Missing alerts make the run invalid even when every screen looked right.
        return (
            self.fault is None
            and self.alerts_observed == self.required_kinds
            and not self.verification_failures
        )
