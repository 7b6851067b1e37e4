import logging
from typing import Iterator, List, Mapping, Sequence, Tuple

from harness.errors import NavigationFailure
from harness.models import (
    PermissionDecision,
    PermissionKind,
    Scenario,
    ScreenExpectation,
    ScreenMismatch,
)


def expectations(
    scenario: Scenario,
    screens: Sequence[str],
    rules: Mapping[Tuple[str, PermissionKind], bool],
) -> List[ScreenExpectation]:
    """What every screen should show for this scenario.

    A banner is expected only where the app knowledge table says that screen
    shows it AND the permission was denied. Screens with no rule for a kind
    must never show that kind's banner.
    """
    out = []
    for screen_id in screens:
        for kind, decision in scenario.decisions:
            shows_on_deny = bool(rules.get((screen_id, kind), False))
            out.append(
                ScreenExpectation(
                    screen_id=screen_id,
                    permission_kind=kind,
                    decision=decision,
                    expected_message_visible=shows_on_deny and decision is PermissionDecision.DENY,
                )
            )
    return out


class ScreenVerifier:
    """Walks the app screens and compares banner visibility to expectations.

    The verifier never stops at the first problem. A wrong banner is just a
    mismatch; a screen it cannot reach turns into mismatches with actual=None
    for that screen only, and the walk carries on.
    """

    def __init__(
        self,
        driver,
        rules: Mapping[Tuple[str, PermissionKind], bool],
        message_elements: Mapping[PermissionKind, str],
    ):
        self.driver = driver
        self.rules = rules
        self.message_elements = message_elements

    def verify(self, scenario: Scenario, screens: Sequence[str]) -> Iterator[ScreenMismatch]:
        by_screen: dict = {}
        for exp in expectations(scenario, screens, self.rules):
            by_screen.setdefault(exp.screen_id, []).append(exp)

        for screen_id in screens:
            exps = by_screen.get(screen_id, [])
            try:
                self.driver.navigate_to_screen(screen_id)
            except NavigationFailure as e:
                logging.info(f"[VERIFY] {screen_id}: {e}")
                for exp in exps:
                    yield ScreenMismatch(
                        screen_id=screen_id,
                        permission_kind=exp.permission_kind,
                        expected=exp.expected_message_visible,
                        actual=None,
                        error=str(e),
                    )
                continue

            for exp in exps:
                element_id = self.message_elements[exp.permission_kind]
                actual = bool(self.driver.query_element_visible(element_id))
                logging.debug(
                    "[VERIFY] %s %s banner expected=%s actual=%s",
                    screen_id,
                    exp.permission_kind.value,
                    exp.expected_message_visible,
                    actual,
                )
                if actual != exp.expected_message_visible:
                    yield ScreenMismatch(
                        screen_id=screen_id,
                        permission_kind=exp.permission_kind,
                        expected=exp.expected_message_visible,
                        actual=actual,
                    )
