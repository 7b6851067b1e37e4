"""
Scenario runner: one scenario from a clean permission state to a verdict.

    IDLE -> PRECONDITION_ASSUMED -> RUNNING -> AWAITING_ALERTS -> VERIFYING -> REPORTED

Any fatal condition jumps straight to REPORTED with a Fault on the result.
There are no retries inside a run: a retry would need the permission state
reset again, and that happens outside this process.
"""

import logging
import time
from typing import Callable, Iterable, List, Optional

from harness.errors import AlertTimeout, HostActionError, UnhandledInterruption
from harness.interception import AlertInterceptionRegistry
from harness.models import Fault, RunResult, RunState, Scenario
from harness.verifier import ScreenVerifier


class ScenarioRunner:
    def __init__(
        self,
        driver,
        profile,
        trigger: Optional[Callable[[], None]] = None,
        alert_timeout_s: float = 10.0,
        poll_interval_s: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.driver = driver
        self.profile = profile
        # Default trigger: a cold launch is what brings the first-run prompts up.
        self.trigger = trigger or driver.launch_app
        self.alert_timeout_s = alert_timeout_s
        self.poll_interval_s = poll_interval_s
        self._clock = clock
        self._sleep = sleep
        self.verifier = ScreenVerifier(driver, profile.screen_message_rules, profile.message_elements)

    def _enter(self, result: RunResult, state: RunState):
        logging.debug("[RUN] %s: %s -> %s", result.scenario.name, result.state.value, state.value)
        result.state = state

    def run(self, scenario: Scenario, attest_clean_state: bool = True) -> RunResult:
        result = RunResult(scenario=scenario)
        logging.info(f"[RUN] #{scenario.index} {scenario.name}")

        # Clean permission state is the caller's job (pm clear, MDM, by hand...).
        # We only write down that it was promised.
        if not attest_clean_state:
            logging.warning(
                "[RUN] clean permission state NOT attested for %s; a timeout is likely", scenario.name
            )
        self._enter(result, RunState.PRECONDITION_ASSUMED)

        try:
            self._enter(result, RunState.RUNNING)
            registry = AlertInterceptionRegistry(self.driver)
            for kind, decision in scenario.decisions:
                registry.register(self.profile.alert_specs[kind], decision, result.mark_observed)

            self._enter(result, RunState.AWAITING_ALERTS)
            registry.arm()
            self.trigger()
            self._await_alerts(result)

            self._enter(result, RunState.VERIFYING)
            for mismatch in self.verifier.verify(scenario, self.profile.screen_ids):
                logging.info(
                    f"[VERIFY] mismatch screen={mismatch.screen_id} kind={mismatch.permission_kind.value} "
                    f"expected={mismatch.expected} actual={mismatch.actual}"
                )
                result.verification_failures.append(mismatch)

        except UnhandledInterruption as e:
            result.fault = Fault(type="UnhandledInterruption", detail=str(e), kind=self._guess_kind(result))
        except AlertTimeout as e:
            result.fault = Fault(
                type="AlertTimeout",
                detail=str(e),
                kind=e.missing[0] if len(e.missing) == 1 else None,
            )
        except HostActionError as e:
            result.fault = Fault(type="HostActionError", detail=str(e))
        except Exception as e:
            # Anything the host blows up with (adb gone, device offline) still
            # has to produce a report entry for this scenario.
            logging.exception("[RUN] host failure during %s", scenario.name)
            result.fault = Fault(type=type(e).__name__, detail=str(e))
        finally:
            self.driver.reset_interruption_watchers()
            self._enter(result, RunState.REPORTED)

        if result.fault:
            logging.info(f"[RUN] {scenario.name}: FAIL ({result.fault.type}) {result.fault.detail}")
        else:
            logging.info(f"[RUN] {scenario.name}: {'PASS' if result.passed else 'FAIL'}")
        return result

    def _await_alerts(self, result: RunResult):
        deadline = self._clock() + self.alert_timeout_s
        while True:
            self.driver.pump_interruptions()
            if not result.missing_alerts:
                return
            if self._clock() >= deadline:
                raise AlertTimeout(result.missing_alerts, self.alert_timeout_s)
            self._sleep(self.poll_interval_s)

    @staticmethod
    def _guess_kind(result: RunResult):
        # The dialog we could not match is most likely the next one we were waiting for.
        missing = result.missing_alerts
        return missing[0] if missing else None

    def run_matrix(
        self,
        scenarios: Iterable[Scenario],
        before_each: Optional[Callable[[Scenario], None]] = None,
    ) -> List[RunResult]:
        results = []
        for scenario in scenarios:
            if before_each is not None:
                try:
                    before_each(scenario)
                except Exception as e:
                    logging.exception("[MATRIX] reset before %s failed", scenario.name)
                    result = RunResult(scenario=scenario, state=RunState.REPORTED)
                    result.fault = Fault(type="PreconditionFailed", detail=str(e))
                    results.append(result)
                    continue
            results.append(self.run(scenario))
        return results
