"""The polling engine: probe, ask the policy, sleep, repeat until resolved."""

import asyncio
import time
from typing import assert_never

from loguru import logger

from imbue.condition_poll.data_types import Outcome
from imbue.condition_poll.data_types import PollDirective
from imbue.condition_poll.data_types import PollRequest
from imbue.condition_poll.data_types import PollState
from imbue.condition_poll.data_types import ProbeResult
from imbue.condition_poll.errors import InvalidConfigurationError
from imbue.condition_poll.errors import PollAlreadyStartedError
from imbue.condition_poll.errors import PollCancelledError
from imbue.condition_poll.errors import ProbeFailureError
from imbue.condition_poll.errors import SwitchError
from imbue.condition_poll.interfaces import MonotonicClock
from imbue.condition_poll.interfaces import Probe
from imbue.condition_poll.interfaces import Sleeper
from imbue.condition_poll.logging import log_span
from imbue.condition_poll.policies import PROBE_FAILED_MESSAGE
from imbue.condition_poll.policies import decide
from imbue.condition_poll.primitives import DirectiveKind
from imbue.condition_poll.primitives import PollStatus
from imbue.condition_poll.reporter import format_message
from imbue.condition_poll.reporter import report


class ConditionPoller:
    """Runs a single poll for one PollRequest.

    The poller issues one probe at a time, hands each result to the request's
    resolution policy, and either sleeps for the poll interval or resolves. It can
    only be started once; the completion callback fires exactly once per poll.

    clock must be monotonic and return seconds. clock and sleep are injectable so
    that tests can drive time without real waiting.
    """

    def __init__(
        self,
        request: PollRequest,
        probe: Probe,
        clock: MonotonicClock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        if request.timeout_ms < 0:
            raise InvalidConfigurationError(f"timeout_ms must be >= 0, got {request.timeout_ms}")
        if request.poll_interval_ms <= 0:
            raise InvalidConfigurationError(f"poll_interval_ms must be > 0, got {request.poll_interval_ms}")
        self.request = request
        self.state = PollState()
        self._probe = probe
        self._clock = clock
        self._sleep = sleep
        self._cancel_event = cancel_event
        self._is_started = False

    async def start(self) -> Outcome:
        """Run the poll to resolution, report the outcome, and return it."""
        if self._is_started:
            raise PollAlreadyStartedError(f"Poll for {self.request.selector!r} was already started")
        self._is_started = True

        request = self.request
        with log_span(
            "Polling for {} with {} policy (timeout={}ms, interval={}ms)",
            request.selector,
            request.policy,
            request.timeout_ms,
            request.poll_interval_ms,
            selector=str(request.selector),
        ):
            outcome = await self._run()
        report(outcome, request.on_complete)
        return outcome

    async def _run(self) -> Outcome:
        request = self.request
        self.state.start_timestamp = self._clock()

        while True:
            try:
                probe_result = await self._issue_probe()
            except ProbeFailureError as e:
                return self._resolve_probe_failure(e)

            directive = decide(
                request.policy,
                probe_result,
                self.state.elapsed_ms,
                request.timeout_ms,
                request.custom_message_template,
            )

            if directive.kind == DirectiveKind.RESCHEDULE:
                # Never sleep past the deadline: if it passed while the policy was deciding,
                # give the policy one final look at the same result.
                self._update_elapsed()
                if self.state.elapsed_ms >= request.timeout_ms:
                    directive = decide(
                        request.policy,
                        probe_result,
                        self.state.elapsed_ms,
                        request.timeout_ms,
                        request.custom_message_template,
                        is_final=True,
                    )
                else:
                    await self._wait_for_next_tick()
                    continue

            match directive.kind:
                case DirectiveKind.SUCCEED | DirectiveKind.FAIL:
                    return self._resolve(directive)
                case DirectiveKind.RESCHEDULE:
                    raise SwitchError(f"Policy {request.policy} asked to reschedule on a final tick")
                case _ as unreachable:
                    assert_never(unreachable)

    async def _issue_probe(self) -> ProbeResult:
        self.state.probe_count += 1
        probe_result = await self._probe(self.request.selector)
        self._update_elapsed()
        self.state.last_probe_result = probe_result
        logger.debug(
            "Probe #{} for {}: condition {} after {:.1f}ms",
            self.state.probe_count,
            self.request.selector,
            "holds" if probe_result.did_succeed else "absent",
            self.state.elapsed_ms,
        )
        return probe_result

    async def _wait_for_next_tick(self) -> None:
        self._raise_if_cancelled()
        await self._sleep(self.request.poll_interval_ms / 1000)
        self._raise_if_cancelled()

    def _raise_if_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise PollCancelledError(
                f"Poll for {self.request.selector!r} cancelled after {int(self.state.elapsed_ms)} milliseconds"
            )

    def _update_elapsed(self) -> None:
        assert self.state.start_timestamp is not None
        # Microsecond precision is plenty, and drops float noise from the subtraction
        self.state.elapsed_ms = round((self._clock() - self.state.start_timestamp) * 1000, 3)

    def _resolve(self, directive: PollDirective) -> Outcome:
        assert directive.status is not None and directive.template is not None and directive.time_ms is not None
        self._mark_resolved()
        return Outcome(
            status=directive.status,
            message=format_message(directive.template, self.request.selector, directive.time_ms),
            selector=self.request.selector,
            elapsed_ms=int(self.state.elapsed_ms),
            policy=self.request.policy,
            abort_on_failure=self.request.abort_on_failure,
            probe_count=self.state.probe_count,
            last_probe_result=self.state.last_probe_result,
        )

    def _resolve_probe_failure(self, error: ProbeFailureError) -> Outcome:
        self._update_elapsed()
        self._mark_resolved()
        logger.debug("Probe #{} for {} failed: {}", self.state.probe_count, self.request.selector, error)
        message = format_message(PROBE_FAILED_MESSAGE, self.request.selector, int(self.state.elapsed_ms))
        return Outcome(
            status=PollStatus.PROBE_FAILED,
            message=f"{message} {error}",
            selector=self.request.selector,
            elapsed_ms=int(self.state.elapsed_ms),
            policy=self.request.policy,
            abort_on_failure=self.request.abort_on_failure,
            probe_count=self.state.probe_count,
            last_probe_result=self.state.last_probe_result,
            probe_error=str(error),
        )

    def _mark_resolved(self) -> None:
        if self.state.resolved:
            raise SwitchError(f"Poll for {self.request.selector!r} resolved twice")
        self.state.resolved = True


async def poll_for_condition(
    request: PollRequest,
    probe: Probe,
    cancel_event: asyncio.Event | None = None,
) -> Outcome:
    """Run one poll with the real monotonic clock and asyncio.sleep."""
    return await ConditionPoller(request, probe, cancel_event=cancel_event).start()
