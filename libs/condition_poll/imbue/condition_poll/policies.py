"""Resolution policies: how each probe result is turned into the poller's next step.

A policy is a plain ResolutionPolicy tag. decide() is a pure function of the probe
result and the timing, so both variants share the same poller.
"""

from typing import Final
from typing import assert_never

from imbue.condition_poll.data_types import PollDirective
from imbue.condition_poll.data_types import ProbeResult
from imbue.condition_poll.primitives import DirectiveKind
from imbue.condition_poll.primitives import PollStatus
from imbue.condition_poll.primitives import ResolutionPolicy

FOUND_MESSAGE: Final[str] = "Element <%s> was present after %d milliseconds."

STRICT_TIMEOUT_MESSAGE: Final[str] = "Timed out while waiting for element <%s> to be present for %d milliseconds."

OPTIONAL_NOT_FOUND_MESSAGE: Final[str] = "Optional element <%s> was not found after %d milliseconds."

PROBE_FAILED_MESSAGE: Final[str] = "Failed to check for element <%s> after %d milliseconds."

RESCHEDULE: Final[PollDirective] = PollDirective(kind=DirectiveKind.RESCHEDULE)


def decide(
    policy: ResolutionPolicy,
    probe_result: ProbeResult,
    elapsed_ms: float,
    timeout_ms: int,
    custom_message_template: str | None = None,
    is_final: bool = False,
) -> PollDirective:
    """Decide whether to reschedule, pass, or fail after one probe.

    is_final is set by the poller when it has found the deadline passed right before
    it would have slept. A policy must resolve (never reschedule) on a final tick or
    once elapsed_ms has reached timeout_ms.
    """
    if probe_result.did_succeed:
        return PollDirective(
            kind=DirectiveKind.SUCCEED,
            status=PollStatus.FOUND,
            template=custom_message_template or FOUND_MESSAGE,
            time_ms=int(elapsed_ms),
        )

    is_deadline_reached = is_final or elapsed_ms >= timeout_ms
    if not is_deadline_reached:
        return RESCHEDULE

    match policy:
        case ResolutionPolicy.STRICT:
            return PollDirective(
                kind=DirectiveKind.FAIL,
                status=PollStatus.FAILED_TIMEOUT,
                template=custom_message_template or STRICT_TIMEOUT_MESSAGE,
                time_ms=timeout_ms,
            )
        case ResolutionPolicy.OPTIONAL:
            # A missing optional element still passes; only the status and message differ.
            # The message reports the timeout, as the strict failure message does.
            return PollDirective(
                kind=DirectiveKind.SUCCEED,
                status=PollStatus.OPTIONAL_NOT_FOUND,
                template=custom_message_template or OPTIONAL_NOT_FOUND_MESSAGE,
                time_ms=timeout_ms,
            )
        case _ as unreachable:
            assert_never(unreachable)
