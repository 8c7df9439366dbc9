from collections.abc import Callable
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from imbue.condition_poll.primitives import DirectiveKind
from imbue.condition_poll.primitives import NonNegativeMilliseconds
from imbue.condition_poll.primitives import PollStatus
from imbue.condition_poll.primitives import PositiveMilliseconds
from imbue.condition_poll.primitives import ResolutionPolicy
from imbue.condition_poll.primitives import Selector


class FrozenModel(BaseModel):
    """Base class for immutable pydantic models that prevent attribute mutation after construction."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=False,
    )


class MutableModel(BaseModel):
    """Base class for mutable pydantic models that allow attribute mutation after construction."""

    model_config = ConfigDict(
        frozen=False,
        extra="forbid",
        arbitrary_types_allowed=False,
    )


class ProbeResult(FrozenModel):
    """What a single probe reported.

    The poller only looks at did_succeed; raw is handed back to the caller untouched.
    """

    did_succeed: bool = Field(description="Whether the condition held at the time of the probe")
    raw: Any = Field(default=None, description="Opaque payload returned by the probed system")


class Outcome(FrozenModel):
    """The single, final result of a poll."""

    status: PollStatus = Field(description="How the poll resolved")
    message: str = Field(description="Fully formatted report message")
    selector: Selector = Field(description="The selector that was polled")
    elapsed_ms: NonNegativeMilliseconds = Field(description="Milliseconds from the first probe to resolution")
    policy: ResolutionPolicy = Field(description="The policy that resolved the poll")
    abort_on_failure: bool = Field(
        default=True,
        description="Whether the caller asked for a failed poll to abort its workflow",
    )
    probe_count: int = Field(default=0, ge=0, description="Number of probes issued")
    last_probe_result: ProbeResult | None = Field(
        default=None,
        description="The last probe result seen before resolution, if any probe completed",
    )
    probe_error: str | None = Field(
        default=None,
        description="Description of the probe failure, for PROBE_FAILED outcomes",
    )

    @property
    def did_pass(self) -> bool:
        return self.status in (PollStatus.FOUND, PollStatus.OPTIONAL_NOT_FOUND)

    @property
    def should_abort(self) -> bool:
        return not self.did_pass and self.abort_on_failure


CompletionCallback = Callable[[Outcome], None]


class PollRequest(FrozenModel):
    """Everything needed to run one poll. Created once and never changed."""

    selector: Selector = Field(description="Identifier of the thing being probed")
    timeout_ms: NonNegativeMilliseconds = Field(description="Total time budget for the poll")
    poll_interval_ms: PositiveMilliseconds = Field(description="Time to wait between probes")
    policy: ResolutionPolicy = Field(
        default=ResolutionPolicy.STRICT,
        description="How to resolve when the deadline passes without the condition holding",
    )
    abort_on_failure: bool = Field(
        default=True,
        description="Whether a failed poll should abort the caller's workflow (exposed, not enforced)",
    )
    custom_message_template: str | None = Field(
        default=None,
        description="Message with two positional placeholders: selector, then milliseconds",
    )
    on_complete: CompletionCallback | None = Field(
        default=None,
        description="Invoked exactly once with the outcome",
    )


class PollDirective(FrozenModel):
    """A policy's answer for one probe result.

    For SUCCEED and FAIL the directive carries the status, the message template and
    the millisecond value to substitute into it.
    """

    kind: DirectiveKind
    status: PollStatus | None = None
    template: str | None = None
    time_ms: int | None = None


class PollState(MutableModel):
    """Timing and progress of one in-flight poll. Owned by exactly one poller."""

    start_timestamp: float | None = Field(default=None, description="Monotonic seconds at the first probe")
    elapsed_ms: float = Field(default=0.0, description="Milliseconds since start, as of the last tick")
    last_probe_result: ProbeResult | None = Field(default=None, description="Most recent probe result")
    probe_count: int = Field(default=0, description="Number of probes issued so far")
    resolved: bool = Field(default=False, description="Set once, when the outcome is built")
