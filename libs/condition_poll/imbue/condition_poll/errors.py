class ConditionPollError(Exception):
    """Base error for the condition polling library."""


class SwitchError(ConditionPollError):
    """Raised when a match over a closed set of values reaches a branch it should not."""


class InvalidConfigurationError(ConditionPollError, ValueError):
    """Raised before the first probe when the timeout or poll interval is out of range."""


class ConfigParseError(ConditionPollError):
    """Raised when poll settings cannot be read from a config file or the environment."""


class ProbeFailureError(ConditionPollError):
    """Raised by a probe when it cannot give a definitive found/absent answer.

    Typically wraps a transport or protocol error from the system being probed.
    The poller never retries these: the poll resolves immediately as a failure.
    """


class PollAlreadyStartedError(ConditionPollError):
    """Raised when start() is called a second time on the same poller."""


class PollCancelledError(ConditionPollError):
    """Raised when a poll is cancelled at a reschedule point before it resolved."""


class ConditionNotMetError(ConditionPollError, AssertionError):
    """Raised by raise_for_outcome when a failed outcome should abort the caller."""

    def __init__(self, message: str, selector: str, elapsed_ms: int) -> None:
        self.selector = selector
        self.elapsed_ms = elapsed_ms
        super().__init__(message)
