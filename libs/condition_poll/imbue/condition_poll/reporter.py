import re
from typing import Final

from loguru import logger

from imbue.condition_poll.data_types import CompletionCallback
from imbue.condition_poll.data_types import Outcome
from imbue.condition_poll.errors import ConditionNotMetError

# Placeholders are positional: the first token gets the selector, the second gets the
# milliseconds, regardless of whether each is written as %s or %d.
_PLACEHOLDER_PATTERN: Final[re.Pattern[str]] = re.compile(r"%[sd]")


def format_message(template: str, selector: str, time_ms: int) -> str:
    """Substitute the selector and a millisecond count into a message template.

    Only the first two placeholders are replaced; anything after them (including
    further placeholders) is left as written. A template with fewer than two
    placeholders comes back unchanged.
    """
    if len(_PLACEHOLDER_PATTERN.findall(template)) < 2:
        return template

    values = iter((str(selector), str(int(time_ms))))

    def _substitute(match: re.Match[str]) -> str:
        return next(values)

    return _PLACEHOLDER_PATTERN.sub(_substitute, template, count=2)


def report(outcome: Outcome, on_complete: CompletionCallback | None) -> None:
    """Log the outcome and hand it to the completion callback, if there is one.

    Exceptions raised by the callback itself are not caught.
    """
    if outcome.did_pass:
        logger.info("{}", outcome.message)
    else:
        logger.warning("{}", outcome.message)

    if on_complete is not None:
        on_complete(outcome)


def raise_for_outcome(outcome: Outcome) -> None:
    """Raise ConditionNotMetError if the outcome failed and the caller asked to abort on failure."""
    if outcome.should_abort:
        raise ConditionNotMetError(outcome.message, selector=str(outcome.selector), elapsed_ms=int(outcome.elapsed_ms))
