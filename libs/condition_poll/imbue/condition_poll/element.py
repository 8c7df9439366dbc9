"""Element presence waits, built on the generic poller.

wait_for_element_present fails the poll if the element never shows up in time.
wait_for_optional_element_present passes either way and only reports the difference.
Both accept a custom message with two placeholders: %s for the selector and %d for
the time, e.g. "elemento %s no era presente en %d ms".
"""

from loguru import logger

from imbue.condition_poll.config import PollSettings
from imbue.condition_poll.config import resolve_poll_request
from imbue.condition_poll.data_types import CompletionCallback
from imbue.condition_poll.data_types import Outcome
from imbue.condition_poll.data_types import ProbeResult
from imbue.condition_poll.errors import ProbeFailureError
from imbue.condition_poll.interfaces import ElementLocatorInterface
from imbue.condition_poll.interfaces import Probe
from imbue.condition_poll.poller import ConditionPoller
from imbue.condition_poll.primitives import LocateStrategy
from imbue.condition_poll.primitives import ResolutionPolicy
from imbue.condition_poll.primitives import Selector


def make_element_presence_probe(
    locator: ElementLocatorInterface,
    strategy: LocateStrategy = LocateStrategy.CSS_SELECTOR,
) -> Probe:
    """Adapt an element locator into a probe that holds when at least one element matches.

    Connection-level errors from the locator (OSError, including TimeoutError) are
    reported as ProbeFailureError so the poll resolves instead of escaping.
    """

    async def probe(selector: Selector) -> ProbeResult:
        try:
            elements = await locator.find_elements(selector, strategy)
        except OSError as e:
            raise ProbeFailureError(f"Element lookup for {selector} failed: {e}") from e
        logger.trace("Found {} element(s) for {} ({})", len(elements), selector, strategy)
        return ProbeResult(did_succeed=len(elements) > 0, raw=list(elements))

    return probe


async def wait_for_element_present(
    locator: ElementLocatorInterface,
    selector: str,
    settings: PollSettings,
    timeout_ms: int | None = None,
    on_complete: CompletionCallback | None = None,
    message: str | None = None,
    abort_on_failure: bool = True,
    strategy: LocateStrategy = LocateStrategy.CSS_SELECTOR,
) -> Outcome:
    """Wait for an element to be present, failing if it does not appear within timeout_ms.

    Unset timeouts fall back to settings.wait_for_condition_timeout_ms; the poll
    interval always comes from settings.wait_for_condition_poll_interval_ms.
    """
    return await _wait_for_element(
        locator=locator,
        selector=selector,
        settings=settings,
        policy=ResolutionPolicy.STRICT,
        timeout_ms=timeout_ms,
        on_complete=on_complete,
        message=message,
        abort_on_failure=abort_on_failure,
        strategy=strategy,
    )


async def wait_for_optional_element_present(
    locator: ElementLocatorInterface,
    selector: str,
    settings: PollSettings,
    timeout_ms: int | None = None,
    on_complete: CompletionCallback | None = None,
    message: str | None = None,
    abort_on_failure: bool = True,
    strategy: LocateStrategy = LocateStrategy.CSS_SELECTOR,
) -> Outcome:
    """Wait for an element that may legitimately never appear.

    The outcome passes whether or not the element shows up; a missing element is
    reported with status OPTIONAL_NOT_FOUND. Only a probe failure fails the poll.
    """
    return await _wait_for_element(
        locator=locator,
        selector=selector,
        settings=settings,
        policy=ResolutionPolicy.OPTIONAL,
        timeout_ms=timeout_ms,
        on_complete=on_complete,
        message=message,
        abort_on_failure=abort_on_failure,
        strategy=strategy,
    )


async def _wait_for_element(
    locator: ElementLocatorInterface,
    selector: str,
    settings: PollSettings,
    policy: ResolutionPolicy,
    timeout_ms: int | None,
    on_complete: CompletionCallback | None,
    message: str | None,
    abort_on_failure: bool,
    strategy: LocateStrategy,
) -> Outcome:
    request = resolve_poll_request(
        selector,
        settings,
        timeout_ms=timeout_ms,
        policy=policy,
        abort_on_failure=abort_on_failure,
        custom_message_template=message,
        on_complete=on_complete,
    )
    probe = make_element_presence_probe(locator, strategy)
    return await ConditionPoller(request, probe).start()
