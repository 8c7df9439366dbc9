import asyncio

from imbue.condition_poll.config import PollSettings
from imbue.condition_poll.conftest import FakeElementLocator
from imbue.condition_poll.data_types import Outcome
from imbue.condition_poll.element import make_element_presence_probe
from imbue.condition_poll.element import wait_for_element_present
from imbue.condition_poll.element import wait_for_optional_element_present
from imbue.condition_poll.errors import ProbeFailureError
from imbue.condition_poll.primitives import LocateStrategy
from imbue.condition_poll.primitives import PollStatus
from imbue.condition_poll.primitives import Selector

_FAST_SETTINGS = PollSettings(wait_for_condition_poll_interval_ms=10, wait_for_condition_timeout_ms=1000)


def test_presence_probe_holds_when_elements_match() -> None:
    probe = make_element_presence_probe(FakeElementLocator(appears_on_lookup=1))

    result = asyncio.run(probe(Selector("#weblogin")))

    assert result.did_succeed
    assert result.raw == [{"ELEMENT": "0"}]


def test_presence_probe_passes_strategy_to_locator() -> None:
    locator = FakeElementLocator()
    probe = make_element_presence_probe(locator, LocateStrategy.XPATH)

    result = asyncio.run(probe(Selector("//div")))

    assert not result.did_succeed
    assert locator.lookups == [("//div", LocateStrategy.XPATH)]


def test_optional_element_present_success() -> None:
    outcomes: list[Outcome] = []
    locator = FakeElementLocator(appears_on_lookup=1)

    outcome = asyncio.run(
        wait_for_optional_element_present(locator, "#weblogin", _FAST_SETTINGS, 100, on_complete=outcomes.append)
    )

    assert outcome.status == PollStatus.FOUND
    assert outcome.last_probe_result is not None
    assert outcome.last_probe_result.raw[0]["ELEMENT"] == "0"
    assert outcomes == [outcome]


def test_optional_element_not_present_passes_with_custom_message() -> None:
    outcomes: list[Outcome] = []

    outcome = asyncio.run(
        wait_for_optional_element_present(
            FakeElementLocator(),
            ".weblogin",
            _FAST_SETTINGS,
            15,
            on_complete=outcomes.append,
            message="Element %s found in %d milliseconds",
        )
    )

    assert outcome.status == PollStatus.OPTIONAL_NOT_FOUND
    assert outcome.did_pass
    assert outcome.message == "Element .weblogin found in 15 milliseconds"
    assert outcome.elapsed_ms >= 15
    assert outcome.last_probe_result is not None
    assert outcome.last_probe_result.raw == []
    assert outcomes == [outcome]


def test_optional_element_not_present_default_message() -> None:
    outcome = asyncio.run(wait_for_optional_element_present(FakeElementLocator(), ".weblogin", _FAST_SETTINGS, 15))

    assert outcome.message == "Optional element <.weblogin> was not found after 15 milliseconds."


def test_element_present_appears_after_a_few_lookups() -> None:
    locator = FakeElementLocator(appears_on_lookup=3)

    outcome = asyncio.run(wait_for_element_present(locator, "#weblogin", _FAST_SETTINGS))

    assert outcome.status == PollStatus.FOUND
    assert len(locator.lookups) == 3
    assert outcome.elapsed_ms >= 10


def test_element_present_times_out() -> None:
    outcome = asyncio.run(wait_for_element_present(FakeElementLocator(), ".weblogin", _FAST_SETTINGS, 15))

    assert outcome.status == PollStatus.FAILED_TIMEOUT
    assert outcome.should_abort
    assert outcome.message == "Timed out while waiting for element <.weblogin> to be present for 15 milliseconds."


def test_element_present_failure_without_abort() -> None:
    outcome = asyncio.run(
        wait_for_element_present(FakeElementLocator(), ".weblogin", _FAST_SETTINGS, 0, abort_on_failure=False)
    )

    assert outcome.status == PollStatus.FAILED_TIMEOUT
    assert not outcome.should_abort


def test_element_lookup_failure_is_not_retried() -> None:
    locator = FakeElementLocator(error=ProbeFailureError("no such session"))

    outcome = asyncio.run(wait_for_optional_element_present(locator, "#weblogin", _FAST_SETTINGS, 1000))

    assert outcome.status == PollStatus.PROBE_FAILED
    assert len(locator.lookups) == 1


def test_element_lookup_connection_error_resolves_as_failure() -> None:
    outcomes: list[Outcome] = []
    locator = FakeElementLocator(error=ConnectionRefusedError("connection refused"))

    outcome = asyncio.run(
        wait_for_element_present(locator, "#weblogin", _FAST_SETTINGS, 1000, on_complete=outcomes.append)
    )

    assert outcome.status == PollStatus.PROBE_FAILED
    assert outcome.probe_error is not None
    assert "connection refused" in outcome.probe_error
    assert len(locator.lookups) == 1
    assert outcomes == [outcome]
