"""Interface definitions for the systems a poll talks to."""

from abc import ABC
from abc import abstractmethod
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Sequence
from typing import Any

from imbue.condition_poll.data_types import ProbeResult
from imbue.condition_poll.primitives import LocateStrategy
from imbue.condition_poll.primitives import Selector

# A single asynchronous check of whether the condition currently holds.
# Implementations raise ProbeFailureError when they cannot give a definitive answer.
Probe = Callable[[Selector], Awaitable[ProbeResult]]

MonotonicClock = Callable[[], float]

Sleeper = Callable[[float], Awaitable[None]]


class ElementLocatorInterface(ABC):
    """Interface for looking up elements in a remote document.

    Implementations wrap whatever session or protocol is used to reach the browser.
    """

    @abstractmethod
    async def find_elements(self, selector: Selector, strategy: LocateStrategy) -> Sequence[Any]:
        """Return all elements currently matching the selector (empty if none).

        Raises ProbeFailureError if the lookup itself fails.
        """
        ...
