from enum import StrEnum
from enum import auto
from typing import Any
from typing import Self

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema
from pydantic_core import core_schema


class UpperCaseStrEnum(StrEnum):
    """A StrEnum that automatically converts enum member names to uppercase values."""

    @staticmethod
    def _generate_next_value_(
        name: str,
        start: int,
        count: int,
        last_values: list[str],
    ) -> str:
        return name.upper()


class Selector(str):
    """Identifier of the thing being probed. Opaque to the poller, but never empty."""

    def __new__(cls, value: str) -> Self:
        if not value or not value.strip():
            raise ValueError(f"{cls.__name__} cannot be empty")
        return super().__new__(cls, value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.str_schema(min_length=1),
            serialization=core_schema.to_string_ser_schema(),
        )


class NonNegativeMilliseconds(int):
    """A duration in whole milliseconds that must be >= 0."""

    def __new__(cls, value: int) -> Self:
        if value < 0:
            raise ValueError(f"{cls.__name__} must be >= 0, got {value}")
        return super().__new__(cls, value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.int_schema(ge=0),
        )


class PositiveMilliseconds(int):
    """A duration in whole milliseconds that must be > 0."""

    def __new__(cls, value: int) -> Self:
        if value <= 0:
            raise ValueError(f"{cls.__name__} must be > 0, got {value}")
        return super().__new__(cls, value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.int_schema(gt=0),
        )


class ResolutionPolicy(UpperCaseStrEnum):
    """How a poll resolves once its deadline passes without the condition holding."""

    # Timeout is a failure
    STRICT = auto()
    # Timeout is still a pass, reported with a distinct message
    OPTIONAL = auto()


class DirectiveKind(UpperCaseStrEnum):
    """What the poller should do after a policy has looked at a probe result."""

    RESCHEDULE = auto()
    SUCCEED = auto()
    FAIL = auto()


class PollStatus(UpperCaseStrEnum):
    """Final status of a resolved poll."""

    FOUND = auto()
    FAILED_TIMEOUT = auto()
    OPTIONAL_NOT_FOUND = auto()
    PROBE_FAILED = auto()


class LocateStrategy(UpperCaseStrEnum):
    """How an element selector is interpreted by the element locator."""

    CSS_SELECTOR = auto()
    XPATH = auto()
