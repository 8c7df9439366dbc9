import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from typing import Final

from loguru import logger
from pydantic import Field
from pydantic import ValidationError

from imbue.condition_poll.data_types import CompletionCallback
from imbue.condition_poll.data_types import FrozenModel
from imbue.condition_poll.data_types import PollRequest
from imbue.condition_poll.errors import ConfigParseError
from imbue.condition_poll.errors import InvalidConfigurationError
from imbue.condition_poll.primitives import NonNegativeMilliseconds
from imbue.condition_poll.primitives import PositiveMilliseconds
from imbue.condition_poll.primitives import ResolutionPolicy

DEFAULT_POLL_INTERVAL_MS: Final[int] = 500

DEFAULT_TIMEOUT_MS: Final[int] = 5000

# Name of the table read from a settings file, e.g.
#   [wait_for_condition]
#   poll_interval_ms = 250
#   timeout_ms = 10000
CONFIG_TABLE_NAME: Final[str] = "wait_for_condition"

# Environment overrides, applied after the settings file.
_ENV_PREFIX: Final[str] = "CONDITION_POLL_"
_ENV_POLL_INTERVAL: Final[str] = _ENV_PREFIX + "POLL_INTERVAL_MS"
_ENV_TIMEOUT: Final[str] = _ENV_PREFIX + "TIMEOUT_MS"


class PollSettings(FrozenModel):
    """Process-wide defaults used when a poll does not specify its own interval or timeout."""

    wait_for_condition_poll_interval_ms: PositiveMilliseconds = Field(
        default=PositiveMilliseconds(DEFAULT_POLL_INTERVAL_MS),
        description="Default time between probes",
    )
    wait_for_condition_timeout_ms: NonNegativeMilliseconds = Field(
        default=NonNegativeMilliseconds(DEFAULT_TIMEOUT_MS),
        description="Default total time budget for a poll",
    )


def load_poll_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> PollSettings:
    """Load poll settings from all sources.

    Precedence (lowest to highest):
    1. Built-in defaults
    2. The [wait_for_condition] table of config_path, if given
    3. Environment variables (CONDITION_POLL_POLL_INTERVAL_MS, CONDITION_POLL_TIMEOUT_MS)

    Meant to be called once at startup; the result is passed explicitly to resolve_poll_request.
    """
    if environ is None:
        environ = os.environ

    raw: dict[str, Any] = {}
    if config_path is not None:
        raw.update(_read_config_table(config_path))

    if _ENV_POLL_INTERVAL in environ:
        raw["poll_interval_ms"] = _parse_env_int(_ENV_POLL_INTERVAL, environ[_ENV_POLL_INTERVAL])
    if _ENV_TIMEOUT in environ:
        raw["timeout_ms"] = _parse_env_int(_ENV_TIMEOUT, environ[_ENV_TIMEOUT])

    unknown_keys = set(raw) - {"poll_interval_ms", "timeout_ms"}
    if unknown_keys:
        raise ConfigParseError(f"Unknown keys in [{CONFIG_TABLE_NAME}]: {', '.join(sorted(unknown_keys))}")

    fields: dict[str, Any] = {}
    if "poll_interval_ms" in raw:
        fields["wait_for_condition_poll_interval_ms"] = raw["poll_interval_ms"]
    if "timeout_ms" in raw:
        fields["wait_for_condition_timeout_ms"] = raw["timeout_ms"]

    try:
        settings = PollSettings.model_validate(fields)
    except ValidationError as e:
        raise InvalidConfigurationError(f"Invalid poll settings: {e}") from e

    logger.trace(
        "Loaded poll settings: interval={}ms timeout={}ms",
        settings.wait_for_condition_poll_interval_ms,
        settings.wait_for_condition_timeout_ms,
    )
    return settings


def _read_config_table(config_path: Path) -> dict[str, Any]:
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigParseError(f"Config file not found: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Failed to parse {config_path}: {e}") from e

    table = data.get(CONFIG_TABLE_NAME, {})
    if not isinstance(table, dict):
        raise ConfigParseError(f"[{CONFIG_TABLE_NAME}] in {config_path} must be a table")
    return table


def _parse_env_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigParseError(f"{name} must be an integer number of milliseconds, got {value!r}") from e


def resolve_poll_request(
    selector: str,
    settings: PollSettings,
    timeout_ms: int | None = None,
    poll_interval_ms: int | None = None,
    policy: ResolutionPolicy = ResolutionPolicy.STRICT,
    abort_on_failure: bool = True,
    custom_message_template: str | None = None,
    on_complete: CompletionCallback | None = None,
) -> PollRequest:
    """Build a PollRequest, filling unset timing values from the settings.

    Raises InvalidConfigurationError (before any probe can run) if the resulting
    timeout is negative or the interval is not positive.
    """
    resolved_timeout = settings.wait_for_condition_timeout_ms if timeout_ms is None else timeout_ms
    resolved_interval = settings.wait_for_condition_poll_interval_ms if poll_interval_ms is None else poll_interval_ms

    if resolved_timeout < 0:
        raise InvalidConfigurationError(f"timeout_ms must be >= 0, got {resolved_timeout}")
    if resolved_interval <= 0:
        raise InvalidConfigurationError(f"poll_interval_ms must be > 0, got {resolved_interval}")

    try:
        return PollRequest(
            selector=selector,
            timeout_ms=resolved_timeout,
            poll_interval_ms=resolved_interval,
            policy=policy,
            abort_on_failure=abort_on_failure,
            custom_message_template=custom_message_template,
            on_complete=on_complete,
        )
    except ValidationError as e:
        raise InvalidConfigurationError(f"Invalid poll request for {selector!r}: {e}") from e
