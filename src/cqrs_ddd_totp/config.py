"""
Configuration for the TOTP second-factor strategy.

All keys are optional. ``TOTPConfig.from_dict`` accepts the plugin-style
camelCase keys (``window``, ``period``, ``tokenExpirationTime``) as well
as their snake_case equivalents.
"""

import re
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, Mapping, Optional, Union

from cqrs_ddd_totp.domain.errors import ConfigurationError


Duration = Union[str, int, float, timedelta]

_DURATION_PATTERN = re.compile(
    r"^\s*(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>ms|s|m|h|d)?\s*$", re.IGNORECASE
)
_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}

_CAMEL_CASE_KEYS = {
    "tokenExpirationTime": "token_expiration_time",
    "strategyName": "strategy_name",
    "challengeLocation": "challenge_location",
    "tokenHeader": "token_header",
    "issuerName": "issuer_name",
}


def parse_duration(value: Duration) -> timedelta:
    """
    Parse a duration value.

    Accepts a ``timedelta``, a number of seconds, or a string such as
    ``"300s"``, ``"5m"``, ``"1500ms"`` (a bare number string is seconds).

    Raises:
        ConfigurationError: If the value cannot be parsed or is not positive
    """
    if isinstance(value, timedelta):
        result = value
    elif isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    elif isinstance(value, (int, float)):
        result = timedelta(seconds=value)
    elif isinstance(value, str):
        match = _DURATION_PATTERN.match(value)
        if not match:
            raise ConfigurationError(
                f"Invalid duration: {value!r}", details={"value": value}
            )
        unit = (match.group("unit") or "s").lower()
        result = timedelta(seconds=float(match.group("amount")) * _UNIT_SECONDS[unit])
    else:
        raise ConfigurationError(f"Invalid duration: {value!r}")

    if result <= timedelta(0):
        raise ConfigurationError(f"Duration must be positive: {value!r}")
    return result


@dataclass
class TOTPConfig:
    """
    Configuration for the TOTP challenge/response flow.

    Attributes:
        window: Number of OTP time steps tolerated before/after the current one
        period: Seconds per OTP time step
        token_expiration_time: Max age of an issued challenge token
        strategy_name: Name of the second-factor strategy in the login pipeline
        challenge_location: Endpoint the client must submit token + code to
        token_header: Response header carrying the challenge token
        issuer_name: Issuer shown by authenticator apps (provisioning URI)
    """

    window: int = 1
    period: int = 30
    token_expiration_time: Duration = "300s"
    strategy_name: str = "totp"
    challenge_location: str = "/_login/totp"
    token_header: str = "X-TOTP-Token"
    issuer_name: str = "MyApp"

    def __post_init__(self):
        if isinstance(self.window, bool) or not isinstance(self.window, int):
            raise ConfigurationError(f"window must be an integer: {self.window!r}")
        if self.window < 0:
            raise ConfigurationError(f"window must not be negative: {self.window}")
        if isinstance(self.period, bool) or not isinstance(self.period, int):
            raise ConfigurationError(f"period must be an integer: {self.period!r}")
        if self.period <= 0:
            raise ConfigurationError(f"period must be positive: {self.period}")
        # Fail at load time rather than on the first verification
        parse_duration(self.token_expiration_time)

    @property
    def token_expiration(self) -> timedelta:
        return parse_duration(self.token_expiration_time)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "TOTPConfig":
        """
        Build a config from a plain mapping, ignoring unknown keys.

        Raises:
            ConfigurationError: On malformed values
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)


__all__ = ["TOTPConfig", "parse_duration", "Duration"]
