"""
Factory functions for automatic service creation.

Implements the 'if not provided, create' pattern: every piece the
caller does not hand in is built from ``AUTH_TOTP_*`` environment
variables, falling back to in-process defaults.
"""

import os
import logging
from typing import Optional

from cqrs_ddd_totp.application.challenge import Clock, utcnow
from cqrs_ddd_totp.config import TOTPConfig
from cqrs_ddd_totp.domain.errors import ConfigurationError
from cqrs_ddd_totp.infrastructure.adapters.memory import InMemoryRecordStore
from cqrs_ddd_totp.infrastructure.adapters.redis_store import RedisRecordStore
from cqrs_ddd_totp.infrastructure.ports.record_store import RecordStorePort
from cqrs_ddd_totp.plugin import TOTPAuthenticationPlugin

logger = logging.getLogger("cqrs_ddd_totp.factory")

_ENV_KEYS = {
    "AUTH_TOTP_WINDOW": "window",
    "AUTH_TOTP_PERIOD": "period",
    "AUTH_TOTP_TOKEN_EXPIRATION": "token_expiration_time",
    "AUTH_TOTP_STRATEGY": "strategy_name",
    "AUTH_TOTP_LOCATION": "challenge_location",
    "AUTH_TOTP_TOKEN_HEADER": "token_header",
    "AUTH_TOTP_ISSUER": "issuer_name",
}
_INTEGER_KEYS = {"window", "period"}


def create_default_config() -> TOTPConfig:
    """
    Create a TOTPConfig from environment variables.

    Unset variables keep the TOTPConfig defaults.

    Raises:
        ConfigurationError: If a variable holds a malformed value
    """
    values = {}
    for env_key, name in _ENV_KEYS.items():
        raw = os.environ.get(env_key)
        if raw is None:
            continue
        if name in _INTEGER_KEYS:
            try:
                values[name] = int(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"{env_key} must be an integer: {raw!r}",
                    details={"variable": env_key},
                ) from e
        else:
            values[name] = raw
    return TOTPConfig(**values)


def create_default_store() -> RecordStorePort:
    """
    Create a default record store.

    Uses Redis when ``AUTH_TOTP_REDIS_URL`` is set, otherwise an
    in-memory store (records are lost on restart).
    """
    redis_url = os.environ.get("AUTH_TOTP_REDIS_URL")
    if redis_url:
        import redis.asyncio as redis

        client = redis.Redis.from_url(redis_url)
        return RedisRecordStore(
            client,
            prefix=os.environ.get("AUTH_TOTP_REDIS_PREFIX", "auth:totp:"),
            wait_replicas=int(os.environ.get("AUTH_TOTP_REDIS_WAIT_REPLICAS", "0")),
        )

    logger.warning("AUTH_TOTP_REDIS_URL not set, using in-memory TOTP record store")
    return InMemoryRecordStore()


async def create_totp_plugin(
    config: Optional[TOTPConfig] = None,
    store: Optional[RecordStorePort] = None,
    clock: Clock = utcnow,
) -> TOTPAuthenticationPlugin:
    """Create and initialize the plugin, building what was not provided."""
    plugin = TOTPAuthenticationPlugin(clock=clock)
    return await plugin.init(
        config or create_default_config(),
        store or create_default_store(),
    )
