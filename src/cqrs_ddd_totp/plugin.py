"""
TOTP authentication plugin.

Single entry point for a host authentication framework: declares the
``totp`` strategy, bootstraps storage and exposes the strategy methods
(exists/create/update/delete/get_info/validate/verify) plus the
after-login pipeline hook.

Usage:
    plugin = TOTPAuthenticationPlugin()
    await plugin.init({"window": 1, "tokenExpirationTime": "5m"}, store)

    result = await plugin.after_login(AuthSucceeded("local", "user-123"))
    outcome = await plugin.verify(token, code)
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from cqrs_ddd_totp.application.challenge import (
    ChallengeIssuer,
    ChallengeVerifier,
    Clock,
    utcnow,
)
from cqrs_ddd_totp.application.enrollment import SecretEnrollmentService
from cqrs_ddd_totp.application.pipeline import (
    AuthSucceeded,
    HookResult,
    LoginPipelineHook,
)
from cqrs_ddd_totp.config import TOTPConfig
from cqrs_ddd_totp.domain.errors import ConfigurationError
from cqrs_ddd_totp.domain.value_objects import (
    PENDING_TOKEN_FIELD,
    PENDING_TOKEN_ISSUED_AT_FIELD,
    SECRET_FIELD,
    EnrolledSecret,
    VerificationOutcome,
)
from cqrs_ddd_totp.infrastructure.ports.record_store import RecordStorePort


logger = logging.getLogger("cqrs_ddd_totp.plugin")


# Record fields and their storage types
STORAGE_MAPPING = {
    "properties": {
        SECRET_FIELD: {"type": "keyword"},
        PENDING_TOKEN_FIELD: {"type": "keyword"},
        PENDING_TOKEN_ISSUED_AT_FIELD: {"type": "date", "format": "epoch_millis"},
    }
}


@dataclass(frozen=True)
class StrategyDefinition:
    """
    Declaration of the single second-factor strategy.

    The login form posts the challenge token as the username and the
    TOTP code as the password.
    """

    name: str = "totp"
    username_field: str = "token"
    password_field: str = "code"
    fields: tuple[str, ...] = ("kuid", "key")


class TOTPAuthenticationPlugin:
    """Facade wiring configuration, store and services together."""

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock
        self.config: Optional[TOTPConfig] = None
        self.store: Optional[RecordStorePort] = None
        self.strategy: Optional[StrategyDefinition] = None
        self.enrollment: Optional[SecretEnrollmentService] = None
        self.issuer: Optional[ChallengeIssuer] = None
        self.verifier: Optional[ChallengeVerifier] = None
        self.hook: Optional[LoginPipelineHook] = None

    async def init(
        self,
        config: Union[TOTPConfig, Mapping[str, Any], None],
        store: RecordStorePort,
    ) -> "TOTPAuthenticationPlugin":
        """
        Load configuration, declare storage and build the services.

        Raises:
            ConfigurationError: On malformed configuration
            StoreError: If the storage cannot be bootstrapped
        """
        self.config = (
            config if isinstance(config, TOTPConfig) else TOTPConfig.from_dict(config)
        )
        self.store = store

        await self.store.bootstrap(STORAGE_MAPPING)

        self.strategy = StrategyDefinition(name=self.config.strategy_name)
        self.enrollment = SecretEnrollmentService(store)
        self.issuer = ChallengeIssuer(store, clock=self.clock)
        self.verifier = ChallengeVerifier(store, self.config, clock=self.clock)
        self.hook = LoginPipelineHook(self.enrollment, self.issuer, self.config)

        logger.info(
            f"TOTP plugin initialized (strategy={self.strategy.name}, "
            f"window={self.config.window}, period={self.config.period}s, "
            f"token_expiration={self.config.token_expiration.total_seconds():g}s)"
        )
        return self

    def _require_init(self) -> None:
        if self.hook is None:
            raise ConfigurationError("TOTP plugin used before init()")

    # ═══════ Strategy methods ═══════

    async def exists(self, kuid: str) -> bool:
        self._require_init()
        return await self.enrollment.exists(kuid)

    async def create(self, kuid: str, secret: Optional[str] = None) -> EnrolledSecret:
        self._require_init()
        return await self.enrollment.create(kuid, secret)

    async def update(self, kuid: str, secret: Optional[str] = None) -> EnrolledSecret:
        self._require_init()
        return await self.enrollment.update(kuid, secret)

    async def delete(self, kuid: str) -> None:
        self._require_init()
        await self.enrollment.delete(kuid)

    async def get_info(self, kuid: str) -> dict[str, Any]:
        self._require_init()
        return await self.enrollment.get_info(kuid)

    async def validate(self, *args: Any, **kwargs: Any) -> bool:
        self._require_init()
        return await self.enrollment.validate(*args, **kwargs)

    async def verify(self, token: str, code: str) -> VerificationOutcome:
        self._require_init()
        return await self.verifier.verify(token, code)

    # ═══════ Pipeline ═══════

    async def after_login(self, event: AuthSucceeded) -> HookResult:
        self._require_init()
        return await self.hook(event)


__all__ = ["STORAGE_MAPPING", "StrategyDefinition", "TOTPAuthenticationPlugin"]
