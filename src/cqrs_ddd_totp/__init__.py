"""
py-cqrs-ddd-totp: TOTP second-factor challenge/response for login pipelines.

Built using CQRS and DDD patterns from py-cqrs-ddd-toolkit.
"""

__version__ = "0.1.0"

from cqrs_ddd_totp.config import TOTPConfig, parse_duration
from cqrs_ddd_totp.domain import (
    TOTPSecret,
    EnrolledSecret,
    VerificationOutcome,
    AuthDomainError,
    TOTPError,
    NotEnrolledError,
    StoreError,
    RecordNotFoundError,
    ConfigurationError,
)
from cqrs_ddd_totp.application import (
    SecretEnrollmentService,
    ChallengeIssuer,
    ChallengeVerifier,
    AuthSucceeded,
    HookResult,
    HookState,
    LoginPipelineHook,
)
from cqrs_ddd_totp.infrastructure.ports import (
    RecordStorePort,
    ConditionalReplaceCapability,
    Refresh,
)
from cqrs_ddd_totp.infrastructure.adapters import InMemoryRecordStore
from cqrs_ddd_totp.plugin import (
    STORAGE_MAPPING,
    StrategyDefinition,
    TOTPAuthenticationPlugin,
)
from cqrs_ddd_totp.factory import (
    create_default_config,
    create_default_store,
    create_totp_plugin,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "TOTPConfig",
    "parse_duration",
    # Domain
    "TOTPSecret",
    "EnrolledSecret",
    "VerificationOutcome",
    "AuthDomainError",
    "TOTPError",
    "NotEnrolledError",
    "StoreError",
    "RecordNotFoundError",
    "ConfigurationError",
    # Services
    "SecretEnrollmentService",
    "ChallengeIssuer",
    "ChallengeVerifier",
    "AuthSucceeded",
    "HookResult",
    "HookState",
    "LoginPipelineHook",
    # Storage
    "RecordStorePort",
    "ConditionalReplaceCapability",
    "Refresh",
    "InMemoryRecordStore",
    # Plugin
    "STORAGE_MAPPING",
    "StrategyDefinition",
    "TOTPAuthenticationPlugin",
    "create_default_config",
    "create_default_store",
    "create_totp_plugin",
]
