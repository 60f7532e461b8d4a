"""
User Onboarding

Stores user secrets on Sapphire and registers their subdomain on Hoodi as
resumable pipelines of retried transactions.
"""

from .contracts import (
    ConfidentialAuthContract,
    SubdomainRegistrar,
    encode_call,
    namehash,
)
from .errors import (
    ConfigurationError,
    OnboardingError,
    PipelineError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .pipeline import Pipeline, PipelineResult, PipelineStep, StepResult
from .service import (
    CreateUserResult,
    DeleteUserResult,
    OnboardingService,
    SubdomainResult,
    UserRecord,
    open_onboarding_service,
    resolve_endpoints,
)

__all__ = [
    "ConfidentialAuthContract",
    "SubdomainRegistrar",
    "encode_call",
    "namehash",
    "ConfigurationError",
    "OnboardingError",
    "PipelineError",
    "UserAlreadyExistsError",
    "UserNotFoundError",
    "Pipeline",
    "PipelineResult",
    "PipelineStep",
    "StepResult",
    "CreateUserResult",
    "DeleteUserResult",
    "OnboardingService",
    "SubdomainResult",
    "UserRecord",
    "open_onboarding_service",
    "resolve_endpoints",
]
