"""Errors raised by the onboarding service."""

from typing import List, Optional


class OnboardingError(Exception):
    """Base class for onboarding failures."""


class ConfigurationError(OnboardingError):
    """Required configuration (e.g. the deployer key) is missing or invalid."""


class UserAlreadyExistsError(OnboardingError):
    def __init__(self, username: str):
        super().__init__(f"User '{username}' already exists on Oasis")
        self.username = username


class UserNotFoundError(OnboardingError):
    def __init__(self, username: str):
        super().__init__(f"User '{username}' does not exist on Oasis")
        self.username = username


class PipelineError(OnboardingError):
    """A pipeline step failed; earlier steps stay completed."""

    def __init__(
        self,
        pipeline: str,
        step: str,
        cause: BaseException,
        completed: Optional[List[str]] = None,
    ):
        super().__init__(f"{pipeline}: step '{step}' failed: {cause}")
        self.pipeline = pipeline
        self.step = step
        self.cause = cause
        self.completed = completed or []

    @property
    def reason(self) -> Optional[str]:
        return getattr(self.cause, "reason", None)
