import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
MIN_PASSWORD_LENGTH = 6


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    username: Optional[str] = Field(default=None, description="Subdomain label and Sapphire username")
    password: Optional[str] = Field(default=None, description="Secret stored on the confidential contract")
    auth_username: Optional[str] = Field(default=None, alias="authUsername", description="Caller's login name")
    domain: Optional[str] = Field(default=None, description="Ignored; the parent domain comes from settings")
    resume: bool = Field(default=False, description="Continue onboarding an existing user")

    def validation_error(self) -> Optional[str]:
        """First validation failure, or None when the request is acceptable."""
        if not self.username or not self.password or not self.auth_username:
            return "Missing required fields: username, password, authUsername"
        if not USERNAME_PATTERN.match(self.username):
            return "Username must be 3-20 characters (alphanumeric and underscore only)"
        if len(self.password) < MIN_PASSWORD_LENGTH:
            return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        return None


class DeleteUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    auth_username: Optional[str] = Field(default=None, alias="authUsername", description="Username to delete")
    password: Optional[str] = Field(default=None, description="Secret proving ownership")

    def validation_error(self) -> Optional[str]:
        if not self.auth_username or not self.password:
            return "Missing required fields: authUsername, password"
        return None
