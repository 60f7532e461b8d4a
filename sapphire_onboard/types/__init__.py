from .requests import CreateUserRequest, DeleteUserRequest
from .responses import ErrorResponse, HealthResponse, UserResponse

__all__ = [
    "CreateUserRequest",
    "DeleteUserRequest",
    "ErrorResponse",
    "HealthResponse",
    "UserResponse",
]
