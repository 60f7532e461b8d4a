"""User endpoints backed by the onboarding service."""

from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Dict

import structlog
from fastapi import APIRouter, Body, Depends, Header
from fastapi.responses import JSONResponse

from ..config import settings
from ..core.execution.errors import TransactionError
from ..core.onboarding import (
    ConfigurationError,
    OnboardingService,
    PipelineError,
    UserAlreadyExistsError,
    UserNotFoundError,
    open_onboarding_service,
)
from ..types import CreateUserRequest, DeleteUserRequest, UserResponse

router = APIRouter()
logger = structlog.stdlib.get_logger("users")

ServiceFactory = Callable[[], AbstractAsyncContextManager[OnboardingService]]


def get_service_factory() -> ServiceFactory:
    """Opens a fresh service (endpoint selection + connections) per request."""
    return lambda: open_onboarding_service(settings)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def describe_error(error: Exception, default: str) -> str:
    """Operator-facing message for a failed create/delete."""
    message = str(error)
    lowered = message.lower()

    if isinstance(error, UserAlreadyExistsError) or "user already exists" in lowered:
        return "User already exists"
    if isinstance(error, UserNotFoundError) or "user does not exist" in lowered:
        return "User not found"
    if "PKEY environment variable not set" in message:
        return "Server configuration error: Private key not set"
    if isinstance(error, ConfigurationError):
        return f"Server configuration error: {message}"
    if "insufficient funds" in lowered:
        return "Insufficient funds in deployer wallet"

    reason = getattr(error, "reason", None)
    if reason:
        return str(reason)
    if isinstance(error, TransactionError):
        return error.message
    if isinstance(error, PipelineError):
        return str(error.cause)
    return message or default


async def _create_user(payload: Dict[str, Any], factory: ServiceFactory) -> JSONResponse:
    request = CreateUserRequest.model_validate(payload)
    problem = request.validation_error()
    if problem:
        return _error(400, problem)

    try:
        async with factory() as service:
            result = await service.create_user(
                request.username,
                request.password,
                request.auth_username,
                resume=request.resume,
            )
    except UserAlreadyExistsError as e:
        return _error(400, describe_error(e, "User already exists"))
    except Exception as e:
        logger.exception("create_user_failed", username=request.username)
        return _error(500, describe_error(e, "Failed to create user on Oasis"))

    logger.info(
        "user_created",
        username=request.username,
        address=result.user_address,
        subdomain_registered=result.ens.success,
    )
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "User created successfully on Oasis Sapphire and registered on ENS",
            **result.to_dict(),
        },
    )


async def _delete_user(payload: Dict[str, Any], factory: ServiceFactory) -> JSONResponse:
    request = DeleteUserRequest.model_validate(payload)
    problem = request.validation_error()
    if problem:
        return _error(400, problem)

    try:
        async with factory() as service:
            result = await service.delete_user(request.auth_username, request.password)
    except UserNotFoundError as e:
        return _error(404, describe_error(e, "User not found"))
    except Exception as e:
        logger.exception("delete_user_failed", auth_username=request.auth_username)
        return _error(500, describe_error(e, "Failed to delete user from Oasis"))

    logger.info("user_deleted", auth_username=result.auth_username, tx_hash=result.tx_hash)
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "User deleted successfully from Oasis Sapphire",
            "txHash": result.tx_hash,
            "blockNumber": result.block_number,
            "authUsername": result.auth_username,
        },
    )


@router.post("/createUser")
async def function_router(
    payload: Dict[str, Any] = Body(default={}),
    x_function_name: str = Header(default="createUser"),
    factory: ServiceFactory = Depends(get_service_factory),
) -> JSONResponse:
    """Single entry point dispatching on the ``X-Function-Name`` header."""
    if x_function_name == "deleteUser":
        return await _delete_user(payload, factory)
    return await _create_user(payload, factory)


@router.post("/users")
async def create_user(
    payload: Dict[str, Any] = Body(default={}),
    factory: ServiceFactory = Depends(get_service_factory),
) -> JSONResponse:
    return await _create_user(payload, factory)


@router.post("/users/delete")
async def delete_user(
    payload: Dict[str, Any] = Body(default={}),
    factory: ServiceFactory = Depends(get_service_factory),
) -> JSONResponse:
    return await _delete_user(payload, factory)


@router.get("/users/{username}", response_model=UserResponse)
async def get_user(
    username: str,
    factory: ServiceFactory = Depends(get_service_factory),
):
    try:
        async with factory() as service:
            record = await service.get_user(username)
    except UserNotFoundError as e:
        return _error(404, str(e))
    except Exception as e:
        logger.exception("get_user_failed", username=username)
        return _error(500, describe_error(e, "Failed to read user from Oasis"))

    return UserResponse(
        username=record.username,
        wallet_address=record.wallet_address,
        subdomain=record.subdomain,
    )
