from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from ....core.security import client_ip, clear_session_cookie, get_current_user
from ....models.base import ActionResult
from ....models.sql_models import User
from ....models.user import (
    DeleteAccountRequest,
    PreferencesUpdate,
    UpdateAccountRequest,
    UpdatePasswordRequest,
)
from ....services.auth import AuthService, get_auth_service

router = APIRouter(prefix="/account", tags=["account"])


@router.put("", response_model=ActionResult)
async def update_account(
    data: UpdateAccountRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Any:
    """Change the user's name and email."""
    return await auth_service.update_account(current_user, data, client_ip(request))


@router.put("/password", response_model=ActionResult)
async def update_password(
    data: UpdatePasswordRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Any:
    return await auth_service.update_password(current_user, data, client_ip(request))


@router.patch("/preferences", response_model=ActionResult)
async def update_preferences(
    data: PreferencesUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Any:
    """
    Update notification time, timezone, theme or push subscription.

    Args:
        data: Fields to change; omitted fields keep their value
        request: Incoming request
        current_user: The current authenticated user
        auth_service: Authentication service

    Returns:
        ActionResult: Confirmation message
    """
    return await auth_service.update_preferences(current_user, data, client_ip(request))


@router.post("/delete", response_model=ActionResult)
async def delete_account(
    data: DeleteAccountRequest,
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Any:
    """
    Delete the current account after confirming the password.

    The session cookie is cleared on success.
    """
    result = await auth_service.delete_account(current_user, data, client_ip(request))
    clear_session_cookie(response)
    return result
