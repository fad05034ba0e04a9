from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from ....core.security import client_ip, clear_session_cookie, get_current_user, get_optional_user, set_session_cookie
from ....db.base import get_db
from ....models.base import ActionResult, RedirectResult
from ....models.sql_models import User
from ....models.user import SignInRequest, SignUpRequest, UserWithSubscription
from ....services.auth import AuthService, get_auth_service
from ....services.billing import BillingService, get_billing_service
from ....services.users import subscription_view

router = APIRouter(prefix="/auth", tags=["auth"])


async def _after_auth(user: User, price_id: Optional[str], billing: BillingService, message: str):
    if price_id:
        url = await billing.create_checkout_session(user, price_id)
        return RedirectResult(success="Redirecionando para o checkout...", url=url)
    return ActionResult(success=message)


@router.post(
    "/sign-up",
    response_model=Union[RedirectResult, ActionResult],
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(
    data: SignUpRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    billing: BillingService = Depends(get_billing_service),
) -> Any:
    """
    Register a new user and start their trial.

    Args:
        data: Email, password and an optional Stripe price to subscribe to
        request: Incoming request
        response: Response carrying the session cookie
        auth_service: Authentication service
        billing: Billing service

    Returns:
        ActionResult, or RedirectResult with the checkout URL when price_id is given
    """
    user = await auth_service.sign_up(data, client_ip(request))
    set_session_cookie(response, user.id)
    return await _after_auth(user, data.price_id, billing, "Conta criada com sucesso.")


@router.post("/sign-in", response_model=Union[RedirectResult, ActionResult])
async def sign_in(
    data: SignInRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    billing: BillingService = Depends(get_billing_service),
) -> Any:
    """
    Sign in with email and password.

    Returns:
        ActionResult, or RedirectResult with the checkout URL when price_id is given
    """
    user = await auth_service.sign_in(data, client_ip(request))
    set_session_cookie(response, user.id)
    return await _after_auth(user, data.price_id, billing, "Login realizado com sucesso.")


@router.post("/sign-out", response_model=ActionResult)
async def sign_out(
    request: Request,
    response: Response,
    user: Optional[User] = Depends(get_optional_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Any:
    await auth_service.sign_out(user, client_ip(request))
    clear_session_cookie(response)
    return ActionResult(success="Sessão encerrada.")


@router.get("/me", response_model=UserWithSubscription)
async def read_current_user(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """
    Get the current user with their subscription state.

    Args:
        current_user: The current authenticated user
        db: Database session

    Returns:
        UserWithSubscription: The user, subscription and premium flag
    """
    return subscription_view(db, current_user)
