import logging
from typing import Any, List, Optional
from urllib.parse import quote

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from ....config import get_settings
from ....core.security import get_current_user, set_session_cookie
from ....models.billing import CheckoutRequest, StripePrice, StripeProduct, UrlResponse
from ....models.sql_models import User
from ....services.billing import (
    SUBSCRIPTION_EVENTS,
    BillingService,
    construct_webhook_event,
    get_billing_service,
    get_stripe_prices,
    get_stripe_products,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["billing"])


@router.post("/checkout", response_model=UrlResponse)
async def create_checkout(
    data: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
) -> Any:
    url = await billing.create_checkout_session(current_user, data.price_id)
    return UrlResponse(url=url)


@router.get("/checkout")
async def checkout_success(
    session_id: Optional[str] = None,
    billing: BillingService = Depends(get_billing_service),
) -> Any:
    """
    Return URL of a finished Stripe checkout.

    Links the Stripe customer and subscription to the user's account, signs
    the user in and sends them to the app. Any failure sends them back to
    the pricing page.

    Args:
        session_id: Stripe checkout session id
        billing: Billing service

    Returns:
        RedirectResponse: to /app on success, /pricing otherwise
    """
    base_url = get_settings().APP_URL.rstrip("/")
    if not session_id:
        logger.warning("Checkout success called without session_id")
        return RedirectResponse(f"{base_url}/pricing", status_code=status.HTTP_303_SEE_OTHER)

    try:
        user = await billing.complete_checkout(session_id)
    except (ValueError, stripe.StripeError, SQLAlchemyError) as e:
        logger.error("Error handling successful checkout %s", session_id, exc_info=True)
        return RedirectResponse(
            f"{base_url}/pricing?error={quote(str(e))}",
            status_code=status.HTTP_303_SEE_OTHER,
        )

    response = RedirectResponse(f"{base_url}/app", status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, user.id)
    return response


@router.post("/portal", response_model=UrlResponse)
async def create_portal(
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
) -> Any:
    url = await billing.create_customer_portal_session(current_user)
    return UrlResponse(url=url)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    billing: BillingService = Depends(get_billing_service),
) -> Any:
    """
    Receive Stripe events.

    Subscription lifecycle events update the matching account; other events
    are acknowledged and ignored.
    """
    secret = get_settings().STRIPE_WEBHOOK_SECRET
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook secret not configured")

    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stripe-signature header")

    payload = await request.body()
    try:
        event = construct_webhook_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook signature verification failed")

    event_type = event["type"]
    if event_type in SUBSCRIPTION_EVENTS:
        try:
            await billing.handle_subscription_change(event["data"]["object"])
        except Exception:
            logger.error("Error handling webhook event %s", event_type, exc_info=True)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook handler failed")
    else:
        logger.info("Unhandled Stripe event type: %s", event_type)

    return {"received": True}


@router.get("/prices", response_model=List[StripePrice])
async def list_prices() -> Any:
    return get_stripe_prices()


@router.get("/products", response_model=List[StripeProduct])
async def list_products() -> Any:
    return get_stripe_products()
