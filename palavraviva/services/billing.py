import logging
from typing import Any, List, Optional

import stripe
from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import get_db
from ..models.billing import StripePrice, StripeProduct
from ..models.sql_models import Account, User
from .users import PREMIUM_STATUSES, get_account

logger = logging.getLogger(__name__)

SUBSCRIPTION_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
)


def configure_stripe() -> None:
    stripe.api_key = get_settings().STRIPE_SECRET_KEY


def _field(obj: Any, key: str) -> Any:
    """Read a field from a Stripe object or a plain dict."""
    if obj is None or isinstance(obj, str):
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return getattr(obj, key, None)


def _first_price(subscription: Any) -> Any:
    items = _field(_field(subscription, "items"), "data") or []
    return _field(items[0], "price") if items else None


def _product_details(product: Any):
    """(product id, product name) from a product id or an expanded product."""
    if isinstance(product, str):
        return product, None
    if product is not None and _field(product, "id") and not _field(product, "deleted"):
        return _field(product, "id"), _field(product, "name")
    return None, None


class BillingService:
    """Stripe subscriptions linked to user accounts."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        configure_stripe()

    async def create_checkout_session(self, user: User, price_id: str) -> str:
        """Start a subscription checkout with a trial and return its URL."""
        account = get_account(self.db, user.id)
        base_url = self.settings.APP_URL.rstrip("/")
        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=f"{base_url}/api/v1/stripe/checkout?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base_url}/pricing",
                customer=(account.stripe_customer_id if account else None) or None,
                client_reference_id=str(user.id),
                allow_promotion_codes=True,
                subscription_data={"trial_period_days": self.settings.STRIPE_TRIAL_DAYS},
            )
        except stripe.StripeError:
            logger.error("Stripe checkout session failed for user %s", user.id, exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Não foi possível iniciar o checkout. Tente novamente.",
            )

        url = _field(session, "url")
        if not url:
            logger.error("Stripe session URL is empty for user %s", user.id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Não foi possível iniciar o checkout. Tente novamente.",
            )
        return url

    async def complete_checkout(self, session_id: str) -> User:
        """Link the Stripe customer and subscription from a finished checkout.

        Returns:
            User: the user who paid, so the caller can sign them in

        Raises:
            ValueError: when the session does not describe a usable subscription
        """
        session = stripe.checkout.Session.retrieve(
            session_id, expand=["customer", "subscription.plan.product"]
        )

        customer = _field(session, "customer")
        customer_id = _field(customer, "id")
        if not customer_id:
            raise ValueError("Invalid customer data received from Stripe session.")

        subscription = _field(session, "subscription")
        subscription_id = _field(subscription, "id")
        if not subscription_id:
            raise ValueError("No subscription found or subscription ID missing for this session.")

        product_id, plan_name = _product_details(_field(_first_price(subscription), "product"))

        reference = _field(session, "client_reference_id")
        if not reference:
            raise ValueError("Missing client_reference_id (user ID) in Stripe session.")
        try:
            user_id = int(reference)
        except (TypeError, ValueError):
            raise ValueError("Invalid client_reference_id (user ID) format in Stripe session.")

        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise ValueError(f"User not found in database for ID: {user_id}.")
        account = get_account(self.db, user.id)
        if account is None:
            raise ValueError(f"Account record not found for user ID: {user.id}.")

        account.stripe_customer_id = customer_id
        account.stripe_subscription_id = subscription_id
        account.stripe_product_id = product_id
        account.plan_name = plan_name
        account.subscription_status = _field(subscription, "status")
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info("Checkout completed for user %s (subscription %s)", user.id, subscription_id)
        return user

    async def create_customer_portal_session(self, user: User) -> str:
        account = get_account(self.db, user.id)
        if account is None or not account.stripe_customer_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Nenhuma assinatura encontrada para esta conta.",
            )
        try:
            portal = stripe.billing_portal.Session.create(
                customer=account.stripe_customer_id,
                return_url=f"{self.settings.APP_URL.rstrip('/')}/dashboard",
            )
        except stripe.StripeError:
            logger.error("Stripe portal session failed for account %s", account.id, exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Não foi possível abrir o portal de assinatura.",
            )
        return _field(portal, "url")

    async def handle_subscription_change(self, subscription: Any) -> None:
        """Mirror a subscription's state onto the account that owns the customer.

        The product and plan name are kept only while the subscription is
        active or trialing.
        """
        customer_id = _field(subscription, "customer")
        if not isinstance(customer_id, str):
            customer_id = _field(customer_id, "id")
        subscription_id = _field(subscription, "id")
        sub_status = _field(subscription, "status")
        logger.info("Subscription change for customer %s: %s", customer_id, sub_status)

        account = self.db.query(Account).filter(Account.stripe_customer_id == customer_id).first()
        if account is None:
            logger.error("No account for Stripe customer %s", customer_id)
            return

        product_id: Optional[str] = None
        plan_name: Optional[str] = None
        if sub_status in PREMIUM_STATUSES:
            price = _first_price(subscription)
            if price is None:
                logger.warning("Subscription %s has no items or price data", subscription_id)
            else:
                product_id, plan_name = _product_details(_field(price, "product"))
                if product_id is None:
                    logger.warning("Could not determine product for subscription %s", subscription_id)

        account.stripe_subscription_id = subscription_id
        account.subscription_status = sub_status
        account.stripe_product_id = product_id
        account.plan_name = plan_name
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to update subscription for account %s", account.id, exc_info=True)
            raise
        logger.info("Account %s subscription status is now %s", account.id, sub_status)


def construct_webhook_event(payload: bytes, signature: str, secret: str):
    """Verify a webhook signature and parse the event."""
    return stripe.Webhook.construct_event(payload, signature, secret)


def get_stripe_prices() -> List[StripePrice]:
    configure_stripe()
    try:
        prices = stripe.Price.list(expand=["data.product"], active=True, type="recurring")
    except stripe.StripeError:
        logger.error("Error fetching Stripe prices", exc_info=True)
        return []

    result = []
    for price in _field(prices, "data") or []:
        product = _field(price, "product")
        recurring = _field(price, "recurring")
        result.append(
            StripePrice(
                id=_field(price, "id"),
                product_id=product if isinstance(product, str) else _field(product, "id"),
                product_name="Unknown" if isinstance(product, str) else _field(product, "name"),
                unit_amount=_field(price, "unit_amount"),
                currency=_field(price, "currency"),
                interval=_field(recurring, "interval"),
                trial_period_days=_field(recurring, "trial_period_days"),
            )
        )
    return result


def get_stripe_products() -> List[StripeProduct]:
    configure_stripe()
    try:
        products = stripe.Product.list(active=True, expand=["data.default_price"])
    except stripe.StripeError:
        logger.error("Error fetching Stripe products", exc_info=True)
        return []

    result = []
    for product in _field(products, "data") or []:
        default_price = _field(product, "default_price")
        result.append(
            StripeProduct(
                id=_field(product, "id"),
                name=_field(product, "name"),
                description=_field(product, "description"),
                default_price_id=default_price if isinstance(default_price, str) else _field(default_price, "id"),
            )
        )
    return result


def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    """Dependency for getting the billing service."""
    return BillingService(db)
