from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..models.sql_models import Account, User, utcnow
from ..models.user import Subscription, User as UserSchema, UserWithSubscription

PREMIUM_STATUSES = ("active", "trialing")


def get_account(db: Session, user_id: int) -> Optional[Account]:
    return db.query(Account).filter(Account.user_id == user_id).first()


def is_user_premium(user: User, account: Optional[Account], now: Optional[datetime] = None) -> bool:
    """Whether the user gets premium features.

    A paying subscription always counts. A trial counts only until the
    user's own trial end date.
    """
    if account is None:
        return False
    status = account.subscription_status
    if status == "active":
        return True
    if status == "trialing":
        now = now or utcnow()
        return user.trial_end_date is not None and user.trial_end_date > now
    return False


def get_user_with_subscription(db: Session, user: User) -> Tuple[User, Optional[Account]]:
    return user, get_account(db, user.id)


def subscription_view(db: Session, user: User) -> UserWithSubscription:
    """Current user and subscription shaped for the API."""
    _, account = get_user_with_subscription(db, user)
    subscription = None
    if account is not None:
        subscription = Subscription(
            plan_name=account.plan_name,
            subscription_status=account.subscription_status,
            stripe_product_id=account.stripe_product_id,
            has_customer=account.stripe_customer_id is not None,
        )
    return UserWithSubscription(
        user=UserSchema.from_orm_user(user),
        subscription=subscription,
        is_premium=is_user_premium(user, account),
    )
