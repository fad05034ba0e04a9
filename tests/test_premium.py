from datetime import timedelta

import pytest

from palavraviva.models.sql_models import Account, User, utcnow
from palavraviva.services.users import is_user_premium, subscription_view

NOW = utcnow()


def _user(trial_end):
    return User(email="a@example.com", password_hash="x", trial_end_date=trial_end)


@pytest.mark.parametrize(
    "status, trial_end, expected",
    [
        ("active", None, True),
        ("active", NOW - timedelta(days=30), True),
        ("trialing", NOW + timedelta(days=1), True),
        ("trialing", NOW - timedelta(minutes=1), False),
        ("trialing", None, False),
        ("canceled", NOW + timedelta(days=1), False),
        ("past_due", None, False),
        (None, NOW + timedelta(days=1), False),
    ],
)
def test_is_user_premium(status, trial_end, expected):
    account = Account(name="conta", subscription_status=status)
    assert is_user_premium(_user(trial_end), account, now=NOW) is expected


def test_no_account_is_never_premium():
    assert is_user_premium(_user(NOW + timedelta(days=7)), None, now=NOW) is False


def test_subscription_view(db, make_user):
    user = make_user(status="active")
    user.account.stripe_customer_id = "cus_1"
    user.account.plan_name = "Plus"
    db.commit()

    view = subscription_view(db, user)
    assert view.is_premium is True
    assert view.user.email == user.email
    assert view.subscription.plan_name == "Plus"
    assert view.subscription.has_customer is True
