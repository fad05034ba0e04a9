#!/usr/bin/env python3
"""
Seed a development database.

Creates a test user with a trial account, the sample reading plans and,
with --stripe, the Base and Plus subscription products.
"""
import os
import sys
from datetime import timedelta

from ._env import base_parser, load_environment

STRIPE_PRODUCTS = (
    ("Base", "Base subscription plan", 800),
    ("Plus", "Plus subscription plan", 1200),
)


def seed_user(db, email: str, password: str) -> None:
    from ..config import get_settings
    from ..core.security import get_password_hash
    from ..models.sql_models import Account, User, utcnow

    if db.query(User.id).filter(User.email == email).first():
        print("Test user already exists.")
        return

    user = User(
        email=email,
        name="Test User",
        password_hash=get_password_hash(password),
        role="owner",
        trial_end_date=utcnow() + timedelta(days=get_settings().TRIAL_DAYS),
    )
    user.account = Account(name=f"{email}'s Account", plan_name="free", subscription_status="trialing")
    db.add(user)
    db.commit()
    print(f"Created user {email} with a trial account.")


def create_stripe_products() -> None:
    import stripe

    from ..config import get_settings
    from ..services.billing import configure_stripe

    configure_stripe()
    existing = {p["name"] for p in stripe.Product.list(limit=100)["data"]}
    for name, description, amount in STRIPE_PRODUCTS:
        if name in existing:
            print(f"  {name} product already exists, skipping.")
            continue
        product = stripe.Product.create(name=name, description=description)
        stripe.Price.create(
            product=product["id"],
            unit_amount=amount,
            currency="usd",
            recurring={"interval": "month", "trial_period_days": get_settings().STRIPE_TRIAL_DAYS},
        )
        print(f"  Created {name} product and price.")


def main() -> int:
    parser = base_parser("Seed the development database")
    parser.add_argument("--email", default=os.getenv("SEED_EMAIL", "test@test.com"))
    parser.add_argument("--password", default=os.getenv("SEED_PASSWORD", "admin123"))
    parser.add_argument("--stripe", action="store_true", help="also create Stripe products and prices")
    args = parser.parse_args()
    load_environment(args.env_file)

    import stripe

    from ..db.base import SessionLocal, init_db
    from ..services.reading_plans import seed_reading_plans

    init_db()
    db = SessionLocal()
    try:
        seed_user(db, args.email, args.password)
        print("Seeding reading plans...")
        created = seed_reading_plans(db)
        print(f"Reading plan seeding finished ({created} created).")
    finally:
        db.close()

    if args.stripe:
        print("Creating Stripe products and prices...")
        try:
            create_stripe_products()
        except stripe.StripeError as e:
            print(f"Error creating Stripe products: {e}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
