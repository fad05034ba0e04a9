from typing import Optional

from pydantic import BaseModel


class CheckoutRequest(BaseModel):
    price_id: str


class UrlResponse(BaseModel):
    url: str


class StripePrice(BaseModel):
    id: str
    product_id: str
    product_name: Optional[str] = None
    unit_amount: Optional[int] = None
    currency: str
    interval: Optional[str] = None
    trial_period_days: Optional[int] = None


class StripeProduct(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    default_price_id: Optional[str] = None
