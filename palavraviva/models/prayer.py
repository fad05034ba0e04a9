from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class PairingStatus(str, Enum):
    NOT_STARTED = "not_started"
    WAITING = "waiting"
    PAIRED = "paired"


class PrayerPairStatus(BaseModel):
    """What a user may know about their pairing. Never identifies the partner."""

    status: PairingStatus
    notified: bool = False
    paired_since: Optional[datetime] = None
    partner_last_prayed_at: Optional[datetime] = None
    requested_at: Optional[datetime] = None
