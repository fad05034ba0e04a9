from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ActivityType(str, Enum):
    # Auth & account
    SIGN_UP = "SIGN_UP"
    SIGN_IN = "SIGN_IN"
    SIGN_OUT = "SIGN_OUT"
    UPDATE_PASSWORD = "UPDATE_PASSWORD"
    DELETE_ACCOUNT = "DELETE_ACCOUNT"
    UPDATE_ACCOUNT = "UPDATE_ACCOUNT"
    CREATE_ACCOUNT = "CREATE_ACCOUNT"
    # Devotional
    VIEW_DAILY_CONTENT = "VIEW_DAILY_CONTENT"
    PLAY_AUDIO = "PLAY_AUDIO"
    SHARE_CONTENT = "SHARE_CONTENT"
    ADD_PRAYER = "ADD_PRAYER"
    DELETE_PRAYER = "DELETE_PRAYER"
    START_READING_PLAN = "START_READING_PLAN"
    COMPLETE_READING_DAY = "COMPLETE_READING_DAY"
    COMPLETE_READING_PLAN = "COMPLETE_READING_PLAN"
    REQUEST_PRAYER_PAIR = "REQUEST_PRAYER_PAIR"
    MARK_PRAYER_DONE = "MARK_PRAYER_DONE"
    ENABLE_NOTIFICATIONS = "ENABLE_NOTIFICATIONS"
    CHANGE_THEME = "CHANGE_THEME"


# Events that only happen in the browser (prayer journal, audio player,
# share sheet) and are reported by the front end.
CLIENT_EVENTS = frozenset(
    {
        ActivityType.VIEW_DAILY_CONTENT,
        ActivityType.PLAY_AUDIO,
        ActivityType.SHARE_CONTENT,
        ActivityType.ADD_PRAYER,
        ActivityType.DELETE_PRAYER,
    }
)


class ActivityLogEntry(BaseModel):
    """Activity log row as shown on the activity page."""

    id: int
    action: ActivityType
    timestamp: datetime
    ip_address: Optional[str] = None
    user_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityLogList(BaseModel):
    items: List[ActivityLogEntry]


class ClientEvent(BaseModel):
    action: ActivityType
