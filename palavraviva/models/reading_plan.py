from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReadingPlanDay(BaseModel):
    id: int
    day_number: int
    verse_ref: str
    verse_text: str
    content: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ReadingPlan(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    duration_days: int
    theme: Optional[str] = None
    is_premium: bool = False

    model_config = ConfigDict(from_attributes=True)


class ReadingPlanDetails(ReadingPlan):
    days: List[ReadingPlanDay] = []


class ReadingProgress(BaseModel):
    plan_id: int
    current_day: int
    completed_at: Optional[datetime] = None
    started_at: datetime
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)


class ProgressUpdate(BaseModel):
    plan_id: int = Field(..., gt=0)
    day_number: int = Field(..., gt=0)
