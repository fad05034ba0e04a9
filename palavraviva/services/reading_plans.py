import json
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy import case, literal
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..db.base import get_db
from ..models.activity import ActivityType
from ..models.base import ActionResult
from ..models.sql_models import ReadingPlan, ReadingPlanDay, User, UserReadingProgress, utcnow
from .activity import ActivityService
from .users import get_account, is_user_premium

logger = logging.getLogger(__name__)

SAMPLE_PLANS_PATH = Path(__file__).resolve().parent.parent / "data" / "reading_plans.json"

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ReadingPlanService:
    """Reading plans catalogue and per-user progress."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityService(db)

    async def get_all_reading_plans(self) -> List[ReadingPlan]:
        try:
            return self.db.query(ReadingPlan).order_by(ReadingPlan.id).all()
        except SQLAlchemyError:
            logger.error("Error fetching reading plans", exc_info=True)
            return []

    async def get_reading_plan_details(self, plan_id: int) -> Optional[ReadingPlan]:
        """Plan with its days ordered by day number, or None."""
        if plan_id <= 0:
            logger.warning("Invalid plan id: %s", plan_id)
            return None
        try:
            plan = (
                self.db.query(ReadingPlan)
                .options(selectinload(ReadingPlan.days))
                .filter(ReadingPlan.id == plan_id)
                .first()
            )
        except SQLAlchemyError:
            logger.error("Error fetching reading plan %s", plan_id, exc_info=True)
            return None
        if plan is None:
            logger.info("Reading plan %s not found", plan_id)
        return plan

    async def get_user_progress(self, user_id: int) -> List[UserReadingProgress]:
        if user_id <= 0:
            logger.warning("Invalid user id: %s", user_id)
            return []
        try:
            return (
                self.db.query(UserReadingProgress)
                .filter(UserReadingProgress.user_id == user_id)
                .order_by(UserReadingProgress.plan_id)
                .all()
            )
        except SQLAlchemyError:
            logger.error("Error fetching reading progress for user %s", user_id, exc_info=True)
            return []

    def _upsert_progress(self, user_id: int, plan_id: int, day_number: int, completing: bool) -> None:
        """Record a finished day in one statement.

        A new row starts at the day after the one read. An existing row only
        moves forward, so re-reading an earlier day never rewinds progress.
        """
        dialect = self.db.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for progress upsert: {dialect}")

        now = utcnow()
        table = UserReadingProgress.__table__
        next_day = day_number + 1
        stmt = insert(table).values(
            user_id=user_id,
            plan_id=plan_id,
            current_day=next_day,
            completed_at=now if completing else None,
            started_at=now,
            last_updated=now,
        )
        update = {
            "current_day": case(
                (literal(day_number) >= table.c.current_day, next_day),
                else_=table.c.current_day,
            ),
            "last_updated": now,
        }
        if completing:
            update["completed_at"] = now
        stmt = stmt.on_conflict_do_update(index_elements=["user_id", "plan_id"], set_=update)
        self.db.execute(stmt)

    async def update_reading_progress(self, user: User, plan_id: int, day_number: int) -> ActionResult:
        """Mark a plan day as read for the user.

        Raises:
            HTTPException: 404 for an unknown plan, 400 for a day past the end,
                403 for a premium plan without premium access
        """
        plan = self.db.query(ReadingPlan).filter(ReadingPlan.id == plan_id).first()
        if plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plano de leitura não encontrado.")
        if day_number > plan.duration_days:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Número do dia inválido.")

        account = get_account(self.db, user.id)
        if plan.is_premium and not is_user_premium(user, account):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Este plano é exclusivo para assinantes premium.",
            )

        completing = day_number == plan.duration_days
        try:
            existed = (
                self.db.query(UserReadingProgress.id)
                .filter(UserReadingProgress.user_id == user.id, UserReadingProgress.plan_id == plan_id)
                .first()
                is not None
            )
            self._upsert_progress(user.id, plan_id, day_number, completing)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                "Error updating reading progress for user %s, plan %s, day %s",
                user.id, plan_id, day_number, exc_info=True,
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Não foi possível atualizar o progresso da leitura.",
            )

        started = not existed and day_number == 1
        if completing:
            action = ActivityType.COMPLETE_READING_PLAN
            message = "Parabéns! Você concluiu o plano de leitura!"
        elif started:
            action = ActivityType.START_READING_PLAN
            message = f"Plano iniciado! Dia {day_number} marcado como concluído!"
        else:
            action = ActivityType.COMPLETE_READING_DAY
            message = f"Dia {day_number} marcado como concluído!"

        account_id = account.id if account else None
        self.activity.log_activity(account_id, user.id, action)
        return ActionResult(success=message)


def seed_reading_plans(db: Session, path: Path = SAMPLE_PLANS_PATH) -> int:
    """Insert the sample plans that are not in the database yet.

    Returns:
        int: number of plans created
    """
    plans = json.loads(path.read_text(encoding="utf-8"))
    created = 0
    for data in plans:
        if db.query(ReadingPlan.id).filter(ReadingPlan.title == data["title"]).first():
            logger.info("Reading plan '%s' already exists, skipping", data["title"])
            continue
        plan = ReadingPlan(
            title=data["title"],
            description=data.get("description"),
            duration_days=data["duration_days"],
            theme=data.get("theme"),
            is_premium=data.get("is_premium", False),
        )
        plan.days = [ReadingPlanDay(**day) for day in data.get("days", [])]
        db.add(plan)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error("Error seeding plan '%s'", data["title"], exc_info=True)
            continue
        logger.info("Inserted plan '%s' with %d days", plan.title, len(plan.days))
        created += 1
    return created


def get_reading_plan_service(db: Session = Depends(get_db)) -> ReadingPlanService:
    """Dependency for getting the reading plan service."""
    return ReadingPlanService(db)
