import logging
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import get_db
from ..models.activity import CLIENT_EVENTS, ActivityLogEntry, ActivityType
from ..models.base import ActionResult
from ..models.sql_models import Account, ActivityLog, User

logger = logging.getLogger(__name__)


class ActivityService:
    """Audit trail of user actions, scoped to the user's account."""

    def __init__(self, db: Session):
        self.db = db

    def log_activity(
        self,
        account_id: Optional[int],
        user_id: Optional[int],
        action: ActivityType,
        ip_address: Optional[str] = None,
    ) -> None:
        """Insert an activity row. Never raises: a lost log must not fail the caller."""
        if account_id is None:
            logger.warning("Skipping activity %s for user %s: no account", action.value, user_id)
            return
        try:
            self.db.add(
                ActivityLog(
                    account_id=account_id,
                    user_id=user_id,
                    action=action,
                    ip_address=ip_address,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to log activity %s for user %s", action.value, user_id, exc_info=True)

    def log_for_user(self, user: User, action: ActivityType, ip_address: Optional[str] = None) -> None:
        """Log an action for a user, resolving their account."""
        account_id = self.db.query(Account.id).filter(Account.user_id == user.id).scalar()
        self.log_activity(account_id, user.id, action, ip_address)

    def get_activity_logs(self, user: User) -> List[ActivityLogEntry]:
        """Most recent activity for the user's account, newest first."""
        limit = get_settings().ACTIVITY_LOG_LIMIT
        rows = (
            self.db.query(ActivityLog, User.name)
            .join(Account, ActivityLog.account_id == Account.id)
            .outerjoin(User, ActivityLog.user_id == User.id)
            .filter(Account.user_id == user.id)
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
            .limit(limit)
            .all()
        )
        return [
            ActivityLogEntry(
                id=log.id,
                action=log.action,
                timestamp=log.timestamp,
                ip_address=log.ip_address,
                user_name=user_name,
            )
            for log, user_name in rows
        ]

    def record_client_event(
        self, user: User, action: ActivityType, ip_address: Optional[str] = None
    ) -> ActionResult:
        """Record an event that happened in the browser (journal, player, share)."""
        if action not in CLIENT_EVENTS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tipo de atividade não permitido.",
            )
        self.log_for_user(user, action, ip_address)
        return ActionResult(success="Atividade registrada.")


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    """Dependency for getting the activity service."""
    return ActivityService(db)
