"""Anonymous prayer pairing.

Users ask to be paired, wait in a queue for up to
PAIRING_REQUEST_TIMEOUT_HOURS, and are matched with a random other waiting
user. Each side can mark that they prayed, which flags a notification for the
partner. Partners never learn each other's identity.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy import exists, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import get_db
from ..models.activity import ActivityType
from ..models.base import ActionResult
from ..models.prayer import PairingStatus, PrayerPairStatus
from ..models.sql_models import Account, PrayerPair, User, utcnow
from .activity import ActivityService

logger = logging.getLogger(__name__)

ALREADY_PAIRED = "Você já está em uma dupla de oração ativa."
NOT_PAIRED = "Você não está em uma dupla de oração ativa."


def _in_active_pair(user_id_column):
    return exists().where(
        PrayerPair.is_active.is_(True),
        or_(PrayerPair.user1_id == user_id_column, PrayerPair.user2_id == user_id_column),
    )


class PrayerService:
    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityService(db)

    def _cutoff(self, now: datetime) -> datetime:
        return now - timedelta(hours=get_settings().PAIRING_REQUEST_TIMEOUT_HOURS)

    def get_active_pair(self, user_id: int) -> Optional[PrayerPair]:
        return (
            self.db.query(PrayerPair)
            .filter(
                PrayerPair.is_active.is_(True),
                or_(PrayerPair.user1_id == user_id, PrayerPair.user2_id == user_id),
            )
            .first()
        )

    def _find_partner(self, user: User, now: datetime) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(
                User.id != user.id,
                User.deleted_at.is_(None),
                User.requested_pairing_at.isnot(None),
                User.requested_pairing_at > self._cutoff(now),
                ~_in_active_pair(User.id),
            )
            .order_by(func.random())
            .first()
        )

    def _log(self, user_id: int, action: ActivityType) -> None:
        account_id = self.db.query(Account.id).filter(Account.user_id == user_id).scalar()
        self.activity.log_activity(account_id, user_id, action)

    async def request_pair(self, user: User) -> ActionResult:
        """Join the pairing queue, or pair immediately with someone waiting.

        Raises:
            HTTPException: 409 if the user is already paired or lost a race
                against a concurrent match
        """
        if self.get_active_pair(user.id) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_PAIRED)

        now = utcnow()
        if user.requested_pairing_at is not None and user.requested_pairing_at > self._cutoff(now):
            return ActionResult(success="Sua solicitação está ativa. Aguardando um par...")

        partner = self._find_partner(user, now)
        try:
            if partner is not None:
                # Take the partner out of the queue only if nobody else has
                claimed = (
                    self.db.query(User)
                    .filter(
                        User.id == partner.id,
                        User.requested_pairing_at.isnot(None),
                        User.requested_pairing_at > self._cutoff(now),
                    )
                    .update({User.requested_pairing_at: None}, synchronize_session=False)
                )
                if claimed != 1:
                    self.db.rollback()
                    logger.warning("Prayer partner %s was claimed by a concurrent request", partner.id)
                    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_PAIRED)
                self.db.add(
                    PrayerPair(
                        user1_id=min(user.id, partner.id),
                        user2_id=max(user.id, partner.id),
                        created_at=now,
                        is_active=True,
                    )
                )
                user.requested_pairing_at = None
                partner.requested_pairing_at = None
            else:
                user.requested_pairing_at = now
            self.db.commit()
        except IntegrityError:
            # One of the two was matched by a concurrent request
            self.db.rollback()
            logger.warning("Concurrent prayer pairing for user %s", user.id, exc_info=True)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_PAIRED)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Error requesting prayer pair for user %s", user.id, exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Ocorreu um erro ao solicitar a dupla de oração.",
            )

        if partner is not None:
            logger.info("Prayer pair formed between users %s and %s", user.id, partner.id)
            self._log(user.id, ActivityType.REQUEST_PRAYER_PAIR)
            self._log(partner.id, ActivityType.REQUEST_PRAYER_PAIR)
            return ActionResult(success="Dupla de oração formada! Ore por seu par.")

        logger.info("User %s is waiting for a prayer partner", user.id)
        self._log(user.id, ActivityType.REQUEST_PRAYER_PAIR)
        return ActionResult(success="Solicitação registrada. Aguardando um par...")

    async def mark_prayer_done(self, user: User) -> ActionResult:
        pair = self.get_active_pair(user.id)
        if pair is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_PAIRED)

        now = utcnow()
        if pair.user1_id == user.id:
            pair.user1_last_prayed_at = now
            pair.user2_notified_at = now
        else:
            pair.user2_last_prayed_at = now
            pair.user1_notified_at = now
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Error marking prayer as done for user %s", user.id, exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Ocorreu um erro ao marcar a oração.",
            )

        self._log(user.id, ActivityType.MARK_PRAYER_DONE)
        return ActionResult(success="Oração marcada como realizada. Seu par será notificado.")

    async def acknowledge_notification(self, user: User) -> ActionResult:
        pair = self.get_active_pair(user.id)
        if pair is None:
            return ActionResult(success="Nenhuma notificação para confirmar.")

        if pair.user1_id == user.id:
            pair.user1_notified_at = None
        else:
            pair.user2_notified_at = None
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Error acknowledging prayer notification for user %s", user.id, exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Ocorreu um erro ao confirmar a notificação.",
            )
        return ActionResult(success="Notificação confirmada.")

    async def get_pairing_status(self, user: User) -> PrayerPairStatus:
        pair = self.get_active_pair(user.id)
        if pair is not None:
            is_user1 = pair.user1_id == user.id
            own_notified = pair.user1_notified_at if is_user1 else pair.user2_notified_at
            partner_prayed = pair.user2_last_prayed_at if is_user1 else pair.user1_last_prayed_at
            return PrayerPairStatus(
                status=PairingStatus.PAIRED,
                notified=own_notified is not None,
                paired_since=pair.created_at,
                partner_last_prayed_at=partner_prayed,
            )

        requested = user.requested_pairing_at
        if requested is not None and requested > self._cutoff(utcnow()):
            return PrayerPairStatus(status=PairingStatus.WAITING, requested_at=requested)
        return PrayerPairStatus(status=PairingStatus.NOT_STARTED)


def get_prayer_service(db: Session = Depends(get_db)) -> PrayerService:
    """Dependency for getting the prayer service."""
    return PrayerService(db)
