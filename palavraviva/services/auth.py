import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.security import get_password_hash, verify_password
from ..db.base import get_db
from ..models.activity import ActivityType
from ..models.base import ActionResult
from ..models.sql_models import Account, PrayerPair, User, utcnow
from ..models.user import (
    DeleteAccountRequest,
    PreferencesUpdate,
    SignInRequest,
    SignUpRequest,
    UpdateAccountRequest,
    UpdatePasswordRequest,
)
from .activity import ActivityService
from .users import get_account

logger = logging.getLogger(__name__)

EMAIL_IN_USE = "Este email já está em uso. Tente fazer login."
INVALID_CREDENTIALS = "Email ou senha inválidos. Tente novamente."
DELETED_USER_NAME = "Usuário Excluído"


class AuthService:
    """Service for handling authentication and account management."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityService(db)

    def _active_user_by_email(self, email: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.email == email, User.deleted_at.is_(None))
            .first()
        )

    def _log(self, user: User, action: ActivityType, ip_address: Optional[str]) -> None:
        account = get_account(self.db, user.id)
        self.activity.log_activity(account.id if account else None, user.id, action, ip_address)

    def _server_error(self, message: str) -> HTTPException:
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)

    async def sign_up(self, data: SignUpRequest, ip_address: Optional[str] = None) -> User:
        """Register a new user with a trial account.

        Args:
            data: Sign-up form
            ip_address: Caller address for the activity log

        Returns:
            User: The created user

        Raises:
            HTTPException: 409 if the email is already registered
        """
        email = data.email.lower()
        if self._active_user_by_email(email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_IN_USE)

        now = utcnow()
        user = User(
            email=email,
            password_hash=get_password_hash(data.password),
            role="member",
            trial_end_date=now + timedelta(days=get_settings().TRIAL_DAYS),
        )
        user.account = Account(
            name=f"{email}'s Account",
            plan_name="free",
            subscription_status="trialing",
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_IN_USE)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to create user %s", email, exc_info=True)
            raise self._server_error("Falha ao criar conta. Tente novamente mais tarde.")

        logger.info("Created user %s with trial until %s", user.id, user.trial_end_date)
        self.activity.log_activity(user.account.id, user.id, ActivityType.CREATE_ACCOUNT, ip_address)
        self.activity.log_activity(user.account.id, user.id, ActivityType.SIGN_UP, ip_address)
        return user

    async def sign_in(self, data: SignInRequest, ip_address: Optional[str] = None) -> User:
        """Authenticate a user by email and password.

        Raises:
            HTTPException: 401 if the credentials do not match an active user
        """
        user = self._active_user_by_email(data.email.lower())
        if user is None or not verify_password(data.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=INVALID_CREDENTIALS,
            )
        self._log(user, ActivityType.SIGN_IN, ip_address)
        return user

    async def sign_out(self, user: Optional[User], ip_address: Optional[str] = None) -> None:
        if user is not None:
            self._log(user, ActivityType.SIGN_OUT, ip_address)

    async def update_password(
        self, user: User, data: UpdatePasswordRequest, ip_address: Optional[str] = None
    ) -> ActionResult:
        if not verify_password(data.current_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Senha atual incorreta.")
        if data.current_password == data.new_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Nova senha deve ser diferente da senha atual.",
            )

        user.password_hash = get_password_hash(data.new_password)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to update password for user %s", user.id, exc_info=True)
            raise self._server_error("Ocorreu um erro ao atualizar a senha.")

        self._log(user, ActivityType.UPDATE_PASSWORD, ip_address)
        return ActionResult(success="Senha atualizada com sucesso.")

    async def update_account(
        self, user: User, data: UpdateAccountRequest, ip_address: Optional[str] = None
    ) -> ActionResult:
        email = data.email.lower()
        other = self._active_user_by_email(email)
        if other is not None and other.id != user.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Este email já está em uso por outra conta.",
            )

        user.name = data.name
        user.email = email
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Este email já está em uso por outra conta.",
            )
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to update account for user %s", user.id, exc_info=True)
            raise self._server_error("Ocorreu um erro ao atualizar a conta.")

        self._log(user, ActivityType.UPDATE_ACCOUNT, ip_address)
        return ActionResult(success="Conta atualizada com sucesso.")

    async def delete_account(
        self, user: User, data: DeleteAccountRequest, ip_address: Optional[str] = None
    ) -> ActionResult:
        """Soft delete the user after confirming their password.

        The email is rewritten so the address can be registered again.
        """
        if not verify_password(data.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Senha incorreta. Exclusão da conta falhou.",
            )

        # Log while the user still has a valid account row
        self._log(user, ActivityType.DELETE_ACCOUNT, ip_address)

        user.deleted_at = utcnow()
        user.email = f"{user.email}-{user.id}-deleted"
        user.name = DELETED_USER_NAME
        user.password_hash = ""
        user.push_subscription = None
        user.requested_pairing_at = None
        try:
            # Free the partner so they can be paired again
            self.db.query(PrayerPair).filter(
                PrayerPair.is_active.is_(True),
                or_(PrayerPair.user1_id == user.id, PrayerPair.user2_id == user.id),
            ).update({PrayerPair.is_active: False}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to delete user %s", user.id, exc_info=True)
            raise self._server_error("Ocorreu um erro ao excluir a conta. Tente novamente.")

        logger.info("Soft deleted user %s", user.id)
        return ActionResult(success="Conta excluída com sucesso.")

    async def update_preferences(
        self, user: User, data: PreferencesUpdate, ip_address: Optional[str] = None
    ) -> ActionResult:
        fields = data.model_dump(exclude_unset=True)
        theme_changed = "theme" in fields and fields["theme"] is not None and fields["theme"] != user.theme
        enabling_push = fields.get("push_subscription") is not None and user.push_subscription is None

        for key, value in fields.items():
            if key in ("notification_tz", "theme") and value is None:
                continue
            setattr(user, key, value)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to update preferences for user %s", user.id, exc_info=True)
            raise self._server_error("Ocorreu um erro ao atualizar as preferências.")

        if theme_changed:
            self._log(user, ActivityType.CHANGE_THEME, ip_address)
        if enabling_push:
            self._log(user, ActivityType.ENABLE_NOTIFICATIONS, ip_address)
        return ActionResult(success="Preferências atualizadas com sucesso.")


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency for getting the auth service."""
    return AuthService(db)
