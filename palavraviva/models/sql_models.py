from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from ..db.base import Base
from .activity import ActivityType


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """SQLAlchemy model for users."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(20), nullable=False, default="member")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)
    # Preferences
    notification_time = Column(Time, nullable=True, default=lambda: datetime.strptime("07:00", "%H:%M").time())
    notification_tz = Column(String(50), nullable=False, default="America/Sao_Paulo")
    push_subscription = Column(JSON, nullable=True)
    theme = Column(String(50), nullable=False, default="light")
    trial_end_date = Column(DateTime, nullable=True)
    # Set while the user waits in the prayer pairing queue
    requested_pairing_at = Column(DateTime, nullable=True)

    # Relationships
    account = relationship("Account", back_populates="user", uselist=False, cascade="all, delete-orphan")
    reading_progress = relationship("UserReadingProgress", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Account(Base):
    """One row per user holding the Stripe subscription state."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    stripe_customer_id = Column(Text, unique=True, nullable=True)
    stripe_subscription_id = Column(Text, unique=True, nullable=True)
    stripe_product_id = Column(Text, nullable=True)
    plan_name = Column(String(50), nullable=True)
    subscription_status = Column(String(20), nullable=True)

    # Relationships
    user = relationship("User", back_populates="account")
    activity_logs = relationship("ActivityLog", back_populates="account", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Account(id={self.id}, user_id={self.user_id}, status='{self.subscription_status}')>"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(Enum(ActivityType, name="activity_type"), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    ip_address = Column(String(45), nullable=True)

    account = relationship("Account", back_populates="activity_logs")

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, action='{self.action}')>"


class DailyContent(Base):
    """Verse, reflection and audio for one calendar day."""

    __tablename__ = "daily_content"

    id = Column(Integer, primary_key=True)
    content_date = Column(Date, unique=True, nullable=False, index=True)
    verse_ref = Column(String(100), nullable=False)
    verse_text = Column(Text, nullable=False)
    reflection_text = Column(Text, nullable=False)
    audio_url_free = Column(Text, nullable=True)
    audio_url_premium = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<DailyContent(date={self.content_date}, verse_ref='{self.verse_ref}')>"


class ReadingPlan(Base):
    __tablename__ = "reading_plans"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_days = Column(Integer, nullable=False)
    theme = Column(String(100), nullable=True, index=True)
    is_premium = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    days = relationship(
        "ReadingPlanDay",
        back_populates="plan",
        order_by="ReadingPlanDay.day_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<ReadingPlan(id={self.id}, title='{self.title}')>"


class ReadingPlanDay(Base):
    __tablename__ = "reading_plan_days"
    __table_args__ = (
        UniqueConstraint("plan_id", "day_number", name="reading_plan_days_plan_id_day_number_unique"),
    )

    id = Column(Integer, primary_key=True)
    plan_id = Column(Integer, ForeignKey("reading_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    verse_ref = Column(String(100), nullable=False)
    verse_text = Column(Text, nullable=False)
    content = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    plan = relationship("ReadingPlan", back_populates="days")

    def __repr__(self):
        return f"<ReadingPlanDay(plan_id={self.plan_id}, day={self.day_number})>"


class UserReadingProgress(Base):
    __tablename__ = "user_reading_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "plan_id", name="user_reading_progress_user_id_plan_id_unique"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("reading_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    # Next day the user has to read
    current_day = Column(Integer, nullable=False, default=1)
    completed_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    last_updated = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="reading_progress")
    plan = relationship("ReadingPlan")

    def __repr__(self):
        return f"<UserReadingProgress(user_id={self.user_id}, plan_id={self.plan_id}, current_day={self.current_day})>"


class PrayerPair(Base):
    """Two anonymous users praying for each other.

    user1_id is always the smaller id, so a pair has a single representation.
    The indexes only guard each column; a user appearing on both sides of two
    active pairs is prevented by PrayerService.request_pair claiming the
    partner's queue entry before inserting.
    """

    __tablename__ = "prayer_pairs"
    __table_args__ = (
        CheckConstraint("user1_id < user2_id", name="user_id_order"),
        # A user holds at most one active slot per side
        Index(
            "prayer_pairs_active_user1_idx",
            "user1_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index(
            "prayer_pairs_active_user2_idx",
            "user2_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True)
    user1_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user2_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    user1_last_prayed_at = Column(DateTime, nullable=True)
    user2_last_prayed_at = Column(DateTime, nullable=True)
    user1_notified_at = Column(DateTime, nullable=True)
    user2_notified_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    def __repr__(self):
        return f"<PrayerPair(id={self.id}, users=({self.user1_id}, {self.user2_id}), active={self.is_active})>"


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        UniqueConstraint("abbreviation", "version", name="books_abbreviation_version_unique_idx"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    abbreviation = Column(String(10), nullable=False)
    testament = Column(String(2), nullable=False)  # 'VT' or 'NT'
    version = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    chapters = relationship("Chapter", back_populates="book", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Book({self.abbreviation}, {self.version})>"


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("book_id", "chapter_number", name="chapters_book_id_chapter_number_unique_idx"),
    )

    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    chapter_number = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    book = relationship("Book", back_populates="chapters")
    verses = relationship("Verse", back_populates="chapter", cascade="all, delete-orphan")


class Verse(Base):
    __tablename__ = "verses"
    __table_args__ = (
        UniqueConstraint("chapter_id", "verse_number", name="verses_chapter_id_verse_number_unique_idx"),
    )

    id = Column(Integer, primary_key=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False)
    verse_number = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    chapter = relationship("Chapter", back_populates="verses")

    def __repr__(self):
        return f"<Verse(chapter_id={self.chapter_id}, verse={self.verse_number})>"
