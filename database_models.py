from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Account created at signup; referenced by id everywhere else."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Subscription(Base):
    """
    One user's billing relationship with one provider.

    The unique constraint on user_id is what enforces "one subscription per user";
    the repository maps its violation to SubscriptionAlreadyExists.
    """
    __tablename__ = "subscriptions"
    __table_args__ = (UniqueConstraint("user_id", name="uq_subscriptions_user_id"),)

    id = Column(String, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan = Column(String, nullable=False)
    billing_period = Column(String, nullable=False)
    provider = Column(String, nullable=False)
    provider_subscription_id = Column(String, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "plan": self.plan,
            "billing_period": self.billing_period,
            "provider": self.provider,
            "provider_subscription_id": self.provider_subscription_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ProviderSubscription(Base):
    """
    A provider-side subscription handle issued through /api/payments.

    Records which user created the handle and at which provider, so a local
    subscription can only reference, and later cancel, the caller's own handles.
    """
    __tablename__ = "provider_subscriptions"

    id = Column(String, primary_key=True)
    provider = Column(String, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Cat(Base):
    """Cat profile plus the latest AI care recommendations."""
    __tablename__ = "cats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=True)
    photo = Column(String, nullable=True)
    goals = Column(Text, nullable=True)
    issues_faced = Column(Text, nullable=True)
    activity_level = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    age = Column(Integer, nullable=True)
    country = Column(String, nullable=True)
    zipcode = Column(String, nullable=True)
    breed = Column(String, nullable=True)
    weight = Column(Float, nullable=True)
    target_weight = Column(Float, nullable=True)
    required_progress = Column(String, nullable=True)
    check_in_period = Column(String, nullable=True)
    training_days = Column(String, nullable=True)
    medical_conditions = Column(Text, nullable=True)
    medications = Column(Text, nullable=True)
    dietary_restrictions = Column(Text, nullable=True)
    medical_history = Column(Text, nullable=True)
    items = Column(Text, nullable=True)

    # Recommendation KPIs
    food_bowls = Column(Float, nullable=True)
    treats = Column(Float, nullable=True)
    playtime = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    PROFILE_FIELDS = (
        "name", "photo", "goals", "issues_faced", "activity_level", "gender", "age",
        "country", "zipcode", "breed", "weight", "target_weight", "required_progress",
        "check_in_period", "training_days", "medical_conditions", "medications",
        "dietary_restrictions", "medical_history", "items",
    )
    RECOMMENDATION_FIELDS = ("food_bowls", "treats", "playtime")

    def profile(self) -> dict:
        """Fields sent to the LLM; excludes ids and previous recommendations."""
        return {field: getattr(self, field) for field in self.PROFILE_FIELDS}

    def to_dict(self) -> dict:
        data = {"id": self.id, "user_id": self.user_id}
        data.update(self.profile())
        data.update({field: getattr(self, field) for field in self.RECOMMENDATION_FIELDS})
        return data


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.id",
        lazy="selectin",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
