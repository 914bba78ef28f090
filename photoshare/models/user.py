import enum

from sqlalchemy import Column, String, Text, Integer, Enum, Index
from sqlalchemy.orm import relationship, validates
from photoshare.db.base import BaseModel


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEACTIVATED = "deactivated"


class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(30), nullable=False)
    # Case-insensitive uniqueness key, kept in step with username
    username_lower = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        default=UserRole.USER,
        nullable=False,
    )
    status = Column(
        Enum(AccountStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        default=AccountStatus.ACTIVE,
        nullable=False,
    )
    profile_image = Column(String(255), nullable=True)
    bio = Column(Text, default="", nullable=False)

    # Denormalized counts, maintained by CounterService
    post_count = Column(Integer, default=0, nullable=False)
    total_likes_received = Column(Integer, default=0, nullable=False)

    # Relationships
    posts = relationship("Post", back_populates="author", lazy="raise")
    comments = relationship("Comment", back_populates="author", lazy="raise")
    likes = relationship("Like", back_populates="user", lazy="raise")

    __table_args__ = (
        Index('ix_users_created_at', 'created_at'),
        Index('ix_users_status', 'status'),
    )

    @validates("username")
    def _sync_username_lower(self, key, value):
        self.username_lower = value.lower()
        return value

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE
