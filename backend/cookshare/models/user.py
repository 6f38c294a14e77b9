"""
CookShare Backend — User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table.
Who:   Read by the UserDirectory to enrich groups, members and posts with
       display names and avatars. Nothing in this service writes users;
       accounts are managed by the auth side of the application.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cookshare.database import Base


class User(Base):
    """A registered user, referenced everywhere else by its string id."""

    __tablename__ = "users"

    # Ids arrive from clients as plain strings (legacy ObjectId hex or UUID hex)
    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: uuid.uuid4().hex,
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, full_name='{self.full_name}')>"
