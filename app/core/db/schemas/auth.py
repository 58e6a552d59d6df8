from __future__ import annotations

from typing import TYPE_CHECKING
from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTable

from app.core.db.base import Base

if TYPE_CHECKING:
    from .billing import Subscription
    from .usage import GenerationUsage


class User(SQLAlchemyBaseUserTable[int], Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Relationships
    subscriptions: Mapped[list["Subscription"]] = relationship(
        "Subscription", back_populates="user", cascade="all, delete-orphan"
    )
    generation_usage: Mapped["GenerationUsage"] = relationship(
        "GenerationUsage",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )


__all__ = ["User"]
