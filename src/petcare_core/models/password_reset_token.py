"""
Password reset token model.

Only the table is provided; issuing and redeeming tokens belongs to the
HTTP layer.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..utils.datetime_utils import ensure_utc, get_current_utc
from .base import BaseModel


class PasswordResetToken(BaseModel):
    __tablename__ = "password_reset_tokens"

    def __init__(self, **kwargs):
        kwargs.setdefault("used", False)
        super().__init__(**kwargs)

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    token: Mapped[str] = mapped_column(String(255), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("token", name="uq_password_reset_tokens_token"),
    )

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Unused, not deleted and not yet expired."""
        if self.used or self.is_deleted:
            return False
        return ensure_utc(self.expires_at) > (now or get_current_utc())

    def mark_used(self, now: Optional[datetime] = None) -> None:
        self.used = True
        self.used_at = now or get_current_utc()
