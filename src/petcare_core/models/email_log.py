"""
Email audit log model.
"""

import enum
import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, enum_column


class DeliveryStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"


class EmailLog(BaseModel):
    """One row per attempted email, successful or not."""

    __tablename__ = "email_logs"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )

    to_email: Mapped[str] = mapped_column(String(255), nullable=False)

    subject: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="Notification type or email purpose"
    )

    notification_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("notifications.id"), nullable=True
    )

    delivery_status: Mapped[DeliveryStatus] = mapped_column(
        enum_column(DeliveryStatus, "email_delivery_status"),
        nullable=False,
        default=DeliveryStatus.SENT,
    )

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_email_logs_created_at", "created_at"),)

    def __repr__(self) -> str:
        return (
            f"<EmailLog(id={self.id}, to_email='{self.to_email}', "
            f"status='{DeliveryStatus(self.delivery_status).value}')>"
        )
