"""
SQLAlchemy model for the admin-facing system activity log.
"""

import enum
from typing import Optional

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from .order import _enum_values


class LogStatus(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class SystemLog(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "system_logs"

    user_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[LogStatus] = mapped_column(
        Enum(LogStatus, name="log_status", values_callable=_enum_values),
        nullable=False,
        default=LogStatus.SUCCESS,
        index=True,
    )
