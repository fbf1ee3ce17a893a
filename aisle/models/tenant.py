"""
Tenant profile row. One per couple; the id is the tenant id issued upstream.
"""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base
from .base import TimestampMixin


class Tenant(TimestampMixin, Base):
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str] = mapped_column(String, nullable=True)   # "Emma & James"
    wedding_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    # One-way: set when onboarding reaches its final step, never cleared
    onboarding_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
