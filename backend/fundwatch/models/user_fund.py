"""Per-user fund state: favorites, monitors and monitor rules."""

from datetime import datetime

from sqlalchemy import Float, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fundwatch.models.database import Base


def _now() -> str:
    return datetime.now().isoformat()


class FavoriteFund(Base):
    __tablename__ = "user_favorite_fund"
    __table_args__ = (UniqueConstraint("user_id", "fund_code", name="uq_favorite_user_fund"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    fund_code: Mapped[str] = mapped_column(String(10))
    created_at: Mapped[str] = mapped_column(String(30), default=_now)


class MonitorFund(Base):
    __tablename__ = "user_monitor_fund"
    __table_args__ = (UniqueConstraint("user_id", "fund_code", name="uq_monitor_user_fund"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    fund_code: Mapped[str] = mapped_column(String(10))
    created_at: Mapped[str] = mapped_column(String(30), default=_now)


class MonitorRule(Base):
    __tablename__ = "fund_monitor_rules"
    __table_args__ = (UniqueConstraint("user_id", "fund_code", name="uq_rule_user_fund"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    fund_code: Mapped[str] = mapped_column(String(10))
    rule_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rise_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)  # percent
    net_worth_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    push_time: Mapped[str | None] = mapped_column(String(8), nullable=True)  # "HH:MM"
    webhook_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[str] = mapped_column(String(30), default=_now)
    updated_at: Mapped[str] = mapped_column(String(30), default=_now, onupdate=_now)
