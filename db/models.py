"""SQLAlchemy ORM models for staking records and refresh runs.

Keep in step with migrations/*.sql.
"""

from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import MetaData, String, UniqueConstraint
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)

    def to_dict(self) -> dict[str, Any]:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


def generate_uuid() -> str:
    return str(uuid4())


class DecimalText(TypeDecorator[Decimal]):
    """Exact decimal stored as text. SQLite has no native decimal type."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        return format(Decimal(str(value)), "f")

    def process_result_value(self, value: Any, dialect: Any) -> Decimal | None:
        return None if value is None else Decimal(value)


class StakingRecords(Base):
    __tablename__ = "staking_records"

    id: Mapped[str] = mapped_column(primary_key=True, default=generate_uuid)
    protocol_key: Mapped[str] = mapped_column(nullable=False)
    token_address: Mapped[str] = mapped_column(nullable=False)
    staking_address: Mapped[str] = mapped_column(nullable=False, index=True)
    token_symbol: Mapped[str] = mapped_column(nullable=False)
    protocol_name: Mapped[str] = mapped_column(nullable=False)
    chain_name: Mapped[str] = mapped_column(nullable=False)
    apy: Mapped[float] = mapped_column(nullable=False, default=0)
    tvl: Mapped[Decimal] = mapped_column(DecimalText, nullable=False, default=Decimal(0))
    is_stablecoin: Mapped[bool] = mapped_column(nullable=False, default=True)
    categories: Mapped[str] = mapped_column(nullable=False, default="[]")
    logo_url: Mapped[str | None] = mapped_column()
    created_at: Mapped[str] = mapped_column(nullable=False)
    updated_at: Mapped[str] = mapped_column(nullable=False)

    __table_args__ = (UniqueConstraint("protocol_key"),)


class RefreshRuns(Base):
    __tablename__ = "refresh_runs"

    run_id: Mapped[str] = mapped_column(primary_key=True)
    started_at: Mapped[str] = mapped_column(nullable=False)
    completed_at: Mapped[str | None] = mapped_column()
    status: Mapped[str] = mapped_column(nullable=False, default="running")
    attempted: Mapped[int] = mapped_column(nullable=False, default=0)
    succeeded: Mapped[int] = mapped_column(nullable=False, default=0)
    skipped: Mapped[int] = mapped_column(nullable=False, default=0)
    failed: Mapped[int] = mapped_column(nullable=False, default=0)
    error_details: Mapped[str | None] = mapped_column()
