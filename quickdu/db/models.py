from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UsageRun(Base):
    __tablename__ = "usage_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_run_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_run_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class DirectoryUsageRow(Base):
    __tablename__ = "directory_usages"

    path: Mapped[str] = mapped_column(String(4096), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(4096), nullable=False)
    size_kb: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (Index("ix_directory_usages_position", "position"),)


class JobUsageRow(Base):
    __tablename__ = "job_usages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(1024), nullable=False)
    path: Mapped[str] = mapped_column(String(4096), nullable=False)
    display_name: Mapped[str] = mapped_column(String(1024), nullable=False)
    size_kb: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("path", "full_name", name="uq_job_usages_path_full_name"),
        Index("ix_job_usages_position", "position"),
    )


class SchemaMigration(Base):
    __tablename__ = "schema_migrations"

    version: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
