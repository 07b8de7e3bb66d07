from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from quickdu.db.models import DirectoryUsageRow, JobUsageRow, UsageRun
from quickdu.usage.types import EPOCH, DirectoryUsage, JobUsage, UsageSnapshot

_RUN_ROW_ID = 1


class UsageRepository:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def _coerce_utc(self, value: datetime | None) -> datetime:
        if value is None:
            return EPOCH
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def load(self) -> UsageSnapshot:
        with self._session_factory() as session:
            run = session.get(UsageRun, _RUN_ROW_ID)
            directory_rows = session.scalars(
                select(DirectoryUsageRow).order_by(DirectoryUsageRow.position.asc(), DirectoryUsageRow.path.asc())
            ).all()
            job_rows = session.scalars(
                select(JobUsageRow).order_by(JobUsageRow.position.asc(), JobUsageRow.id.asc())
            ).all()

            return UsageSnapshot(
                directories=tuple(
                    DirectoryUsage(display_name=row.display_name, path=Path(row.path), size_kb=row.size_kb)
                    for row in directory_rows
                ),
                jobs=tuple(
                    JobUsage(
                        display_name=row.display_name,
                        path=Path(row.path),
                        size_kb=row.size_kb,
                        full_name=row.full_name,
                    )
                    for row in job_rows
                ),
                last_run_start=self._coerce_utc(run.last_run_start if run is not None else None),
                last_run_end=self._coerce_utc(run.last_run_end if run is not None else None),
            )

    def save(self, snapshot: UsageSnapshot) -> None:
        with self._session_factory() as session:
            session.execute(delete(DirectoryUsageRow))
            session.execute(delete(JobUsageRow))
            session.add_all(
                DirectoryUsageRow(
                    path=item.path.as_posix(),
                    display_name=item.display_name,
                    size_kb=item.size_kb,
                    position=position,
                )
                for position, item in enumerate(snapshot.directories)
            )
            session.add_all(
                JobUsageRow(
                    full_name=item.full_name,
                    path=item.path.as_posix(),
                    display_name=item.display_name,
                    size_kb=item.size_kb,
                    position=position,
                )
                for position, item in enumerate(snapshot.jobs)
            )

            run = session.get(UsageRun, _RUN_ROW_ID)
            if run is None:
                run = UsageRun(
                    id=_RUN_ROW_ID,
                    last_run_start=snapshot.last_run_start,
                    last_run_end=snapshot.last_run_end,
                )
                session.add(run)
            else:
                run.last_run_start = snapshot.last_run_start
                run.last_run_end = snapshot.last_run_end
            session.commit()
