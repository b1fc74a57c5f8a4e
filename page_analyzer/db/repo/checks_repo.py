from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from page_analyzer.db.models.urls import CheckRow
from page_analyzer.db.session import session_scope, store_errors
from page_analyzer.db.types import fits_sql_integer
from page_analyzer.errors import StoreError
from page_analyzer.models import Check


logger = logging.getLogger(__name__)

# Most recent first; the later insert wins a created_at tie.
_RECENT_FIRST = (CheckRow.created_at.desc(), CheckRow.id.desc())


class ChecksRepo:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._Session = session_factory

    @staticmethod
    def _to_model(row: CheckRow) -> Check:
        return Check(
            id=int(row.id),
            address_id=int(row.address_id),
            status_code=int(row.status_code),
            title=row.title,
            h1=row.h1,
            description=row.description,
            created_at=row.created_at,
        )

    def save(self, check: Check) -> Check:
        if not fits_sql_integer(check.address_id):
            raise StoreError(f"checks.save: address_id out of range: {check.address_id}")
        with store_errors("checks.save", logger), session_scope(self._Session) as s:
            row = CheckRow(
                address_id=check.address_id,
                status_code=int(check.status_code),
                title=check.title,
                h1=check.h1,
                description=check.description,
                created_at=check.created_at,
            )
            s.add(row)
            s.flush()
            return self._to_model(row)

    def find_by_address(self, address_id: int) -> list[Check]:
        if not fits_sql_integer(address_id):
            return []
        q = select(CheckRow).where(CheckRow.address_id == address_id).order_by(*_RECENT_FIRST)
        with store_errors("checks.find_by_address", logger), self._Session() as s:
            rows = list(s.execute(q).scalars().all())
        return [self._to_model(r) for r in rows]

    def latest_for(self, address_id: int) -> Check | None:
        if not fits_sql_integer(address_id):
            return None
        q = select(CheckRow).where(CheckRow.address_id == address_id).order_by(*_RECENT_FIRST).limit(1)
        with store_errors("checks.latest_for", logger), self._Session() as s:
            row = s.execute(q).scalars().first()
            return self._to_model(row) if row is not None else None

    def latest_for_many(self, address_ids: Iterable[int]) -> dict[int, Check]:
        ids = sorted({int(x) for x in address_ids if fits_sql_integer(int(x))})
        if not ids:
            return {}
        rn = func.row_number().over(partition_by=CheckRow.address_id, order_by=_RECENT_FIRST).label("rn")
        ranked = select(CheckRow.id.label("check_id"), rn).where(CheckRow.address_id.in_(ids)).subquery()
        q = select(CheckRow).join(ranked, CheckRow.id == ranked.c.check_id).where(ranked.c.rn == 1)
        with store_errors("checks.latest_for_many", logger), self._Session() as s:
            rows = list(s.execute(q).scalars().all())
        return {int(r.address_id): self._to_model(r) for r in rows}

    def count(self, address_id: int | None = None) -> int:
        q = select(func.count(CheckRow.id))
        if address_id is not None:
            if not fits_sql_integer(address_id):
                return 0
            q = q.where(CheckRow.address_id == address_id)
        with store_errors("checks.count", logger), self._Session() as s:
            return int(s.execute(q).scalar_one())
