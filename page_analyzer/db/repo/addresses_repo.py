from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from page_analyzer.db.models.urls import AddressRow, CheckRow
from page_analyzer.db.session import session_scope, store_errors
from page_analyzer.db.types import fits_sql_integer
from page_analyzer.errors import DuplicateAddressError
from page_analyzer.models import Address


logger = logging.getLogger(__name__)


class AddressesRepo:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._Session = session_factory

    @staticmethod
    def _to_model(row: AddressRow) -> Address:
        return Address(id=int(row.id), name=str(row.name), created_at=row.created_at)

    def save(self, name: str, *, created_at: dt.datetime) -> Address:
        """Insert a new address.

        The unique constraint on ``addresses.name`` is the last line of defence
        against two registrations racing past the existence check; the loser
        gets ``DuplicateAddressError``.
        """
        with store_errors("addresses.save", logger):
            try:
                with session_scope(self._Session) as s:
                    row = AddressRow(name=name, created_at=created_at)
                    s.add(row)
                    s.flush()
                    address = self._to_model(row)
            except IntegrityError as e:
                logger.info("address already registered: %s", name)
                raise DuplicateAddressError(name) from e
        return address

    def find(self, address_id: int) -> Address | None:
        if not fits_sql_integer(address_id):
            return None
        with store_errors("addresses.find", logger), self._Session() as s:
            row = s.get(AddressRow, address_id)
            return self._to_model(row) if row is not None else None

    def find_by_name(self, name: str) -> Address | None:
        key = str(name or "").strip().lower()
        with store_errors("addresses.find_by_name", logger), self._Session() as s:
            q = select(AddressRow).where(func.lower(AddressRow.name) == key).limit(1)
            row = s.execute(q).scalars().first()
            return self._to_model(row) if row is not None else None

    def all(self, term: str | None = None) -> list[Address]:
        q = select(AddressRow).order_by(AddressRow.created_at.asc(), AddressRow.id.asc())
        needle = str(term or "").strip().lower()
        if needle:
            q = q.where(func.lower(AddressRow.name).contains(needle, autoescape=True))
        with store_errors("addresses.all", logger), self._Session() as s:
            rows = list(s.execute(q).scalars().all())
        return [self._to_model(r) for r in rows]

    def count(self) -> int:
        with store_errors("addresses.count", logger), self._Session() as s:
            return int(s.execute(select(func.count(AddressRow.id))).scalar_one())

    def delete_all(self) -> int:
        with store_errors("addresses.delete_all", logger), session_scope(self._Session) as s:
            s.execute(delete(CheckRow))
            result = s.execute(delete(AddressRow))
            return int(result.rowcount or 0)
