from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from page_analyzer.errors import ErrorCode


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class Address:
    id: int
    name: str
    created_at: dt.datetime


@dataclass(frozen=True)
class PageSignals:
    # None: element absent. "": element present but empty.
    title: Optional[str] = None
    h1: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class Check:
    address_id: int
    status_code: int
    created_at: dt.datetime
    title: Optional[str] = None
    h1: Optional[str] = None
    description: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class AddressListing:
    address: Address
    latest_check: Optional[Check]


@dataclass(frozen=True)
class AddressDetail:
    address: Address
    checks: list[Check] = field(default_factory=list)


class RegisterStatus(str, Enum):
    CREATED = "created"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"


class CheckStatus(str, Enum):
    RECORDED = "recorded"
    ADDRESS_NOT_FOUND = "address_not_found"
    CHECK_FAILED = "check_failed"


@dataclass(frozen=True)
class RegisterOutcome:
    status: RegisterStatus
    address: Optional[Address] = None
    reason: Optional[str] = None
    error: Optional[ErrorCode] = None

    @property
    def ok(self) -> bool:
        return self.status is RegisterStatus.CREATED


@dataclass(frozen=True)
class CheckOutcome:
    status: CheckStatus
    address_id: int
    check: Optional[Check] = None
    error: Optional[ErrorCode] = None
    error_type: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is CheckStatus.RECORDED


def address_to_dict(address: Address) -> dict[str, Any]:
    return {
        "id": address.id,
        "name": address.name,
        "created_at": address.created_at.isoformat(),
    }


def check_to_dict(check: Check) -> dict[str, Any]:
    return {
        "id": check.id,
        "address_id": check.address_id,
        "status_code": check.status_code,
        "title": check.title,
        "h1": check.h1,
        "description": check.description,
        "created_at": check.created_at.isoformat(),
    }
