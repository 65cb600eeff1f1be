"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    select,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class LeadType(str, Enum):
    QUERY = "query"
    BOOKING = "booking"


# Optional free-text lead fields, keyed by their wire name.
LEAD_TEXT_FIELDS = {
    "fullName": "full_name",
    "email": "email",
    "message": "message",
    "reason": "reason",
    "date": "date",
    "time": "time",
    "day": "day",
}


class StoreError(Exception):
    """Raised when the store rejects a write."""


_DATETIME = TypeAdapter(datetime)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _text_value(name: str, value: Any) -> Optional[str]:
    """Cast a scalar to text the way it reads in JSON; reject nested values."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return json.dumps(value)
    raise StoreError(
        f"Lead validation failed: {name}: Cast to string failed for value "
        f"{json.dumps(value, default=str)}"
    )


def _created_at(value: Any) -> datetime:
    if value is None:
        return _utcnow()
    try:
        created_at = _DATETIME.validate_python(value)
    except ValidationError as exc:
        raise StoreError(
            "Lead validation failed: createdAt: "
            f"Cast to date failed for value {value!r}"
        ) from exc
    return _as_utc(created_at)


def _lead_values(payload: dict) -> dict:
    """Map a submitted lead onto the known columns, dropping unknown keys."""
    values: dict[str, Any] = {"type": payload.get("type")}
    for wire_name, column in LEAD_TEXT_FIELDS.items():
        values[column] = _text_value(wire_name, payload.get(wire_name))
    values["created_at"] = _created_at(payload.get("createdAt"))
    return values


class DbClient(Protocol):
    """Interface for database access."""

    def list_leads(self) -> list["LeadRecord"]:
        ...

    def create_lead(self, payload: dict) -> "LeadRecord":
        ...

    def delete_expired_leads(self, max_age_seconds: float) -> int:
        ...

    def get_content(self, content_id: str) -> Optional["PageContentRecord"]:
        ...

    def list_content(self) -> list["PageContentRecord"]:
        ...

    def upsert_content(self, content_id: str, data: Any) -> "PageContentRecord":
        ...

    def delete_content(self, content_id: str) -> bool:
        ...


@dataclass
class LeadRecord:
    lead_id: str
    type: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    day: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.lead_id,
            "type": self.type,
            "fullName": self.full_name,
            "email": self.email,
            "message": self.message,
            "reason": self.reason,
            "date": self.date,
            "time": self.time,
            "day": self.day,
            "createdAt": self.created_at,
        }


@dataclass
class PageContentRecord:
    content_id: str
    data: Any
    version: int = 1
    last_modified: datetime = field(default_factory=_utcnow)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.content_id,
            "data": self.data,
            "version": self.version,
            "lastModified": self.last_modified,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.leads: Dict[str, LeadRecord] = {}
        self.content: Dict[str, PageContentRecord] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.leads.clear()
            self.content.clear()

    def list_leads(self) -> list[LeadRecord]:
        with self._lock:
            leads = list(self.leads.values())
        # Stable sort keeps insertion order reversed for equal timestamps.
        return sorted(reversed(leads), key=lambda lead: lead.created_at, reverse=True)

    def create_lead(self, payload: dict) -> LeadRecord:
        values = _lead_values(payload)
        lead_type = values.pop("type")
        if lead_type is None:
            raise StoreError("Lead validation failed: type: Path `type` is required.")
        allowed = {t.value for t in LeadType}
        if not isinstance(lead_type, str) or lead_type not in allowed:
            raise StoreError(
                f"Lead validation failed: type: `{lead_type}` is not a valid enum value"
            )
        record = LeadRecord(lead_id=uuid.uuid4().hex, type=lead_type, **values)
        with self._lock:
            self.leads[record.lead_id] = record
        return record

    def delete_expired_leads(self, max_age_seconds: float) -> int:
        cutoff = _utcnow() - timedelta(seconds=max_age_seconds)
        with self._lock:
            expired = [
                lead_id
                for lead_id, lead in self.leads.items()
                if lead.created_at < cutoff
            ]
            for lead_id in expired:
                del self.leads[lead_id]
        return len(expired)

    def get_content(self, content_id: str) -> Optional[PageContentRecord]:
        return self.content.get(content_id)

    def list_content(self) -> list[PageContentRecord]:
        with self._lock:
            return list(self.content.values())

    def upsert_content(self, content_id: str, data: Any) -> PageContentRecord:
        now = _utcnow()
        with self._lock:
            existing = self.content.get(content_id)
            if existing is None:
                record = PageContentRecord(
                    content_id=content_id,
                    data=data,
                    last_modified=now,
                    created_at=now,
                    updated_at=now,
                )
            else:
                record = PageContentRecord(
                    content_id=content_id,
                    data=data,
                    version=existing.version + 1,
                    last_modified=now,
                    created_at=existing.created_at,
                    updated_at=now,
                )
            self.content[content_id] = record
            return record

    def delete_content(self, content_id: str) -> bool:
        with self._lock:
            return self.content.pop(content_id, None) is not None


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL for Postgres
    or SQLite (tests); both dialects provide native ON CONFLICT upserts.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if self.engine.dialect.name == "postgresql":
            self._insert = postgresql.insert
        elif self.engine.dialect.name == "sqlite":
            self._insert = sqlite.insert
        else:
            raise ValueError(
                f"Unsupported database dialect: {self.engine.dialect.name}"
            )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_lead_record(self, row: "LeadRow") -> LeadRecord:
        return LeadRecord(
            lead_id=row.id,
            type=row.type,
            full_name=row.full_name,
            email=row.email,
            message=row.message,
            reason=row.reason,
            date=row.date,
            time=row.time,
            day=row.day,
            created_at=_as_utc(row.created_at),
        )

    def _to_content_record(self, row: "PageContentRow") -> PageContentRecord:
        return PageContentRecord(
            content_id=row.id,
            data=row.data,
            version=row.version,
            last_modified=_as_utc(row.last_modified),
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def list_leads(self) -> list[LeadRecord]:
        with self.Session() as session:
            rows = session.scalars(
                select(LeadRow).order_by(LeadRow.created_at.desc())
            ).all()
            return [self._to_lead_record(row) for row in rows]

    def create_lead(self, payload: dict) -> LeadRecord:
        with self.Session() as session:
            row = LeadRow(
                id=uuid.uuid4().hex,
                **_lead_values(payload),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_lead_record(row)

    def delete_expired_leads(self, max_age_seconds: float) -> int:
        cutoff = _utcnow() - timedelta(seconds=max_age_seconds)
        with self.Session() as session:
            result = session.execute(
                delete(LeadRow).where(LeadRow.created_at < cutoff)
            )
            session.commit()
            return result.rowcount or 0

    def get_content(self, content_id: str) -> Optional[PageContentRecord]:
        with self.Session() as session:
            row = session.get(PageContentRow, content_id)
            if not row:
                return None
            return self._to_content_record(row)

    def list_content(self) -> list[PageContentRecord]:
        with self.Session() as session:
            rows = session.scalars(
                select(PageContentRow).order_by(PageContentRow.created_at.asc())
            ).all()
            return [self._to_content_record(row) for row in rows]

    def upsert_content(self, content_id: str, data: Any) -> PageContentRecord:
        now = _utcnow()
        stmt = self._insert(PageContentRow).values(
            id=content_id,
            data=data,
            version=1,
            last_modified=now,
            created_at=now,
            updated_at=now,
        )
        # One statement; concurrent writers serialize on the primary key.
        stmt = stmt.on_conflict_do_update(
            index_elements=[PageContentRow.id],
            set_={
                "data": stmt.excluded.data,
                "last_modified": stmt.excluded.last_modified,
                "updated_at": stmt.excluded.updated_at,
                "version": PageContentRow.version + 1,
            },
        ).returning(PageContentRow)
        with self.Session() as session:
            row = session.scalars(
                stmt, execution_options={"populate_existing": True}
            ).one()
            record = self._to_content_record(row)
            session.commit()
            return record

    def delete_content(self, content_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(PageContentRow).where(PageContentRow.id == content_id)
            )
            session.commit()
            return bool(result.rowcount)


Base = declarative_base()


class LeadRow(Base):
    __tablename__ = "leads"
    __table_args__ = (
        CheckConstraint("type IN ('query', 'booking')", name="ck_leads_type"),
    )

    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    reason = Column(Text, nullable=True)
    date = Column(String, nullable=True)
    time = Column(String, nullable=True)
    day = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class PageContentRow(Base):
    __tablename__ = "page_content"

    id = Column(String, primary_key=True)
    data = Column(JSON, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    last_modified = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
