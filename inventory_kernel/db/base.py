"""
Module: inventory_kernel.db.base
Responsibility: Declarative base, column type conventions and the shared
    audit / tombstone mixins for every table the engine owns: stock ledger
    entries, stock levels, product batches, document counters and the five
    document header/line tables.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    MUST NOT import from models/, services/, selectors/, domain/ or
    inventory_modules.

Invariants enforced:
    - Quantities, conversion factors and costs map to Numeric(38, 9), never
      float columns.
    - Primary keys are uuid4 values stored as 36-character strings so the
      same schema runs on SQLite and PostgreSQL.
    - Constraint names follow one naming convention, so the unique
      constraints that guard batch numbers, document numbers and ledger
      sequence numbers have stable names across backends.
    - Every row records the actor that created it.

Audit relevance:
    ``created_by_id`` is the "current actor" stamp.  Ledger entries carry no
    tombstone columns; only document headers mix in ``SoftDeleteMixin``.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, MetaData, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """UUID stored as String(36); loads back as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return str(value) if value is not None else None

    def process_result_value(self, value, dialect):
        return PyUUID(value) if value is not None else None


class Base(DeclarativeBase):
    """
    Declarative base for all engine tables.

    Guarantees:
        - ``id`` is a uuid4 primary key.
        - ``Decimal`` annotations become Numeric(38, 9); ``int`` becomes
          BigInteger, wide enough for ledger sequence numbers and counters.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Base for rows that record their creator and last modifier.

    ``updated_at``/``updated_by_id`` are bookkeeping: the immutability
    listeners ignore them when deciding whether a posted line changed.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False,
    )
    created_by_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)


class SoftDeleteMixin:
    """
    Tombstone for draft documents.

    A deleted header keeps its row (and its document number) but is
    invisible to every read path.  Filter live rows with ``live()``.
    """

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)

    @classmethod
    def live(cls):
        """SQL criterion matching rows that are not deleted."""
        return cls.deleted_at.is_(None)

    def mark_deleted(self, actor_id: PyUUID, at: datetime) -> None:
        self.deleted_at = at
        self.deleted_by_id = actor_id
        self.updated_by_id = actor_id


UUID = PyUUID
