"""
Document read path shared by every document module.

Responsibility:
    Loads fully hydrated documents (header plus lines) by id or number and
    pages through filtered listings.  Soft-deleted documents are invisible
    here: they behave as not found.

Architecture position:
    Modules -- read side.  Used by ``DocumentService.get/get_by_number/list``.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import DocumentNotFoundError, ValidationFailedError
from inventory_kernel.selectors.base import BaseSelector

T = TypeVar("T")

MAX_PAGE_SIZE = 200


@dataclass(frozen=True)
class DocumentFilter:
    """Listing filters.  Every field is optional; unset fields do not filter."""

    status: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    location_id: UUID | None = None
    supplier_id: UUID | None = None
    search: str | None = None


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing, newest documents first."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


class DocumentSelector(BaseSelector):
    """
    Queries over one header table.

    Contract:
        ``location_fields`` names the header columns matched by the
        location filter (a transfer matches on either end).  The supplier
        filter applies only to headers with a ``supplier_id`` column.
    """

    def __init__(
        self,
        session: Session,
        header_model: type,
        document_label: str,
        to_dto: Callable,
        location_fields: tuple[str, ...] = ("location_id",),
    ):
        super().__init__(session)
        self.header_model = header_model
        self.document_label = document_label
        self.to_dto = to_dto
        self.location_fields = location_fields

    def _visible(self):
        return select(self.header_model).where(self.header_model.live())

    def get(self, document_id: UUID):
        model = self.session.execute(
            self._visible().where(self.header_model.id == document_id)
        ).scalar_one_or_none()
        if model is None:
            raise DocumentNotFoundError(self.document_label, str(document_id))
        return self.to_dto(model)

    def get_by_number(self, document_no: str):
        model = self.session.execute(
            self._visible().where(self.header_model.document_no == document_no)
        ).scalar_one_or_none()
        if model is None:
            raise DocumentNotFoundError(self.document_label, document_no)
        return self.to_dto(model)

    def exists(self, document_id: UUID) -> bool:
        return self.session.execute(
            select(self.header_model.id).where(
                self.header_model.id == document_id,
                self.header_model.live(),
            )
        ).scalar_one_or_none() is not None

    def list(
        self,
        filters: DocumentFilter | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page:
        if page < 1:
            raise ValidationFailedError(f"page must be >= 1, got {page}")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationFailedError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}"
            )

        filters = filters or DocumentFilter()
        header = self.header_model
        conditions = [header.live()]

        if filters.status:
            conditions.append(header.status == getattr(filters.status, "value", filters.status))
        if filters.date_from:
            conditions.append(header.document_date >= filters.date_from)
        if filters.date_to:
            conditions.append(header.document_date <= filters.date_to)
        if filters.location_id:
            conditions.append(
                or_(*(getattr(header, name) == filters.location_id for name in self.location_fields))
            )
        if filters.supplier_id:
            if not hasattr(header, "supplier_id"):
                raise ValidationFailedError(
                    f"{self.document_label} documents have no supplier"
                )
            conditions.append(header.supplier_id == filters.supplier_id)
        if filters.search and filters.search.strip():
            pattern = f"%{filters.search.strip()}%"
            conditions.append(
                or_(header.document_no.ilike(pattern), header.remarks.ilike(pattern))
            )

        total = self.session.execute(
            select(func.count()).select_from(header).where(*conditions)
        ).scalar_one()
        rows = self.session.execute(
            select(header)
            .where(*conditions)
            .order_by(header.document_date.desc(), header.created_at.desc(), header.document_no.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        ).scalars()
        return Page(
            items=[self.to_dto(row) for row in rows],
            total=total,
            page=page,
            page_size=page_size,
        )
