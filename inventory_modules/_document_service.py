"""
Shared document lifecycle (``inventory_modules._document_service``).

Responsibility
--------------
Implements the contract every stock document shares -- create, update,
post, cancel, delete, get, list -- on top of the kernel services.  Each
document module subclasses ``DocumentService`` and supplies its header and
line validation and its posting effect; nothing else.

Architecture
------------
Layer: **Modules** -- stateful orchestration wrapper.

1. Validates input against master data (``MasterDataProvider``).
2. Calls ``DocumentNumberingService`` for the document number.
3. Calls ``StockLedgerService`` for every quantity movement and its
   stock level / batch effect.
4. Consults the module's ``Workflow`` for every status change.

Invariants
----------
- Each public method owns its transaction boundary: ``session.commit()``
  on success, ``session.rollback()`` on any failure.  Posting a document
  with N lines is one unit of work; a failure on line N leaves the
  document in draft and no entry, level or batch changed.
- Status changes only along the workflow's transition table.  Posting an
  already posted (or cancelled) document raises
  ``InvalidStateTransitionError``, so ledger entries are written exactly
  once.
- Line fields written during posting (batch links, captured quantities)
  are flushed while the header is still draft; the header status changes
  last.

Failure Modes
-------------
- Typed kernel errors propagate unchanged after rollback.
- ``StaleDataError`` and PostgreSQL serialization/deadlock failures
  become ``ConcurrencyConflictError``.
- Any other ``SQLAlchemyError`` becomes ``PersistenceFailureError``.

Audit Relevance
---------------
Every lifecycle step is logged with the document type, id and number bound
into ``LogContext``.  Cancellation of a posted document writes compensating
entries; originals are never touched.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from inventory_kernel.config import InventoryConfig
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import ReferenceType
from inventory_kernel.domain.master_data import MasterDataProvider
from inventory_kernel.domain.workflow import Transition, Workflow
from inventory_kernel.exceptions import (
    AlreadyCancelledError,
    ConcurrencyConflictError,
    DocumentNotFoundError,
    DuplicateDocumentNumberError,
    InvalidStateTransitionError,
    InventoryKernelError,
    LocationNotFoundError,
    PersistenceFailureError,
    ProductNotFoundError,
    SupplierNotFoundError,
    ValidationFailedError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.batch_service import ProductBatchService
from inventory_kernel.services.numbering_service import DocumentNumberingService
from inventory_kernel.services.stock_ledger_service import StockLedgerService
from inventory_modules._document_selector import DocumentFilter, DocumentSelector, Page

logger = get_logger("modules.documents")

CANCELLED = "cancelled"

# PostgreSQL serialization_failure / deadlock_detected
_RETRYABLE_PGCODES = frozenset({"40001", "40P01"})


class DocumentService:
    """
    Base class for the five document services.

    Contract:
        Subclasses set ``document_type``, ``header_model``, ``line_model``
        and ``workflow`` and implement ``_header_values``, ``_line_values``
        and ``_apply_posting``.  Public methods return frozen document DTOs
        (header plus lines).

    Non-goals:
        - Does NOT check permissions; the actor id is trusted.
        - Does NOT retry; wrap calls in ``call_with_retry`` for that.
    """

    document_type: ClassVar[ReferenceType]
    header_model: ClassVar[type]
    line_model: ClassVar[type]
    workflow: ClassVar[Workflow]
    post_action: ClassVar[str] = "post"
    location_fields: ClassVar[tuple[str, ...]] = ("location_id",)

    def __init__(
        self,
        session: Session,
        master_data: MasterDataProvider,
        config: InventoryConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._master_data = master_data
        self._config = config or InventoryConfig.with_defaults()
        self._clock = clock or SystemClock()

        self._batches = ProductBatchService(session, self._config, self._clock)
        self._ledger = StockLedgerService(
            session, self._config, self._clock, batch_service=self._batches,
        )
        self._numbering = DocumentNumberingService(session, self._config, self._clock)
        self._selector = DocumentSelector(
            session,
            self.header_model,
            self.document_label,
            self.to_dto,
            location_fields=self.location_fields,
        )

    @property
    def document_label(self) -> str:
        return self.document_type.value

    # ------------------------------------------------------------------
    # Public lifecycle
    # ------------------------------------------------------------------

    def create(self, header: Any, lines: Sequence[Any], actor_id: UUID):
        """
        Create a draft document with a freshly allocated number.

        Raises:
            ProductNotFoundError / LocationNotFoundError / SupplierNotFoundError
            ValidationFailedError: no lines, non-positive quantity, negative
                cost, unknown unit.
        """
        with self._unit_of_work("create", actor_id):
            header_values = self._header_values(header)
            line_models = self._build_lines(header, lines, actor_id)

            document_no = self._numbering.generate_number(self.document_type)
            doc = self.header_model(
                document_no=document_no,
                status=self.workflow.initial_state,
                document_date=getattr(header, "document_date", None) or self._clock.today(),
                remarks=getattr(header, "remarks", None),
                created_by_id=actor_id,
                **header_values,
            )
            doc.lines = line_models
            self._after_lines_set(doc)

            try:
                with self._session.begin_nested():
                    self._session.add(doc)
                    self._session.flush()
            except IntegrityError:
                raise DuplicateDocumentNumberError(self.document_label, document_no) from None

            with LogContext.bind(document_id=doc.id, document_no=document_no):
                logger.info(
                    "document_created",
                    extra={"line_count": len(line_models), "status": doc.status},
                )
            return self.to_dto(doc)

    def update(self, document_id: UUID, header: Any, lines: Sequence[Any], actor_id: UUID):
        """
        Replace the header fields and lines of a draft document.

        Raises:
            InvalidStateTransitionError: the document is not draft.
        """
        with self._unit_of_work("update", actor_id, document_id):
            doc = self._lock(document_id)
            self._require_initial(doc, "update")

            header_values = self._header_values(header, doc)
            line_models = self._build_lines(header, lines, actor_id)

            for key, value in header_values.items():
                setattr(doc, key, value)
            if getattr(header, "document_date", None):
                doc.document_date = header.document_date
            doc.remarks = getattr(header, "remarks", None)
            doc.updated_by_id = actor_id

            # Old lines go first so line numbers can be reused
            doc.lines.clear()
            self._session.flush()
            doc.lines.extend(line_models)
            self._after_lines_set(doc)
            self._session.flush()

            logger.info("document_updated", extra={"line_count": len(line_models)})
            return self.to_dto(doc)

    def cancel(self, document_id: UUID, actor_id: UUID, reason: str | None = None):
        """
        Cancel a document.

        A draft is cancelled with no ledger effect.  A posted document gets
        one compensating entry per original entry, then is cancelled.

        Raises:
            AlreadyCancelledError: the document is already cancelled.
            InvalidStateTransitionError: the workflow forbids cancelling from
                the current status (e.g. a completed transfer).
            InsufficientStockError: compensating an inbound movement whose
                stock has since been consumed.
        """
        with self._unit_of_work("cancel", actor_id, document_id):
            doc = self._lock(document_id)
            transition = self._transition(doc, "cancel")

            reversed_count = 0
            if transition.reverses_entries:
                reversals = self._ledger.reverse_reference(
                    self.document_type, doc.id, actor_id, reference_no=doc.document_no,
                )
                reversed_count = len(reversals)

            from_status = doc.status
            doc.status = transition.to_state
            doc.cancelled_at = self._clock.now()
            doc.cancelled_by_id = actor_id
            doc.cancel_reason = reason
            doc.updated_by_id = actor_id
            self._session.flush()

            logger.info(
                "document_cancelled",
                extra={
                    "from_status": from_status,
                    "reversed_entries": reversed_count,
                    "reason": reason,
                },
            )
            return self.to_dto(doc)

    def delete(self, document_id: UUID, actor_id: UUID) -> None:
        """
        Soft-delete a draft document.  Its number is not reused.

        Raises:
            InvalidStateTransitionError: the document is not draft.
        """
        with self._unit_of_work("delete", actor_id, document_id):
            doc = self._lock(document_id)
            self._require_initial(doc, "delete")
            doc.mark_deleted(actor_id, self._clock.now())
            self._session.flush()
            logger.info("document_deleted")

    def get(self, document_id: UUID):
        """Fully hydrated document.  Raises DocumentNotFoundError."""
        return self._selector.get(document_id)

    def get_by_number(self, document_no: str):
        return self._selector.get_by_number(document_no)

    def list(
        self,
        filters: DocumentFilter | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page:
        """Filtered listing, newest first."""
        return self._selector.list(filters, page, page_size)

    def allowed_actions(self, document_id: UUID) -> tuple[str, ...]:
        """Workflow actions available from the document's current status."""
        doc = self._load(document_id)
        return self.workflow.allowed_actions(doc.status)

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def _post(self, document_id: UUID, actor_id: UUID, action: str | None = None):
        """
        Move a draft to its posted state and write its ledger entries.

        Subclasses expose this under their own verb (``post``/``approve``).
        """
        action = action or self.post_action
        with self._unit_of_work(action, actor_id, document_id):
            doc = self._lock(document_id)
            transition = self._transition(doc, action)
            self._before_posting(doc, transition, actor_id)

            entries = self._apply_posting(doc, actor_id) if transition.posts_entry else []

            doc.status = transition.to_state
            doc.posted_at = self._clock.now()
            doc.posted_by_id = actor_id
            doc.updated_by_id = actor_id
            self._session.flush()

            logger.info(
                "document_posted",
                extra={
                    "action": action,
                    "status": doc.status,
                    "entry_count": len(entries),
                },
            )
            return self.to_dto(doc)

    def _before_posting(self, doc, transition: Transition, actor_id: UUID) -> None:
        """Hook for checks that must run before any ledger write."""

    def _apply_posting(self, doc, actor_id: UUID) -> list:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Subclass hooks for input
    # ------------------------------------------------------------------

    def _header_values(self, header: Any, existing=None) -> dict[str, Any]:
        raise NotImplementedError

    def _line_values(self, header: Any, spec: Any, line_no: int) -> dict[str, Any]:
        """Type-specific line columns.  Common columns are built by the base."""
        return {}

    def _line_quantity(self, spec: Any) -> Decimal:
        return spec.quantity

    def _after_lines_set(self, doc) -> None:
        """Hook to recompute header totals once lines are attached."""
        if hasattr(doc, "total_amount"):
            doc.total_amount = sum((line.line_total for line in doc.lines), Decimal("0"))

    def to_dto(self, model):
        return model.to_dto()

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(
        self,
        operation: str,
        actor_id: UUID,
        document_id: UUID | None = None,
    ) -> Iterator[None]:
        with LogContext.bind(
            actor_id=actor_id,
            document_type=self.document_type,
            document_id=document_id,
        ):
            try:
                yield
                self._session.commit()
            except InventoryKernelError as exc:
                self._session.rollback()
                logger.warning(
                    "document_operation_failed",
                    extra={"operation": operation, "error_code": exc.code},
                )
                raise
            except StaleDataError as exc:
                self._session.rollback()
                raise ConcurrencyConflictError(
                    self.document_label, str(document_id), str(exc),
                ) from exc
            except SQLAlchemyError as exc:
                self._session.rollback()
                pgcode = getattr(getattr(exc, "orig", None), "pgcode", None)
                if pgcode in _RETRYABLE_PGCODES:
                    raise ConcurrencyConflictError(
                        self.document_label, str(document_id), str(exc.orig),
                    ) from exc
                logger.error(
                    "document_persistence_failure",
                    extra={"operation": operation, "error": str(exc)},
                )
                raise PersistenceFailureError(operation, str(exc)) from exc
            except Exception:
                self._session.rollback()
                raise

    def _load(self, document_id: UUID):
        doc = self._session.execute(
            select(self.header_model).where(
                self.header_model.id == document_id,
                self.header_model.live(),
            )
        ).scalar_one_or_none()
        if doc is None:
            raise DocumentNotFoundError(self.document_label, str(document_id))
        return doc

    def _lock(self, document_id: UUID):
        """Header row locked for the rest of the transaction."""
        doc = self._session.execute(
            select(self.header_model)
            .where(
                self.header_model.id == document_id,
                self.header_model.live(),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if doc is None:
            raise DocumentNotFoundError(self.document_label, str(document_id))
        return doc

    def _transition(self, doc, action: str) -> Transition:
        transition = self.workflow.find_transition(doc.status, action)
        if transition is None:
            if action == "cancel" and doc.status == CANCELLED:
                raise AlreadyCancelledError(self.document_label, str(doc.id))
            raise InvalidStateTransitionError(
                document_type=self.document_label,
                document_id=str(doc.id),
                current_status=doc.status,
                action=action,
            )
        return transition

    def _require_initial(self, doc, action: str) -> None:
        if doc.status != self.workflow.initial_state:
            raise InvalidStateTransitionError(
                document_type=self.document_label,
                document_id=str(doc.id),
                current_status=doc.status,
                action=action,
            )

    def _require_product(self, product_id: UUID) -> None:
        if not self._master_data.product_exists(product_id):
            raise ProductNotFoundError(str(product_id))

    def _require_location(self, location_id: UUID | None) -> UUID:
        if location_id is None:
            raise ValidationFailedError("location_id is required")
        if not self._master_data.location_exists(location_id):
            raise LocationNotFoundError(str(location_id))
        return location_id

    def _require_supplier(self, supplier_id: UUID | None) -> UUID:
        if supplier_id is None:
            raise ValidationFailedError("supplier_id is required")
        if not self._master_data.supplier_exists(supplier_id):
            raise SupplierNotFoundError(str(supplier_id))
        return supplier_id

    def _build_lines(self, header: Any, specs: Sequence[Any], actor_id: UUID) -> list:
        if not specs:
            raise ValidationFailedError("At least one line item is required")

        errors = []
        models = []
        for line_no, spec in enumerate(specs, start=1):
            self._require_product(spec.product_id)

            quantity = self._line_quantity(spec)
            unit_cost = spec.unit_cost if spec.unit_cost is not None else Decimal("0")
            if quantity <= 0:
                errors.append(f"line {line_no}: quantity must be positive, got {quantity}")
            if unit_cost < 0:
                errors.append(f"line {line_no}: unit_cost cannot be negative, got {unit_cost}")
            try:
                factor = self._master_data.conversion_factor(spec.product_id, spec.unit)
            except ValueError as exc:
                errors.append(f"line {line_no}: {exc}")
                continue
            if factor <= 0:
                errors.append(f"line {line_no}: conversion factor must be positive")
                continue

            models.append(
                self.line_model(
                    line_no=line_no,
                    product_id=spec.product_id,
                    quantity=quantity,
                    unit=spec.unit,
                    conversion_factor=factor,
                    base_quantity=quantity * factor,
                    unit_cost=unit_cost,
                    line_total=quantity * unit_cost,
                    batch_id=getattr(spec, "batch_id", None),
                    batch_no=(getattr(spec, "batch_no", None) or None),
                    remarks=getattr(spec, "remarks", None),
                    created_by_id=actor_id,
                    **self._line_values(header, spec, line_no),
                )
            )

        if errors:
            raise ValidationFailedError(
                f"{self.document_label} has invalid lines: {errors[0]}", errors,
            )
        return models

    @staticmethod
    def _inbound_cost(line) -> Decimal | None:
        """Per-base-unit cost for an inbound line; None keeps the average."""
        return line.base_unit_cost if line.unit_cost > 0 else None
