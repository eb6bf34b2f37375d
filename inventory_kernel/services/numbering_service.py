"""
DocumentNumberingService -- collision-free document numbers via locked counter rows.

Responsibility:
    Generates human-readable document numbers (``GRN-2024-0001``) per
    document type, optionally scoped by year.  Uses a dedicated counter
    table with row-level locking (``SELECT ... FOR UPDATE``) so concurrent
    ``create`` calls for the same document type never receive the same
    number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by every document service in ``inventory_modules`` when a
    document is created.

Invariants enforced:
    - The counter row is the sole source of truth for the next value.
      Reading the maximum existing document number and adding one is
      FORBIDDEN: two readers would compute the same number.
    - Counters never decrease, so a number is never reused, even after the
      document holding it is cancelled or deleted.
    - Header tables carry a UNIQUE constraint on document_no as a second
      guard; a violation surfaces as DuplicateDocumentNumberError.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
    - ValueError: no number format configured for the document type.

Audit relevance:
    Allocation is logged at DEBUG level with counter name and value.  A
    rolled-back create returns its value to the counter; a committed one
    consumes it forever.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base
from inventory_kernel.domain.dtos import ReferenceType
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService

logger = get_logger("services.numbering")


class DocumentCounter(Base):
    """
    Document counter table.

    Each row is a named counter (``goods_received:2024``) with its last
    issued value.  Row-level locking serializes allocation.
    """

    __tablename__ = "document_counters"

    name: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class DocumentNumberingService(BaseService[DocumentCounter]):
    """
    Service for generating document numbers.

    Contract:
        ``generate_number(document_type)`` returns the next number for the
        type.  The increment is transactional -- it is only committed when
        the caller's transaction commits.

    Guarantees:
        - Uniqueness under concurrency via the locked counter row.
        - Monotonic per counter: later numbers have larger suffixes.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT promise gap-free numbering: a caller that commits a
          counter increment without its document leaves a gap.
    """

    def counter_name(self, document_type: ReferenceType | str) -> str:
        """Counter row name for ``document_type`` at the current clock time."""
        value = getattr(document_type, "value", document_type)
        fmt = self.config.number_format(value)
        if fmt.scope_by_year:
            return f"{value}:{self.clock.now().year}"
        return value

    def generate_number(self, document_type: ReferenceType | str) -> str:
        """
        Allocate and render the next document number for ``document_type``.

        Preconditions:
            - The caller is within an active database transaction.
        Postconditions:
            - Returns a number not returned before for this type (and year).
            - The counter row is locked until the transaction completes.
        """
        value = getattr(document_type, "value", document_type)
        fmt = self.config.number_format(value)
        name = self.counter_name(value)
        sequence = self._next_value(name)
        year = self.clock.now().year if fmt.scope_by_year else None
        number = fmt.render(sequence, year)
        logger.debug(
            "document_number_generated",
            extra={"document_type": value, "counter": name, "document_no": number},
        )
        return number

    def peek_next(self, document_type: ReferenceType | str) -> str:
        """Render the number the next ``generate_number`` would return.

        Informational only; another transaction may take it first.
        """
        value = getattr(document_type, "value", document_type)
        fmt = self.config.number_format(value)
        current = self.current_value(self.counter_name(value)) or 0
        year = self.clock.now().year if fmt.scope_by_year else None
        return fmt.render(current + 1, year)

    def current_value(self, counter_name: str) -> int | None:
        """Last issued value of a counter, or None if never used."""
        return self.session.execute(
            select(DocumentCounter.current_value)
            .where(DocumentCounter.name == counter_name)
        ).scalar_one_or_none()

    def _lock_counter(self, counter_name: str) -> DocumentCounter | None:
        return self.session.execute(
            select(DocumentCounter)
            .where(DocumentCounter.name == counter_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _next_value(self, counter_name: str) -> int:
        # Locked counter row; never max(document_no) + 1
        counter = self._lock_counter(counter_name)

        if counter is None:
            # First use of this counter.  Another transaction may create it
            # at the same time; the savepoint keeps the caller's work intact.
            savepoint = self.session.begin_nested()
            try:
                counter = DocumentCounter(name=counter_name, current_value=1)
                self.session.add(counter)
                self.session.flush()
                savepoint.commit()
                logger.debug(
                    "document_counter_created",
                    extra={"counter": counter_name},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "document_counter_race_retry",
                    extra={"counter": counter_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(counter_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self.session.flush()
        return counter.current_value
