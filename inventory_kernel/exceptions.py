"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Stock movement errors must be handled precisely. Callers (UI actions,
background jobs, API handlers) decide between "show a message", "retry" and
"alert someone" based on the kind of failure, never on message text.

Every exception here:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example - WRONG way to handle errors:
    try:
        grn_service.post(grn_id, actor_id)
    except Exception as e:
        if "insufficient" in str(e):  # FRAGILE - message might change
            show_shortage()

Example - RIGHT way (what this module enables):
    try:
        grn_service.post(grn_id, actor_id)
    except InsufficientStockError as e:
        api_response(code=e.code, product=e.product_id, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryKernelError:

    InventoryKernelError (base)
    |
    +-- NotFoundError
    |   +-- DocumentNotFoundError
    |   +-- DocumentLineNotFoundError
    |   +-- ProductNotFoundError
    |   +-- LocationNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- BatchNotFoundError
    |
    +-- WorkflowError
    |   +-- InvalidStateTransitionError
    |   +-- AlreadyCancelledError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |   +-- InsufficientBatchQuantityError
    |
    +-- DuplicateError
    |   +-- DuplicateBatchError
    |   +-- DuplicateDocumentNumberError
    |
    +-- ValidationFailedError
    |   +-- SelfApprovalError
    |
    +-- ConcurrencyError
    |   +-- ConcurrencyConflictError
    |
    +-- PersistenceFailureError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-----------------------------------------
Not found       | DOCUMENT_NOT_FOUND            | Document id unresolved (or soft-deleted)
                | DOCUMENT_LINE_NOT_FOUND       | Line id not part of the document
                | PRODUCT_NOT_FOUND             | Master data has no such product
                | LOCATION_NOT_FOUND            | Master data has no such location
                | SUPPLIER_NOT_FOUND            | Master data has no such supplier
                | BATCH_NOT_FOUND               | Batch id/number unresolved
----------------|-------------------------------|-----------------------------------------
Workflow        | INVALID_STATE_TRANSITION      | Action not in the transition table
                | ALREADY_CANCELLED             | Cancel on a cancelled document
----------------|-------------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK            | Balance would go negative
                | INSUFFICIENT_BATCH_QUANTITY   | Batch quantity would go negative
----------------|-------------------------------|-----------------------------------------
Duplicate       | DUPLICATE_BATCH               | Batch number reused within a product
                | DUPLICATE_DOCUMENT_NUMBER     | Document number collision
----------------|-------------------------------|-----------------------------------------
Validation      | VALIDATION_FAILED             | Missing lines, bad quantities, etc.
                | SELF_APPROVAL                 | Approver is the creator (when forbidden)
----------------|-------------------------------|-----------------------------------------
Concurrency     | CONCURRENCY_CONFLICT          | Lost a race; retry the whole operation
----------------|-------------------------------|-----------------------------------------
Persistence     | PERSISTENCE_FAILURE           | Storage error; transaction rolled back
----------------|-------------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Ledger row or posted line modified

===============================================================================
HANDLING PATTERNS
===============================================================================

1. RETRY ONLY CONCURRENCY CONFLICTS:

    from inventory_kernel.services.retry_service import call_with_retry
    call_with_retry(lambda: service.post(doc_id, actor_id))

2. STATE ERRORS ARE THE IDEMPOTENCY GUARD:

    try:
        service.post(doc_id, actor_id)
    except InvalidStateTransitionError as e:
        # Already posted (or cancelled): nothing was re-applied
        log.info("post_skipped", extra={"status": e.current_status})

3. PERSISTENCE FAILURES ARE NOT RETRIED AUTOMATICALLY:

    except PersistenceFailureError as e:
        alert_operator(e.operation, e.cause)
"""

from decimal import Decimal


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(InventoryKernelError):
    """Base exception for unresolved identifiers."""

    code: str = "NOT_FOUND"


class DocumentNotFoundError(NotFoundError):
    """Document with given id (or number) was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str, document_ref: str):
        self.document_type = document_type
        self.document_ref = document_ref
        super().__init__(f"{document_type} not found: {document_ref}")


class DocumentLineNotFoundError(NotFoundError):
    """Line id does not belong to the document."""

    code: str = "DOCUMENT_LINE_NOT_FOUND"

    def __init__(self, document_id: str, line_id: str):
        self.document_id = document_id
        self.line_id = line_id
        super().__init__(f"Line {line_id} not found on document {document_id}")


class ProductNotFoundError(NotFoundError):
    """Product id is unknown to master data."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class LocationNotFoundError(NotFoundError):
    """Location id is unknown to the location registry."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__(f"Location not found: {location_id}")


class SupplierNotFoundError(NotFoundError):
    """Supplier id is unknown to the supplier registry."""

    code: str = "SUPPLIER_NOT_FOUND"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier not found: {supplier_id}")


class BatchNotFoundError(NotFoundError):
    """Batch with given id or number was not found."""

    code: str = "BATCH_NOT_FOUND"

    def __init__(self, batch_ref: str, product_id: str | None = None):
        self.batch_ref = batch_ref
        self.product_id = product_id
        if product_id:
            msg = f"Batch {batch_ref} not found for product {product_id}"
        else:
            msg = f"Batch not found: {batch_ref}"
        super().__init__(msg)


# Workflow exceptions


class WorkflowError(InventoryKernelError):
    """Base exception for document lifecycle errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidStateTransitionError(WorkflowError):
    """The requested action is not allowed from the document's current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        document_type: str,
        document_id: str,
        current_status: str,
        action: str,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} {document_type} {document_id}: "
            f"status is {current_status}"
        )


class AlreadyCancelledError(WorkflowError):
    """Document is already cancelled."""

    code: str = "ALREADY_CANCELLED"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(f"{document_type} {document_id} is already cancelled")


# Stock exceptions


class StockError(InventoryKernelError):
    """Base exception for quantity errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Movement would drive a (product, location) balance negative."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: str,
        location_id: str,
        available: Decimal,
        requested_delta: Decimal,
        movement_type: str,
    ):
        self.product_id = product_id
        self.location_id = location_id
        self.available = available
        self.requested_delta = requested_delta
        self.movement_type = movement_type
        super().__init__(
            f"Insufficient stock for product {product_id} at location "
            f"{location_id}: available {available}, {movement_type} "
            f"delta {requested_delta}"
        )


class InsufficientBatchQuantityError(StockError):
    """Adjustment would drive a batch quantity negative."""

    code: str = "INSUFFICIENT_BATCH_QUANTITY"

    def __init__(
        self,
        batch_id: str,
        batch_no: str,
        available: Decimal,
        requested_delta: Decimal,
    ):
        self.batch_id = batch_id
        self.batch_no = batch_no
        self.available = available
        self.requested_delta = requested_delta
        super().__init__(
            f"Insufficient quantity in batch {batch_no}: "
            f"available {available}, delta {requested_delta}"
        )


# Duplicate exceptions


class DuplicateError(InventoryKernelError):
    """Base exception for uniqueness violations."""

    code: str = "DUPLICATE"


class DuplicateBatchError(DuplicateError):
    """Batch number already exists for the product."""

    code: str = "DUPLICATE_BATCH"

    def __init__(self, product_id: str, batch_no: str):
        self.product_id = product_id
        self.batch_no = batch_no
        super().__init__(
            f"Batch {batch_no} already exists for product {product_id}"
        )


class DuplicateDocumentNumberError(DuplicateError):
    """Generated document number collided with an existing document."""

    code: str = "DUPLICATE_DOCUMENT_NUMBER"

    def __init__(self, document_type: str, document_no: str | None = None):
        self.document_type = document_type
        self.document_no = document_no
        super().__init__(
            f"Duplicate {document_type} document number: {document_no}"
        )


# Validation exceptions


class ValidationFailedError(InventoryKernelError):
    """Input failed validation; nothing was written."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or [message]
        super().__init__(message)


class SelfApprovalError(ValidationFailedError):
    """The creator of a document attempted to approve it."""

    code: str = "SELF_APPROVAL"

    def __init__(self, document_id: str, actor_id: str):
        self.document_id = document_id
        self.actor_id = actor_id
        super().__init__(
            f"Actor {actor_id} created document {document_id} "
            "and may not approve it"
        )


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrencyConflictError(ConcurrencyError):
    """Lost a race on a contended row. Retrying the whole operation is safe."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, entity_type: str, entity_ref: str, detail: str = ""):
        self.entity_type = entity_type
        self.entity_ref = entity_ref
        self.detail = detail
        msg = (
            f"Concurrency conflict on {entity_type} {entity_ref}: "
            "row was modified by another transaction"
        )
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


# Persistence exceptions


class PersistenceFailureError(InventoryKernelError):
    """Storage failed mid-operation; the transaction was rolled back."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, cause: str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Persistence failure during {operation}: {cause}")


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Ledger entries are immutable from creation; document lines are
    immutable once their document leaves draft.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
