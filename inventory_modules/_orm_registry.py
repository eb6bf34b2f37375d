"""
Module ORM Registry (``inventory_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table definition before tables are created, and so that the
immutability listeners can find every document line class.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by
``inventory_kernel.db.engine.create_tables`` and
``inventory_kernel.db.immutability``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``inventory_modules.*.orm`` module.

    Kernel tables come first: ledger entries reference product_batches.
    This function is idempotent -- repeated calls are harmless.
    """
    import inventory_kernel.models  # noqa: F401
    import inventory_kernel.services.numbering_service  # noqa: F401  # document_counters
    # fmt: off
    import inventory_modules.goods_received.orm  # noqa: F401
    import inventory_modules.goods_replace.orm  # noqa: F401
    import inventory_modules.goods_return.orm  # noqa: F401
    import inventory_modules.stock_adjustment.orm  # noqa: F401
    import inventory_modules.stock_transfer.orm  # noqa: F401
    # fmt: on
