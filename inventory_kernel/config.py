"""
Inventory Configuration (``inventory_kernel.config``).

Responsibility
--------------
Defines the structure and defaults for stock-movement policy: negative
stock rules, batch tracking, low-stock comparison, adjustment reasons and
approval rules, replacement limits, document number formats and the
concurrency retry policy.  Values may be loaded from a YAML file.

Architecture position
---------------------
**Kernel** -- plain dataclasses plus a PyYAML loader.  No dependency on
db/, services/ or modules.  Services receive an ``InventoryConfig`` via
constructor injection and fall back to ``InventoryConfig.with_defaults()``.

Invariants enforced
-------------------
* Every field is validated in ``__post_init__``; invalid values raise
  ``ValueError`` at construction, never at first use.
* Every document type has a number format with a non-empty, unique prefix.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys  -> ``TypeError`` from the dataclass constructor.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Self

import yaml

from inventory_kernel.domain.dtos import MovementType, ReferenceType
from inventory_kernel.logging_config import get_logger

logger = get_logger("config")


VALID_LOW_STOCK_COMPARISONS = {"at_or_below", "below"}


@dataclass
class DocumentNumberFormat:
    """Number format for one document type: ``{prefix}-{year}-{seq}``."""
    prefix: str
    width: int = 4
    scope_by_year: bool = True
    separator: str = "-"

    def __post_init__(self):
        if not self.prefix or not self.prefix.strip():
            raise ValueError("prefix must be non-empty")
        if not 1 <= self.width <= 12:
            raise ValueError(f"width must be between 1 and 12, got {self.width}")

    def render(self, sequence: int, year: int | None) -> str:
        """Render a document number for ``sequence`` (and ``year`` if scoped)."""
        suffix = str(sequence).zfill(self.width)
        if self.scope_by_year and year is not None:
            return f"{self.prefix}{self.separator}{year}{self.separator}{suffix}"
        return f"{self.prefix}{self.separator}{suffix}"


def _default_number_formats() -> dict[str, DocumentNumberFormat]:
    return {
        ReferenceType.GOODS_RECEIVED.value: DocumentNumberFormat(prefix="GRN"),
        ReferenceType.STOCK_TRANSFER.value: DocumentNumberFormat(prefix="TRF"),
        ReferenceType.STOCK_ADJUSTMENT.value: DocumentNumberFormat(prefix="ADJ"),
        ReferenceType.GOODS_RETURN.value: DocumentNumberFormat(prefix="RTN"),
        ReferenceType.GOODS_REPLACE.value: DocumentNumberFormat(prefix="RPL"),
    }


@dataclass
class RetryPolicy:
    """Automatic retry of operations that lost a concurrency race."""
    max_attempts: int = 3
    backoff_seconds: float = 0.05
    backoff_multiplier: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds cannot be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_seconds * (self.backoff_multiplier ** (attempt - 1))


@dataclass
class InventoryConfig:
    """
    Configuration schema for the inventory movement engine.

    Field defaults are conservative: no negative stock, batch tracking on,
    low stock means "at or below the reorder level".  Override at
    instantiation or load from YAML:

        config = InventoryConfig(
            require_distinct_approver=True,
            adjustment_reasons=("damage", "expiry", "count"),
        )
    """

    # Negative stock
    allow_negative_stock: bool = False
    negative_stock_movements: tuple[str, ...] = ()

    # Batches
    batch_tracking_enabled: bool = True
    auto_generate_batch_numbers: bool = False

    # Alerts
    low_stock_comparison: str = "at_or_below"
    expiry_warning_days: int = 30

    # Adjustments
    adjustment_reasons: tuple[str, ...] = ()
    require_distinct_approver: bool = False

    # Returns / replacements
    enforce_replacement_limit: bool = True

    # Numbering
    number_formats: dict[str, DocumentNumberFormat] = field(
        default_factory=_default_number_formats,
    )

    # Concurrency
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self):
        self.negative_stock_movements = tuple(self.negative_stock_movements)
        self.adjustment_reasons = tuple(
            reason.strip().lower() for reason in self.adjustment_reasons
        )

        valid_movements = {m.value for m in MovementType}
        unknown = set(self.negative_stock_movements) - valid_movements
        if unknown:
            raise ValueError(
                f"negative_stock_movements has unknown movement types: {sorted(unknown)}"
            )

        if self.low_stock_comparison not in VALID_LOW_STOCK_COMPARISONS:
            raise ValueError(
                f"low_stock_comparison must be one of {VALID_LOW_STOCK_COMPARISONS}, "
                f"got '{self.low_stock_comparison}'"
            )

        if self.expiry_warning_days < 0:
            raise ValueError("expiry_warning_days cannot be negative")

        if any(not reason for reason in self.adjustment_reasons):
            raise ValueError("adjustment_reasons cannot contain empty entries")

        # Fill in formats for document types the caller did not override
        formats = _default_number_formats()
        formats.update(self.number_formats)
        self.number_formats = formats
        prefixes = [fmt.prefix for fmt in self.number_formats.values()]
        if len(prefixes) != len(set(prefixes)):
            raise ValueError(f"document number prefixes must be unique, got {prefixes}")

        logger.info(
            "inventory_config_initialized",
            extra={
                "allow_negative_stock": self.allow_negative_stock,
                "negative_stock_movements": list(self.negative_stock_movements),
                "batch_tracking_enabled": self.batch_tracking_enabled,
                "low_stock_comparison": self.low_stock_comparison,
                "require_distinct_approver": self.require_distinct_approver,
                "enforce_replacement_limit": self.enforce_replacement_limit,
            },
        )

    def allows_negative(self, movement_type: MovementType | str) -> bool:
        """True if ``movement_type`` may drive a balance below zero."""
        value = getattr(movement_type, "value", movement_type)
        return self.allow_negative_stock or value in self.negative_stock_movements

    def number_format(self, document_type: ReferenceType | str) -> DocumentNumberFormat:
        value = getattr(document_type, "value", document_type)
        try:
            return self.number_formats[value]
        except KeyError:
            raise ValueError(f"No number format for document type {value!r}") from None

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the conservative defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g., loaded from YAML)."""
        logger.info(
            "inventory_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        data = dict(data)
        if "number_formats" in data:
            data["number_formats"] = {
                key: DocumentNumberFormat(**value)
                for key, value in (data["number_formats"] or {}).items()
            }
        if "retry" in data:
            data["retry"] = RetryPolicy(**(data["retry"] or {}))
        for key in ("negative_stock_movements", "adjustment_reasons"):
            if key in data:
                data[key] = tuple(data[key] or ())
        return cls(**data)

    def checksum(self) -> str:
        """Deterministic SHA-256 of the effective configuration."""
        canonical = json.dumps(asdict(self), sort_keys=True, default=str)
        return hashlib.sha256(canonical.encode()).hexdigest()


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(path: Path | str) -> InventoryConfig:
    """
    Load an ``InventoryConfig`` from a YAML file.

    The file may hold the settings at the top level or under an
    ``inventory:`` key.
    """
    data = load_yaml_file(Path(path))
    if "inventory" in data and isinstance(data["inventory"], dict):
        data = data["inventory"]
    config = InventoryConfig.from_dict(data)
    logger.info(
        "inventory_config_loaded",
        extra={"path": str(path), "checksum": config.checksum()},
    )
    return config
