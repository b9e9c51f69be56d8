"""
Observability helpers: structured logging and a leveled logging facade.
"""

from strata.observability.structured_logging import (
    FieldLogger,
    HumanReadableFormatter,
    LogContext,
    StructuredFormatter,
    setup_structured_logging,
)

__all__ = [
    "FieldLogger",
    "HumanReadableFormatter",
    "LogContext",
    "StructuredFormatter",
    "setup_structured_logging",
]
