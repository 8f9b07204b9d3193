"""Fabric-specific errors.

Each one subclasses a foundation error so that HTTP mapping and inbound
no-op handling work off the generic taxonomy.
"""

from __future__ import annotations

from typing import Any

from textura.foundation.domain.exceptions import (
    DuplicateResourceError,
    InvalidStateTransitionError,
    NotFoundError,
)

RESOURCE_TYPE = "Fabric"


class FabricNotFoundError(NotFoundError):
    """No fabric with this code, or none at the expected version."""

    def __init__(self, code: str, **extra_context: Any) -> None:
        super().__init__(RESOURCE_TYPE, code, **extra_context)


class DuplicateFabricCodeError(DuplicateResourceError):
    """An ACTIVE fabric already uses this code."""

    def __init__(self, code: str) -> None:
        super().__init__(RESOURCE_TYPE, code)


class FabricAlreadyDeletedError(InvalidStateTransitionError):
    """Update or delete attempted on a DELETED fabric."""

    def __init__(self, code: str) -> None:
        super().__init__("cannot perform on a deleted fabric", code=code)
