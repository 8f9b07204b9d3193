"""Infrastructure adapters for the fabric context."""

from textura.domain.fabrics.infrastructure.fabric_repository import (
    SqlFabricRepository,
    fabrics_table,
)

__all__ = ["SqlFabricRepository", "fabrics_table"]
