"""
Base model for rows written to warehouse targets.
"""

from typing import Any

from pydantic import BaseModel


class WarehouseRecord(BaseModel):
    """
    A batch-scoped, immutable output row.

    Field declaration order is the column order of the target table.
    """

    class Config:
        frozen = True

    @classmethod
    def columns(cls) -> list[str]:
        """Return target column names in declaration order."""
        return list(cls.model_fields)

    def as_row(self) -> tuple[Any, ...]:
        """Return field values as a tuple matching columns()."""
        return tuple(getattr(self, name) for name in self.columns())
