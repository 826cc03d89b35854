"""Query result payload models.

A :class:`QueryResult` is the backend-independent snapshot of an executed
query that the cache stores.  The cache layer never interprets it; it is
only an encode/decode target for :mod:`querycache.utils.codec`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ColumnDescription(BaseModel):
    """Metadata of a single result column, as reported by the driver."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Column name as returned by the server.")
    type_oid: int = Field(default=0, ge=0, description="Server type OID (0 if unknown).")
    type_name: str | None = Field(default=None, description="Human-readable type name.")


class QueryResult(BaseModel):
    """A previously computed result set plus its scalar counters.

    ``rows`` holds one list of cells per row.  Cells must be msgpack-native
    (``None``, ``bool``, ``int``, ``float``, ``str``, ``bytes``, lists, maps)
    or timezone-aware ``datetime`` values.
    """

    model_config = ConfigDict(frozen=True)

    columns: list[ColumnDescription] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)
    command_tag: str = Field(default="", description='Server command tag, e.g. "SELECT 3".')
    row_count: int = Field(default=0, ge=0)

    @classmethod
    def from_rows(
        cls,
        columns: list[str],
        rows: list[list[Any]],
        command_tag: str | None = None,
    ) -> QueryResult:
        """Build a result from bare column names and rows.

        ``row_count`` is taken from ``len(rows)`` and the command tag defaults
        to ``"SELECT <n>"``.
        """
        return cls(
            columns=[ColumnDescription(name=name) for name in columns],
            rows=[list(row) for row in rows],
            command_tag=command_tag if command_tag is not None else f"SELECT {len(rows)}",
            row_count=len(rows),
        )
