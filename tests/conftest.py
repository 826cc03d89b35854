"""Shared pytest fixtures for the querycache test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from querycache.models.result import ColumnDescription, QueryResult
from tests.fakes import FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def sample_result() -> QueryResult:
    return QueryResult(
        columns=[
            ColumnDescription(name="id", type_oid=23, type_name="int4"),
            ColumnDescription(name="first_name", type_oid=25, type_name="text"),
            ColumnDescription(name="created_at", type_oid=1184, type_name="timestamptz"),
        ],
        rows=[
            [1, "Ada", datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc)],
            [2, "Grace", None],
        ],
        command_tag="SELECT 2",
        row_count=2,
    )


@pytest.fixture
def other_result() -> QueryResult:
    return QueryResult.from_rows(["id", "first_name"], [[3, "Edsger"]])
