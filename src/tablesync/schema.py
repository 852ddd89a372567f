"""
Column schema analysis.

A zero-row probe of the endpoint's select yields DB-API column metadata;
analyze_columns turns that into one ColumnDescriptor per column, deciding
how each column is compared and whether it takes part in the sync at all.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .config import EndpointConfig

if TYPE_CHECKING:
    from .dialects.base import Dialect

logger = logging.getLogger(__name__)


class ColumnType(str, Enum):
    """Semantic comparison type of a column."""

    STRING = "string"
    NUMERIC = "numeric"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ColumnDescriptor:
    """Analyzed metadata for a single column."""

    name: str
    type_code: Any
    type_name: str
    column_type: ColumnType
    excluded: bool = False
    masked: bool = False
    long_value: bool = False
    precision: int | None = None
    scale: int | None = None


class ColumnSchema:
    """
    Ordered column descriptors with name lookup.

    Order is the natural (schema) order of the probe; every derived column
    list is built from it, so it is kept explicit rather than hash-ordered.
    """

    def __init__(self, columns: Sequence[ColumnDescriptor]):
        self._columns = tuple(columns)
        self._index = {col.name: i for i, col in enumerate(self._columns)}

    def __iter__(self) -> Iterator[ColumnDescriptor]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def __getitem__(self, name: str) -> ColumnDescriptor:
        return self._columns[self._index[name]]

    def index(self, name: str) -> int:
        return self._index[name]

    @property
    def names(self) -> list[str]:
        return [col.name for col in self._columns]

    @property
    def retained(self) -> list[ColumnDescriptor]:
        """Columns that take part in the sync, in schema order."""
        return [col for col in self._columns if not col.excluded]

    @property
    def skipped(self) -> set[str]:
        return {col.name for col in self._columns if col.excluded}

    @property
    def long_values(self) -> set[str]:
        return {col.name for col in self._columns if col.long_value and not col.excluded}

    def describe(self) -> str:
        """
        Render the probed metadata for schema comparison between endpoints.

        Format:
            Column Count(N)
              NAME: Type(code)  Prec(p)  Scale(s)
        """
        lines = [f"Column Count({len(self._columns)})"]
        for col in self._columns:
            line = f"  {col.name.upper()}: Type({col.type_code})"
            if col.precision:
                line += f"  Prec({col.precision})"
            if col.scale:
                line += f"  Scale({col.scale})"
            lines.append(line)
        return "\n".join(lines) + "\n"


def _description_field(entry: Sequence[Any], index: int) -> Any:
    return entry[index] if len(entry) > index else None


def analyze_columns(
    description: Sequence[Sequence[Any]],
    type_names: Mapping[Any, str],
    config: EndpointConfig,
    dialect: "Dialect",
) -> ColumnSchema:
    """
    Classify every probed column.

    Priority: excluded columns first (dropped from every later list), then
    masked columns (always strings), then the dialect's native type rules.

    Args:
        description: DB-API cursor.description of the zero-row probe
        type_names: Dialect type-name lookup loaded from the connection
        config: Endpoint configuration
        dialect: Dialect supplying the classification rules

    Returns:
        ColumnSchema in probe order

    Raises:
        UnsupportedColumnType: If a column's type has no comparison rule
    """
    columns = []

    for entry in description:
        name = str(entry[0]).lower()
        type_code = entry[1]
        type_name = dialect.type_name(type_names, name, type_code)
        precision = _description_field(entry, 4)
        scale = _description_field(entry, 5)

        if name in config.excluded_columns:
            logger.debug(f"Column {name} excluded by configuration")
            columns.append(ColumnDescriptor(
                name, type_code, type_name, ColumnType.UNKNOWN,
                excluded=True, precision=precision, scale=scale,
            ))
            continue

        if name in config.masked_columns:
            columns.append(ColumnDescriptor(
                name, type_code, type_name, ColumnType.STRING,
                masked=True, precision=precision, scale=scale,
            ))
            continue

        column_type, excluded, long_value = dialect.classify(name, type_code, type_name)
        if excluded:
            logger.info(f"Column {name} ({type_name}) cannot be compared, skipping")
        columns.append(ColumnDescriptor(
            name, type_code, type_name, column_type,
            excluded=excluded, long_value=long_value,
            precision=precision, scale=scale,
        ))

    return ColumnSchema(columns)
