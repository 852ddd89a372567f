"""
Column list construction.

Derives the ordered select/insert/output column lists and the ORDER BY key
from an analyzed schema. Two endpoints built over structurally equivalent
tables produce identical output_column_names, which is what makes their
fetched rows positionally comparable.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import EndpointConfig
from .errors import InvalidKeyColumn
from .schema import ColumnSchema

if TYPE_CHECKING:
    from .dialects.base import Dialect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnSet:
    """Derived column lists for one endpoint."""

    select_columns: tuple[str, ...]
    insert_columns: tuple[str, ...]
    output_column_names: tuple[str, ...]
    sort_columns: tuple[str, ...]
    ranking_key: tuple[str, ...] | None = None
    positions: dict[str, int] = field(default_factory=dict, compare=False)

    def row_mapping(self, values) -> dict:
        """Map a positional row onto output column names."""
        return dict(zip(self.output_column_names, values))


def choose_ranking_key(config: EndpointConfig) -> tuple[str, ...] | None:
    """
    Pick the key rows are ordered by.

    An explicit sort key wins; otherwise the first non-empty unique key
    (first match, not shortest). None means default full-row ordering.
    """
    if config.sort_key:
        logger.debug(f"Using supplied key as sort: {', '.join(config.sort_key)}")
        return config.sort_key

    for key in config.unique_keys:
        if key:
            logger.debug(f"Using unique key as sort: {', '.join(key)}")
            return key

    return None


def build_column_set(schema: ColumnSchema, config: EndpointConfig, dialect: "Dialect") -> ColumnSet:
    """
    Build the column lists for an endpoint.

    With a ranking key, key columns move to the front in key order and the
    rest keep their schema order; only the key columns are sorted on.
    Without one, every retained non-long column is sorted on, in schema order.

    Raises:
        InvalidKeyColumn: If the ranking key names a column that is not retained
    """
    names = schema.names
    ranking_key = choose_ranking_key(config)
    sort_columns: list[str] = []

    if ranking_key:
        for col in ranking_key:
            if col not in schema or schema[col].excluded:
                raise InvalidKeyColumn(col)

        offset = len(ranking_key) + 1
        ranks = {name: offset + i for i, name in enumerate(names)}
        for rank, col in enumerate(ranking_key):
            ranks[col] = rank
            sort_columns.extend(dialect.sort_expressions(col))

        names = sorted(names, key=ranks.__getitem__)

    select_columns = []
    insert_columns = []
    output_names = []

    for name in names:
        col = schema[name]
        if col.excluded:
            continue

        quoted = dialect.quote_identifier(name)
        if col.masked and config.is_source:
            select_columns.append(dialect.masked_expression(config.masked_columns[name], name))
        else:
            select_columns.append(quoted)
        insert_columns.append(quoted)
        output_names.append(name)

        if ranking_key is None and not col.long_value:
            sort_columns.extend(dialect.sort_expressions(name))

    return ColumnSet(
        select_columns=tuple(select_columns),
        insert_columns=tuple(insert_columns),
        output_column_names=tuple(output_names),
        sort_columns=tuple(sort_columns),
        ranking_key=ranking_key,
        positions={name: i for i, name in enumerate(output_names)},
    )
