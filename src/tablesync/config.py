"""
Endpoint configuration for synchronization clients.

An EndpointConfig describes one side of a sync pair: which table (and
which rows of it) to read, which columns to leave out or mask, how to
order rows, and how much destructive work the destination may do.
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Any

from utils.sql_safety import (
    validate_identifier,
    validate_integer_param,
    validate_schema_table,
)

# Uncommitted destructive operations allowed before check_pending commits
MAX_PENDING = 500

_OPTION_SPLIT = re.compile(r"[\s,;]+")


class Role(str, Enum):
    """Which side of the sync pair an endpoint is."""

    SOURCE = "source"
    DESTINATION = "dest"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        if isinstance(value, Role):
            return value
        normalized = str(value).strip().lower()
        if normalized in ("dest", "destination"):
            return cls.DESTINATION
        if normalized == "source":
            return cls.SOURCE
        raise ValueError(f"Invalid endpoint role: {value!r}")


def _lower_key(columns: Iterable[str]) -> tuple[str, ...]:
    return tuple(col.strip().lower() for col in columns)


@dataclass(frozen=True)
class EndpointConfig:
    """
    Immutable configuration for one sync endpoint.

    Column names are case-normalized to lower case on construction.
    A ceiling of None or 0 disables that ceiling.
    """

    table: str
    role: Role = Role.SOURCE
    alias: str | None = None
    where: str | None = None
    args: tuple = ()
    excluded_columns: frozenset[str] = frozenset()
    masked_columns: Mapping[str, str] = field(default_factory=dict)
    unique_keys: tuple[tuple[str, ...], ...] = ()
    sort_key: tuple[str, ...] | None = None
    no_dups: bool = False
    max_inserts: int | None = None
    max_deletes: int | None = None
    force: bool = False
    dry_run: bool = False
    debug: bool = False
    commit_threshold: int = MAX_PENDING

    def __post_init__(self):
        validate_schema_table(self.table)
        if self.alias:
            validate_identifier(self.alias)
        validate_integer_param(self.max_inserts, "max_inserts")
        validate_integer_param(self.max_deletes, "max_deletes")
        validate_integer_param(self.commit_threshold, "commit_threshold", min_value=1)

        unique_keys = tuple(_lower_key(key) for key in self.unique_keys)
        sort_key = _lower_key(self.sort_key) if self.sort_key else None
        for key in (*unique_keys, sort_key or ()):
            for col in key:
                validate_identifier(col)

        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "role", Role.parse(self.role))
        object.__setattr__(self, "args", tuple(self.args or ()))
        object.__setattr__(self, "excluded_columns", frozenset(c.lower() for c in self.excluded_columns))
        object.__setattr__(
            self,
            "masked_columns",
            MappingProxyType({col.lower(): value for col, value in self.masked_columns.items()}),
        )
        object.__setattr__(self, "unique_keys", unique_keys)
        object.__setattr__(self, "sort_key", sort_key)

    def __hash__(self) -> int:
        values = tuple(
            frozenset(self.masked_columns.items()) if f.name == "masked_columns" else getattr(self, f.name)
            for f in fields(self)
        )
        return hash(values)

    @property
    def is_source(self) -> bool:
        return self.role is Role.SOURCE

    @property
    def is_destination(self) -> bool:
        return self.role is Role.DESTINATION

    @classmethod
    def from_options(cls, **opts: Any) -> "EndpointConfig":
        """
        Build a config from loosely-typed options.

        Accepts the string forms used by job definitions:
            excl_cols="a, b;c"                 columns to leave out
            mask_cols="ssn:XXX note:REDACTED"  column:literal pairs
            type="source" | "dest"
            ukey_sort=[...]                    explicit sort key

        Any other EndpointConfig field name is passed through unchanged.
        """
        opts = dict(opts)

        excluded = opts.pop("excl_cols", None)
        if isinstance(excluded, str):
            opts["excluded_columns"] = frozenset(c for c in _OPTION_SPLIT.split(excluded) if c)
        elif excluded:
            opts["excluded_columns"] = frozenset(excluded)

        masked = opts.pop("mask_cols", None)
        if isinstance(masked, str):
            pairs = {}
            for item in _OPTION_SPLIT.split(masked):
                if not item:
                    continue
                name, _, literal = item.partition(":")
                pairs[name] = literal
            opts["masked_columns"] = pairs
        elif masked:
            opts["masked_columns"] = dict(masked)

        if "type" in opts:
            opts["role"] = opts.pop("type")

        ukey_sort = opts.pop("ukey_sort", None)
        if isinstance(ukey_sort, Sequence) and not isinstance(ukey_sort, str) and ukey_sort:
            opts["sort_key"] = tuple(ukey_sort)

        if opts.get("unique_keys"):
            opts["unique_keys"] = tuple(tuple(key) for key in opts["unique_keys"])

        return cls(**opts)
