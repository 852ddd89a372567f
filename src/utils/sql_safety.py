"""
SQL safety utilities for preventing SQL injection.

Provides identifier validation for names that are interpolated into
generated SQL text (tables, aliases, key columns).
"""

import re


# Strict ASCII-only patterns for SQL identifiers
VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
VALID_SCHEMA_TABLE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$"
)


def validate_identifier(identifier: str) -> None:
    """
    Validate a SQL identifier (column name, alias, etc.).

    Args:
        identifier: The identifier to validate

    Raises:
        ValueError: If the identifier contains invalid characters
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")

    if not VALID_IDENTIFIER.match(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Only ASCII letters, digits, and underscores are allowed, "
            "and must start with a letter or underscore."
        )


def validate_schema_table(schema_table: str) -> None:
    """
    Validate a schema.table identifier.

    Args:
        schema_table: The schema.table identifier to validate

    Raises:
        ValueError: If the identifier format is invalid
    """
    if not schema_table:
        raise ValueError("Schema.table identifier cannot be empty")

    if not VALID_SCHEMA_TABLE.match(schema_table):
        raise ValueError(
            f"Invalid schema.table identifier: {schema_table!r}. "
            "Only ASCII letters, digits, and underscores are allowed."
        )


def validate_integer_param(value: int | None, param_name: str, min_value: int = 0) -> None:
    """
    Validate an optional integer setting.

    Args:
        value: The value to validate (None is accepted)
        param_name: Name of the parameter (for error messages)
        min_value: Minimum allowed value (default 0)

    Raises:
        ValueError: If the value is not a valid integer or below minimum
    """
    if value is None:
        return

    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(
            f"Invalid {param_name}: {value!r}. Must be an integer."
        )

    if value < min_value:
        raise ValueError(
            f"Invalid {param_name}: {value}. Must be >= {min_value}."
        )
