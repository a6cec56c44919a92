# This file is part of hostnetd. See LICENSE file for license information.
"""schema.py: JSON schema validation of network configuration mappings."""
import json
import os
import re
from functools import lru_cache
from typing import List, NamedTuple, Optional

from jsonschema import Draft4Validator, FormatChecker

from hostnetd.util import load_text_file

NETWORK_CONFIG_SCHEMA_FILE = "schema-network-config.json"


class SchemaProblem(NamedTuple):
    path: str
    message: str

    def format(self) -> str:
        return f"{self.path}: {self.message}"


SchemaProblems = List[SchemaProblem]


def _format_schema_problems(
    schema_problems: SchemaProblems,
    *,
    prefix: Optional[str] = None,
    separator: str = ", ",
) -> str:
    formatted = separator.join(map(lambda p: p.format(), schema_problems))
    if prefix:
        formatted = f"{prefix}{formatted}"
    return formatted


class SchemaValidationError(ValueError):
    """Raised when validating a network config against the schema."""

    def __init__(self, schema_errors: Optional[SchemaProblems] = None):
        """Init the exception with a list of schema problems.

        @param schema_errors: A list of the format:
            [SchemaProblem(flat.config.key, msg),]
        """
        self.schema_errors = sorted(set(schema_errors or []))
        super().__init__(
            _format_schema_problems(
                self.schema_errors, prefix="Network config schema errors: "
            )
        )


def get_schema_dir() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas")


@lru_cache()
def get_schema() -> dict:
    """Return the jsonschema for network configuration."""
    schema_file = os.path.join(get_schema_dir(), NETWORK_CONFIG_SCHEMA_FILE)
    return json.loads(load_text_file(schema_file))


def validate_network_config_schema(config: dict) -> bool:
    """Validate provided config meets the schema definition.

    @param config: Dict of network configuration settings validated against
        schema.

    @raises: SchemaValidationError when provided config does not validate
        against the provided schema.
    @raises: TypeError when config is not a dict.
    @return: True when the config is valid.
    """
    if not isinstance(config, dict):
        raise TypeError(
            "Network config must be a dict, got %s" % type(config).__name__
        )
    schema = get_schema()
    validator = Draft4Validator(schema, format_checker=FormatChecker())

    errors: SchemaProblems = []
    for schema_error in sorted(
        validator.iter_errors(config), key=lambda e: list(map(str, e.path))
    ):
        path = ".".join([str(p) for p in schema_error.path])
        if (
            not path
            and schema_error.validator == "additionalProperties"
            and schema_error.schema == schema
        ):
            # an issue with invalid top-level property
            prop_match = re.match(
                r".*\('(?P<name>.*)' was unexpected\)", schema_error.message
            )
            if prop_match:
                path = prop_match["name"]
        errors.append(SchemaProblem(path, schema_error.message))

    if errors:
        raise SchemaValidationError(errors)
    return True
