"""Policy configuration: check.toml schema, validation, and loading."""

from repopolicy.config.globs import count_unclosed_delimiters, glob_match, validate_glob
from repopolicy.config.loader import (
    CONFIG_FILENAME,
    ConfigError,
    ConfigNotFoundError,
    build_policy,
    load_policy,
)
from repopolicy.config.model import PolicyConfig
from repopolicy.config.schema import to_json_schema, validate_config

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ConfigNotFoundError",
    "PolicyConfig",
    "build_policy",
    "count_unclosed_delimiters",
    "glob_match",
    "load_policy",
    "to_json_schema",
    "validate_config",
    "validate_glob",
]
