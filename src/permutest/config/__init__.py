"""Configuration for permutest."""

from permutest.config.settings import (
    CACHE_BACKENDS,
    PermutestSettings,
    configure_logging,
    load_config,
)

__all__ = [
    "CACHE_BACKENDS",
    "PermutestSettings",
    "configure_logging",
    "load_config",
]
