"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, project_home
from .models import (
    DEFAULT_ALPHABET,
    CrawlerConfig,
    DestinationConfig,
    DestinationKind,
    SearchConfig,
    StateConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "CrawlerConfig",
    "DEFAULT_ALPHABET",
    "DestinationConfig",
    "DestinationKind",
    "SearchConfig",
    "StateConfig",
    "project_home",
]
