"""Configuration resolution -- defaults, deep merge, and the immutable model."""

from begin.core.config.models import Configuration
from begin.core.config.resolver import deep_merge, default_options, load_options, resolve

__all__ = [
    "Configuration",
    "deep_merge",
    "default_options",
    "load_options",
    "resolve",
]
