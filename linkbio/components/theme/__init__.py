"""
Theme component - preset catalogue, custom themes and deep merge.
"""

from ._impl import (
    ThemeConfigError,
    canonical_json,
    compile_custom_config,
    deep_merge,
    parse_json_object,
    resolve_theme_config,
    shallow_merge,
    theme_hash,
)
from .component import ThemeService
from .models import (
    DEFAULT_CONFIG,
    DedupePolicy,
    ThemeSelection,
    ThemeServiceConfig,
    ThemeValidationError,
)
from .ports import ClockPort, ThemeRepoPort

__all__ = [
    # Service
    "ThemeService",
    # Functional core
    "deep_merge",
    "shallow_merge",
    "theme_hash",
    "canonical_json",
    "parse_json_object",
    "compile_custom_config",
    "resolve_theme_config",
    # Models
    "ThemeSelection",
    "ThemeServiceConfig",
    "ThemeValidationError",
    "DedupePolicy",
    "DEFAULT_CONFIG",
    # Errors
    "ThemeConfigError",
    # Ports
    "ThemeRepoPort",
    "ClockPort",
]
