"""
Editor component - block, group and link editing on page drafts.
"""

from ._impl import (
    fits_between,
    is_permutation,
    last_key,
    neighbour_keys,
    order_after_move,
    validate_block_type,
    validate_draft,
    validate_link_data,
)
from .component import NEW_GROUP_ID, EditorService
from .models import DEFAULT_CONFIG, EditorConfig, EditorValidationError
from .ports import ClockPort, DraftStorePort, PublishCacheEvictPort

__all__ = [
    # Service
    "EditorService",
    "NEW_GROUP_ID",
    # Functional core
    "validate_link_data",
    "validate_block_type",
    "validate_draft",
    "neighbour_keys",
    "order_after_move",
    "fits_between",
    "last_key",
    "is_permutation",
    # Models
    "EditorConfig",
    "EditorValidationError",
    "DEFAULT_CONFIG",
    # Ports
    "DraftStorePort",
    "PublishCacheEvictPort",
    "ClockPort",
]
