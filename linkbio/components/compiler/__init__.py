"""
Compiler component - draft to publish-ready document.
"""

from ._impl import (
    build_compiled_theme,
    compile_blocks,
    compile_draft,
    compile_page,
    link_group_defaults,
    sort_by_key,
)
from .models import (
    COMPILED_VERSION,
    DEFAULT_BACKGROUND,
    DEFAULT_CONFIG,
    DEFAULT_PAGE_SECTION,
    CompiledBlock,
    CompiledLink,
    CompiledLinkGroup,
    CompiledPage,
    CompiledTheme,
    CompilerConfig,
)

__all__ = [
    # Entry points
    "compile_page",
    "compile_draft",
    # Helpers
    "compile_blocks",
    "build_compiled_theme",
    "link_group_defaults",
    "sort_by_key",
    # Models
    "CompiledPage",
    "CompiledBlock",
    "CompiledLinkGroup",
    "CompiledLink",
    "CompiledTheme",
    "CompilerConfig",
    # Constants
    "COMPILED_VERSION",
    "DEFAULT_CONFIG",
    "DEFAULT_PAGE_SECTION",
    "DEFAULT_BACKGROUND",
]
