"""
Compiler component - Data models.

The compiled page is the immutable artifact served to readers. Field names
and nesting of to_document() are the public contract of the served JSON.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from linkbio.domain.entities import JSONObject

COMPILED_VERSION = 1

DEFAULT_PAGE_SECTION: JSONObject = {
    "layout": {
        "textAlign": "center",
        "baseFontSize": "M",
        "pagePadding": 16,
        "blockGap": 12,
    },
    "defaults": {
        "linkGroup": {
            "textAlign": "center",
            "fontSize": "M",
            "radius": 16,
        },
    },
}

DEFAULT_BACKGROUND: JSONObject = {
    "kind": "color",
    "color": "#0B0F19",
}


@dataclass(frozen=True)
class CompilerConfig:
    """Compiler configuration."""

    version: int = COMPILED_VERSION
    # Used when the effective theme has no "page" / "background" section
    fallback_page: JSONObject = field(default_factory=lambda: copy.deepcopy(DEFAULT_PAGE_SECTION))
    fallback_background: JSONObject = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_BACKGROUND)
    )


DEFAULT_CONFIG = CompilerConfig()


@dataclass(frozen=True)
class CompiledLink:
    title: str
    url: str
    is_active: bool = True

    def to_document(self) -> JSONObject:
        return {"title": self.title, "url": self.url, "is_active": self.is_active}


@dataclass(frozen=True)
class CompiledLinkGroup:
    id: int
    title: str | None
    layout_type: str
    layout_config: JSONObject
    final_style: JSONObject
    links: tuple[CompiledLink, ...]

    def to_document(self) -> JSONObject:
        return {
            "id": self.id,
            "title": self.title,
            "layout_type": self.layout_type,
            "layout_config": copy.deepcopy(self.layout_config),
            "final_style": copy.deepcopy(self.final_style),
            "links": [link.to_document() for link in self.links],
        }


@dataclass(frozen=True)
class CompiledBlock:
    """A `text` block carries content; a `link_group` block carries group."""

    type: str
    content: JSONObject | None = None
    group: CompiledLinkGroup | None = None

    def to_document(self) -> JSONObject:
        doc: JSONObject = {"type": self.type}
        if self.group is not None:
            doc["group"] = self.group.to_document()
        else:
            doc["content"] = copy.deepcopy(self.content) if self.content is not None else {}
        return doc


@dataclass(frozen=True)
class CompiledTheme:
    preset_key: str
    mode: str
    compiled: JSONObject

    def to_document(self) -> JSONObject:
        return {
            "preset_key": self.preset_key,
            "mode": self.mode,
            "compiled": copy.deepcopy(self.compiled),
        }


@dataclass(frozen=True)
class CompiledPage:
    """Publish-ready page: metadata, resolved theme, visible blocks in order."""

    version: int
    page_id: int
    locale: str
    settings: JSONObject
    theme: CompiledTheme
    blocks: tuple[CompiledBlock, ...]

    def to_document(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "page": {
                "id": self.page_id,
                "locale": self.locale,
                "settings": copy.deepcopy(self.settings),
            },
            "theme": self.theme.to_document(),
            "blocks": [block.to_document() for block in self.blocks],
        }
