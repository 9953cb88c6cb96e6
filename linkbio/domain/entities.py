from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


# --- Enums / Literals ---
ThemeTier = Literal["free", "pro"]
ThemeVisibility = Literal["public", "private"]
PageStatus = Literal["draft", "published"]

BLOCK_TEXT = "text"
BLOCK_LINK_GROUP = "link_group"

JSONObject = dict[str, Any]

# --- Themes ---

class ThemePreset(BaseModel):
    id: int | None = None
    key: str
    name: str
    tier: ThemeTier = "free"
    visibility: ThemeVisibility = "public"
    is_official: bool = True
    config: JSONObject = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class ThemeCustom(BaseModel):
    id: int | None = None
    user_id: int
    based_on_preset_id: int
    name: str | None = None
    patch: JSONObject = Field(default_factory=dict)
    compiled_config: JSONObject | None = None
    hash: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

# --- Pages ---

class PageTheme(BaseModel):
    preset_key: str
    custom_id: int | None = None  # custom wins over preset when set
    mode: str = "light"

class Page(BaseModel):
    id: int | None = None
    user_id: int
    locale: str = "vi"
    title: str | None = None
    status: PageStatus = "draft"
    theme: PageTheme
    settings: JSONObject = Field(default_factory=dict)
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class Block(BaseModel):
    id: int | None = None
    type: str
    sort_key: str
    ref_id: int | None = None  # link_group only
    content: JSONObject = Field(default_factory=dict)
    is_visible: bool = True

class LinkGroup(BaseModel):
    id: int | None = None
    title: str | None = None
    layout_type: str = "list"
    layout_config: JSONObject = Field(default_factory=dict)
    style_override: JSONObject = Field(default_factory=dict)

class Link(BaseModel):
    id: int | None = None
    group_id: int
    title: str
    url: str
    sort_key: str
    is_active: bool = True
    icon_asset_id: int | None = None

class Draft(BaseModel):
    """Full editable state of a page, held as explicit ordered lists."""

    page: Page
    blocks: list[Block] = Field(default_factory=list)
    groups: list[LinkGroup] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)

    def group_index(self) -> dict[int, LinkGroup]:
        return {g.id: g for g in self.groups if g.id is not None}

    def links_for_group(self, group_id: int) -> list[Link]:
        return [link for link in self.links if link.group_id == group_id]

# --- Publish ---

class PublishCacheEntry(BaseModel):
    page_id: int
    compiled_json: bytes
    etag: str
    draft_version: int = 0
    published_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
