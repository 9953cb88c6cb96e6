import copy
from typing import Any

from pydantic import BaseModel, Field

from linkbio.components.compiler import DEFAULT_BACKGROUND, DEFAULT_PAGE_SECTION
from linkbio.components.theme import DedupePolicy
from linkbio.domain.entities import ThemeTier, ThemeVisibility


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class PresetSeed(BaseModel):
    key: str
    name: str
    tier: ThemeTier = "free"
    visibility: ThemeVisibility = "public"
    config: dict[str, Any] = Field(default_factory=dict)


class ThemesRules(BaseModel):
    dedupe_policy: DedupePolicy = "content_hash"
    default_preset_key: str = "theme_a"
    default_mode: str = "light"
    fallback_page: dict[str, Any] = Field(
        default_factory=lambda: copy.deepcopy(DEFAULT_PAGE_SECTION)
    )
    fallback_background: dict[str, Any] = Field(
        default_factory=lambda: copy.deepcopy(DEFAULT_BACKGROUND)
    )
    presets: list[PresetSeed] = Field(default_factory=list)


class PublishRules(BaseModel):
    compiled_version: int = 1
    etag_length: int = Field(default=32, ge=8, le=64)


class PagesRules(BaseModel):
    default_locale: str = "vi"
    allowed_block_types: list[str] = Field(default_factory=lambda: ["text", "link_group"])
    max_blocks: int = Field(default=100, ge=1)
    max_links_per_group: int = Field(default=50, ge=1)
    max_title_length: int = Field(default=200, ge=1)
    default_layout_type: str = "list"


class OpsRules(BaseModel):
    data_dir_env: str = "LINKBIO_DATA_DIR"
    db_filename: str = "linkbio.db"
    log_level: str = "INFO"


class Rules(BaseModel):
    project: ProjectRules
    themes: ThemesRules = Field(default_factory=ThemesRules)
    publish: PublishRules = Field(default_factory=PublishRules)
    pages: PagesRules = Field(default_factory=PagesRules)
    ops: OpsRules = Field(default_factory=OpsRules)
