import json
import logging
import sqlite3
from datetime import datetime
from typing import Any

from linkbio.components.theme import parse_json_object
from linkbio.domain.entities import (
    Block,
    Draft,
    Link,
    LinkGroup,
    Page,
    PageTheme,
    PublishCacheEntry,
    ThemeCustom,
    ThemePreset,
    ThemeTier,
)

logger = logging.getLogger(__name__)


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


def _parse_dt(s: str) -> datetime:
    return datetime.fromisoformat(s)


class SQLiteRepoBase:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn


# --- Pages / drafts ---


class SQLiteDraftRepo(SQLiteRepoBase):
    """Pages with their blocks, link groups and links."""

    @staticmethod
    def _row_to_page(row: dict[str, Any]) -> Page:
        return Page(
            id=row["id"],
            user_id=row["user_id"],
            locale=row["locale"],
            title=row["title"],
            status=row["status"],
            theme=PageTheme(
                preset_key=row["theme_preset_key"],
                custom_id=row["theme_custom_id"],
                mode=row["theme_mode"],
            ),
            settings=parse_json_object(row["settings_json"], "settings"),
            version=row["version"],
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )

    @staticmethod
    def _page_params(page: Page) -> tuple[Any, ...]:
        return (
            page.user_id,
            page.locale,
            page.title,
            page.status,
            page.theme.preset_key,
            page.theme.custom_id,
            page.theme.mode,
            _dumps(page.settings),
            page.version,
            page.created_at.isoformat(),
            page.updated_at.isoformat(),
        )

    def get_page(self, page_id: int) -> Page | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
            return self._row_to_page(row) if row else None
        finally:
            conn.close()

    def list_pages(self, user_id: int) -> list[Page]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM pages WHERE user_id = ? ORDER BY id", (user_id,)
            ).fetchall()
            return [self._row_to_page(r) for r in rows]
        finally:
            conn.close()

    def save_page(self, page: Page) -> Page:
        """Insert (id None) or update page metadata. Children are untouched."""
        conn = self._get_conn()
        try:
            if page.id is None:
                cursor = conn.execute(
                    """
                    INSERT INTO pages (
                        user_id, locale, title, status,
                        theme_preset_key, theme_custom_id, theme_mode,
                        settings_json, version, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    self._page_params(page),
                )
                page = page.model_copy(update={"id": cursor.lastrowid})
            else:
                self._update_page(conn, page)
            conn.commit()
            return page
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _update_page(self, conn: sqlite3.Connection, page: Page) -> None:
        conn.execute(
            """
            UPDATE pages SET
                user_id = ?, locale = ?, title = ?, status = ?,
                theme_preset_key = ?, theme_custom_id = ?, theme_mode = ?,
                settings_json = ?, version = ?, created_at = ?, updated_at = ?
            WHERE id = ?
        """,
            (*self._page_params(page), page.id),
        )

    def delete_page(self, page_id: int) -> bool:
        """Children and the publish cache entry go with the page (ON DELETE CASCADE)."""
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM pages WHERE id = ?", (page_id,))
            conn.commit()
            return cursor.rowcount > 0
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def load_draft(self, page_id: int) -> Draft | None:
        conn = self._get_conn()
        try:
            # Page and children are read from a single snapshot
            conn.execute("BEGIN")
            row = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
            if not row:
                return None

            block_rows = conn.execute(
                "SELECT * FROM blocks WHERE page_id = ? ORDER BY sort_key, id", (page_id,)
            ).fetchall()
            group_rows = conn.execute(
                "SELECT * FROM link_groups WHERE page_id = ? ORDER BY id", (page_id,)
            ).fetchall()
            link_rows = conn.execute(
                """
                SELECT l.* FROM links l
                JOIN link_groups g ON g.id = l.group_id
                WHERE g.page_id = ?
                ORDER BY l.group_id, l.sort_key, l.id
            """,
                (page_id,),
            ).fetchall()
            conn.commit()

            return Draft(
                page=self._row_to_page(row),
                blocks=[
                    Block(
                        id=b["id"],
                        type=b["type"],
                        sort_key=b["sort_key"],
                        ref_id=b["ref_id"],
                        content=parse_json_object(b["content_json"], "content"),
                        is_visible=bool(b["is_visible"]),
                    )
                    for b in block_rows
                ],
                groups=[
                    LinkGroup(
                        id=g["id"],
                        title=g["title"],
                        layout_type=g["layout_type"],
                        layout_config=parse_json_object(g["layout_config_json"], "layout_config"),
                        style_override=parse_json_object(
                            g["style_override_json"], "style_override"
                        ),
                    )
                    for g in group_rows
                ],
                links=[
                    Link(
                        id=link["id"],
                        group_id=link["group_id"],
                        title=link["title"],
                        url=link["url"],
                        sort_key=link["sort_key"],
                        is_active=bool(link["is_active"]),
                        icon_asset_id=link["icon_asset_id"],
                    )
                    for link in link_rows
                ],
            )
        finally:
            conn.close()

    def save_draft(self, draft: Draft) -> Draft:
        """
        Replace the stored draft in one transaction and bump the page version.

        Rows whose id is unset or not owned by this page are inserted with
        fresh ids; references to placeholder group ids are rewritten to the
        inserted group. Rows of the page missing from the draft are deleted.
        """
        page_id = draft.page.id
        if page_id is None:
            raise ValueError("Draft page has no id")

        conn = self._get_conn()
        try:
            row = conn.execute("SELECT version FROM pages WHERE id = ?", (page_id,)).fetchone()
            if not row:
                raise KeyError(f"Page {page_id} not found")

            page = draft.page.model_copy(update={"version": row["version"] + 1})
            self._update_page(conn, page)

            # 1. Groups
            remap: dict[int, int] = {}
            groups: list[LinkGroup] = []
            for group in draft.groups:
                params = (
                    group.title,
                    group.layout_type,
                    _dumps(group.layout_config),
                    _dumps(group.style_override),
                )
                cursor = conn.execute(
                    """
                    UPDATE link_groups SET
                        title = ?, layout_type = ?, layout_config_json = ?, style_override_json = ?
                    WHERE id = ? AND page_id = ?
                """,
                    (*params, group.id, page_id),
                )
                if cursor.rowcount == 0:
                    cursor = conn.execute(
                        """
                        INSERT INTO link_groups (
                            page_id, title, layout_type, layout_config_json, style_override_json
                        ) VALUES (?, ?, ?, ?, ?)
                    """,
                        (page_id, *params),
                    )
                    new_id = cursor.lastrowid
                    assert new_id is not None
                    if group.id is not None:
                        remap[group.id] = new_id
                    group = group.model_copy(update={"id": new_id})
                groups.append(group)

            self._delete_missing(
                conn,
                "SELECT id FROM link_groups WHERE page_id = ?",
                "DELETE FROM link_groups WHERE id = ?",
                page_id,
                {g.id for g in groups},
            )

            # 2. Links
            links: list[Link] = []
            for link in draft.links:
                if link.group_id in remap:
                    link = link.model_copy(update={"group_id": remap[link.group_id]})
                params = (
                    link.group_id,
                    link.title,
                    link.url,
                    link.sort_key,
                    int(link.is_active),
                    link.icon_asset_id,
                )
                cursor = conn.execute(
                    """
                    UPDATE links SET
                        group_id = ?, title = ?, url = ?, sort_key = ?,
                        is_active = ?, icon_asset_id = ?
                    WHERE id = ?
                      AND group_id IN (SELECT id FROM link_groups WHERE page_id = ?)
                """,
                    (*params, link.id, page_id),
                )
                if cursor.rowcount == 0:
                    cursor = conn.execute(
                        """
                        INSERT INTO links (
                            group_id, title, url, sort_key, is_active, icon_asset_id
                        ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                        params,
                    )
                    link = link.model_copy(update={"id": cursor.lastrowid})
                links.append(link)

            self._delete_missing(
                conn,
                """
                SELECT l.id FROM links l
                JOIN link_groups g ON g.id = l.group_id
                WHERE g.page_id = ?
            """,
                "DELETE FROM links WHERE id = ?",
                page_id,
                {link.id for link in links},
            )

            # 3. Blocks
            blocks: list[Block] = []
            for block in draft.blocks:
                if block.ref_id is not None and block.ref_id in remap:
                    block = block.model_copy(update={"ref_id": remap[block.ref_id]})
                params = (
                    block.type,
                    block.sort_key,
                    block.ref_id,
                    _dumps(block.content),
                    int(block.is_visible),
                )
                cursor = conn.execute(
                    """
                    UPDATE blocks SET
                        type = ?, sort_key = ?, ref_id = ?, content_json = ?, is_visible = ?
                    WHERE id = ? AND page_id = ?
                """,
                    (*params, block.id, page_id),
                )
                if cursor.rowcount == 0:
                    cursor = conn.execute(
                        """
                        INSERT INTO blocks (
                            page_id, type, sort_key, ref_id, content_json, is_visible
                        ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                        (page_id, *params),
                    )
                    block = block.model_copy(update={"id": cursor.lastrowid})
                blocks.append(block)

            self._delete_missing(
                conn,
                "SELECT id FROM blocks WHERE page_id = ?",
                "DELETE FROM blocks WHERE id = ?",
                page_id,
                {b.id for b in blocks},
            )

            conn.commit()
            logger.debug("Stored draft of page %s at version %s", page_id, page.version)
            return Draft(page=page, blocks=blocks, groups=groups, links=links)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _delete_missing(
        conn: sqlite3.Connection,
        select_sql: str,
        delete_sql: str,
        page_id: int,
        keep: set[int | None],
    ) -> None:
        existing = {r["id"] for r in conn.execute(select_sql, (page_id,)).fetchall()}
        conn.executemany(delete_sql, [(row_id,) for row_id in existing - keep])

    def _page_id_for(self, sql: str, item_id: int) -> int | None:
        conn = self._get_conn()
        try:
            row = conn.execute(sql, (item_id,)).fetchone()
            return row["page_id"] if row else None
        finally:
            conn.close()

    def page_id_for_block(self, block_id: int) -> int | None:
        return self._page_id_for("SELECT page_id FROM blocks WHERE id = ?", block_id)

    def page_id_for_group(self, group_id: int) -> int | None:
        return self._page_id_for("SELECT page_id FROM link_groups WHERE id = ?", group_id)

    def page_id_for_link(self, link_id: int) -> int | None:
        return self._page_id_for(
            """
            SELECT g.page_id FROM links l
            JOIN link_groups g ON g.id = l.group_id
            WHERE l.id = ?
        """,
            link_id,
        )


# --- Themes ---


class SQLiteThemeRepo(SQLiteRepoBase):
    """Theme presets and user custom themes."""

    @staticmethod
    def _row_to_preset(row: dict[str, Any]) -> ThemePreset:
        return ThemePreset(
            id=row["id"],
            key=row["key"],
            name=row["name"],
            tier=row["tier"],
            visibility=row["visibility"],
            is_official=bool(row["is_official"]),
            config=parse_json_object(row["config_json"], "config"),
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )

    @staticmethod
    def _row_to_custom(row: dict[str, Any]) -> ThemeCustom:
        compiled = row["compiled_config_json"]
        return ThemeCustom(
            id=row["id"],
            user_id=row["user_id"],
            based_on_preset_id=row["based_on_preset_id"],
            name=row["name"],
            patch=parse_json_object(row["patch_json"], "patch"),
            compiled_config=(
                parse_json_object(compiled, "compiled_config") if compiled is not None else None
            ),
            hash=row["hash"],
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )

    def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        conn = self._get_conn()
        try:
            row: dict[str, Any] | None = conn.execute(sql, params).fetchone()
            return row
        finally:
            conn.close()

    def list_presets(self, tier: ThemeTier | None = None) -> list[ThemePreset]:
        sql = "SELECT * FROM theme_presets WHERE visibility = 'public'"
        params: tuple[Any, ...] = ()
        if tier is not None:
            sql += " AND tier = ?"
            params = (tier,)
        sql += " ORDER BY name"

        conn = self._get_conn()
        try:
            return [self._row_to_preset(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def get_preset_by_key(self, key: str) -> ThemePreset | None:
        row = self._fetch_one("SELECT * FROM theme_presets WHERE key = ?", (key,))
        return self._row_to_preset(row) if row else None

    def get_preset_by_id(self, preset_id: int) -> ThemePreset | None:
        row = self._fetch_one("SELECT * FROM theme_presets WHERE id = ?", (preset_id,))
        return self._row_to_preset(row) if row else None

    def save_preset(self, preset: ThemePreset) -> ThemePreset:
        """Insert or update by key."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO theme_presets (
                    key, name, tier, visibility, is_official, config_json,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    name=excluded.name,
                    tier=excluded.tier,
                    visibility=excluded.visibility,
                    is_official=excluded.is_official,
                    config_json=excluded.config_json,
                    updated_at=excluded.updated_at
            """,
                (
                    preset.key,
                    preset.name,
                    preset.tier,
                    preset.visibility,
                    int(preset.is_official),
                    _dumps(preset.config),
                    preset.created_at.isoformat(),
                    preset.updated_at.isoformat(),
                ),
            )
            row = conn.execute(
                "SELECT id FROM theme_presets WHERE key = ?", (preset.key,)
            ).fetchone()
            conn.commit()
            return preset.model_copy(update={"id": row["id"]})
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_custom_by_id(self, custom_id: int) -> ThemeCustom | None:
        row = self._fetch_one("SELECT * FROM theme_customs WHERE id = ?", (custom_id,))
        return self._row_to_custom(row) if row else None

    def get_custom_by_hash(self, user_id: int, theme_hash: str) -> ThemeCustom | None:
        row = self._fetch_one(
            "SELECT * FROM theme_customs WHERE user_id = ? AND hash = ? ORDER BY id LIMIT 1",
            (user_id, theme_hash),
        )
        return self._row_to_custom(row) if row else None

    def get_latest_custom_for_user(self, user_id: int) -> ThemeCustom | None:
        row = self._fetch_one(
            """
            SELECT * FROM theme_customs WHERE user_id = ?
            ORDER BY updated_at DESC, id DESC LIMIT 1
        """,
            (user_id,),
        )
        return self._row_to_custom(row) if row else None

    def save_custom(self, custom: ThemeCustom) -> ThemeCustom:
        params = (
            custom.user_id,
            custom.based_on_preset_id,
            custom.name,
            _dumps(custom.patch),
            _dumps(custom.compiled_config) if custom.compiled_config is not None else None,
            custom.hash,
            custom.created_at.isoformat(),
            custom.updated_at.isoformat(),
        )
        conn = self._get_conn()
        try:
            if custom.id is None:
                cursor = conn.execute(
                    """
                    INSERT INTO theme_customs (
                        user_id, based_on_preset_id, name, patch_json,
                        compiled_config_json, hash, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    params,
                )
                custom = custom.model_copy(update={"id": cursor.lastrowid})
            else:
                conn.execute(
                    """
                    UPDATE theme_customs SET
                        user_id = ?, based_on_preset_id = ?, name = ?, patch_json = ?,
                        compiled_config_json = ?, hash = ?, created_at = ?, updated_at = ?
                    WHERE id = ?
                """,
                    (*params, custom.id),
                )
            conn.commit()
            return custom
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete_custom(self, custom_id: int) -> None:
        """Delete a custom theme; pages referencing it fall back to their preset."""
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM theme_customs WHERE id = ?", (custom_id,))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# --- Publish cache ---


class SQLitePublishCacheRepo(SQLiteRepoBase):
    """One compiled artifact row per page."""

    def upsert_publish_cache(self, entry: PublishCacheEntry) -> PublishCacheEntry:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO publish_cache (
                    page_id, compiled_json, etag, draft_version, published_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(page_id) DO UPDATE SET
                    compiled_json=excluded.compiled_json,
                    etag=excluded.etag,
                    draft_version=excluded.draft_version,
                    published_at=excluded.published_at,
                    updated_at=excluded.updated_at
            """,
                (
                    entry.page_id,
                    entry.compiled_json,
                    entry.etag,
                    entry.draft_version,
                    entry.published_at.isoformat(),
                    entry.updated_at.isoformat(),
                ),
            )
            conn.commit()
            return entry
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_publish_cache(self, page_id: int) -> PublishCacheEntry | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM publish_cache WHERE page_id = ?", (page_id,)
            ).fetchone()
            if not row:
                return None
            return PublishCacheEntry(
                page_id=row["page_id"],
                compiled_json=bytes(row["compiled_json"]),
                etag=row["etag"],
                draft_version=row["draft_version"],
                published_at=_parse_dt(row["published_at"]),
                updated_at=_parse_dt(row["updated_at"]),
            )
        finally:
            conn.close()

    def delete_publish_cache(self, page_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM publish_cache WHERE page_id = ?", (page_id,))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
