import argparse
import json
import logging
import os
import sys
from pathlib import Path

from linkbio.adapters.sqlite.migrator import SQLiteMigrator
from linkbio.components.publish import GetPublishedInput, PreviewInput, PublishNowInput
from linkbio.context import ServiceContext
from linkbio.rules.loader import RULES_PATH_ENV, load_rules
from linkbio.rules.models import Rules

logger = logging.getLogger("cli")


def resolve_db_path(rules: Rules, override: str | None = None) -> str:
    """Database file: --db, else <$data_dir_env>/<db_filename>, else ./<db_filename>."""
    if override:
        return override
    data_dir = os.environ.get(rules.ops.data_dir_env, ".")
    return str(Path(data_dir) / rules.ops.db_filename)


def get_context(rules: Rules, db_path: str) -> ServiceContext:
    SQLiteMigrator(db_path).run_migrations()
    return ServiceContext.create(db_path, rules)


def handle_migrate(rules: Rules, db_path: str, args: argparse.Namespace) -> int:
    applied = SQLiteMigrator(db_path).run_migrations()
    print(f"Applied {len(applied)} migrations to {db_path}.")
    return 0


def handle_seed_presets(ctx: ServiceContext, args: argparse.Namespace) -> int:
    count = ctx.seed_presets()
    print(f"Seeded {count} theme presets.")
    return 0


def handle_create_page(ctx: ServiceContext, args: argparse.Namespace) -> int:
    page = ctx.editor_service.create_page(args.user, title=args.title, preset_key=args.preset)
    print(f"Created page {page.id}.")
    return 0


def handle_list_pages(ctx: ServiceContext, args: argparse.Namespace) -> int:
    for page in ctx.editor_service.list_pages(args.user):
        print(f"{page.id}\t{page.status}\tv{page.version}\t{page.title or ''}")
    return 0


def handle_delete_page(ctx: ServiceContext, args: argparse.Namespace) -> int:
    deleted, errors = ctx.editor_service.delete_page(args.user, args.page_id)
    if not deleted:
        for error in errors:
            logger.error("%s: %s", error.code, error.message)
        return 1
    print(f"Deleted page {args.page_id}.")
    return 0


def handle_publish(ctx: ServiceContext, args: argparse.Namespace) -> int:
    result = ctx.publish_component.run(PublishNowInput(user_id=args.user, page_id=args.page_id))
    if not result.success:
        for error in result.errors:
            logger.error("%s: %s", error.code, error.message)
        return 1
    print(f"Published page {args.page_id} (etag {result.etag}).")
    return 0


def handle_show(ctx: ServiceContext, args: argparse.Namespace) -> int:
    if args.preview:
        preview = ctx.publish_component.run(PreviewInput(page_id=args.page_id))
        if not preview.success:
            for error in preview.errors:
                logger.error("%s: %s", error.code, error.message)
            return 1
        print(json.dumps(preview.document, ensure_ascii=False, indent=2))
        return 0

    result = ctx.publish_component.run(GetPublishedInput(page_id=args.page_id))
    if not result.success or result.compiled_json is None:
        for error in result.errors:
            logger.error("%s: %s", error.code, error.message)
        return 1
    print(result.compiled_json.decode("utf-8"))
    return 0


def handle_etag(ctx: ServiceContext, args: argparse.Namespace) -> int:
    result = ctx.publish_component.run(GetPublishedInput(page_id=args.page_id))
    if not result.success:
        for error in result.errors:
            logger.error("%s: %s", error.code, error.message)
        return 1
    print(result.etag)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Link-in-bio page publisher")
    parser.add_argument(
        "--rules", help=f"Path to rules.yaml (default: ${RULES_PATH_ENV} or ./rules.yaml)"
    )
    parser.add_argument("--db", help="SQLite database path (overrides the rules' data dir)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # seed-presets
    subparsers.add_parser("seed-presets", help="Upsert theme presets from the rules file")

    # create-page
    create_parser = subparsers.add_parser("create-page", help="Create an empty draft page")
    create_parser.add_argument("--user", type=int, required=True, help="Owner user id")
    create_parser.add_argument("--title", help="Page title")
    create_parser.add_argument("--preset", help="Theme preset key")

    # list-pages
    list_parser = subparsers.add_parser("list-pages", help="List the pages of a user")
    list_parser.add_argument("--user", type=int, required=True, help="Owner user id")

    # delete-page
    delete_parser = subparsers.add_parser(
        "delete-page", help="Delete a page and its published artifact"
    )
    delete_parser.add_argument("page_id", type=int)
    delete_parser.add_argument("--user", type=int, required=True, help="Acting user id")

    # publish
    publish_parser = subparsers.add_parser("publish", help="Compile and publish a page")
    publish_parser.add_argument("page_id", type=int)
    publish_parser.add_argument("--user", type=int, required=True, help="Acting user id")

    # show
    show_parser = subparsers.add_parser("show", help="Print the published JSON of a page")
    show_parser.add_argument("page_id", type=int)
    show_parser.add_argument(
        "--preview", action="store_true", help="Compile the current draft instead"
    )

    # etag
    etag_parser = subparsers.add_parser("etag", help="Print the published ETag of a page")
    etag_parser.add_argument("page_id", type=int)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        rules = load_rules(Path(args.rules) if args.rules else None)
    except (FileNotFoundError, ValueError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("%s", e)
        return 1

    logging.basicConfig(level=rules.ops.log_level.upper())
    db_path = resolve_db_path(rules, args.db)

    if args.command == "migrate":
        return handle_migrate(rules, db_path, args)

    ctx = get_context(rules, db_path)
    if args.command == "seed-presets":
        return handle_seed_presets(ctx, args)
    if args.command == "create-page":
        return handle_create_page(ctx, args)
    if args.command == "list-pages":
        return handle_list_pages(ctx, args)
    if args.command == "delete-page":
        return handle_delete_page(ctx, args)
    if args.command == "publish":
        return handle_publish(ctx, args)
    if args.command == "show":
        return handle_show(ctx, args)
    if args.command == "etag":
        return handle_etag(ctx, args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
