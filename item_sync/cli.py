"""
Item Sync — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute (DB init, fetch, import, query...).
  5. Report the result to stdout (query results as JSON).

Install and run::

    pip install -e .
    item-sync --help
    item-sync init-db
    item-sync fetch-items --category combat --page 1 --per-page 50
    item-sync import-items data/raw/items.json
    item-sync query-by-stats --stat-type core --min-value 40
    item-sync serve-admin
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="item-sync",
    help="Game item sync — fetch, cache, reconcile and query item data.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from item_sync.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    from item_sync.utils.logging import configure_logging
    configure_logging(config.logging)


@contextmanager
def _open_db(config, db_path: Optional[str]):
    """Open a connection to the configured (or overridden) database.

    The schema is applied first (idempotent) so every command works on a
    fresh database file.
    """
    from item_sync.db.connection import get_connection
    from item_sync.db.schema import apply_schema

    with get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        yield conn


def _echo_items(items) -> None:
    typer.echo(json.dumps([i.model_dump(mode="json") for i in items], indent=2))


def _page_or_exit(config, offset: int, limit: Optional[int]):
    from pydantic import ValidationError

    from item_sync.models.query import Page

    try:
        return Page(offset=offset, limit=config.query.default_limit if limit is None else limit)
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid pagination: {exc}", err=True)
        raise typer.Exit(code=1)


_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")
_DB_OPTION = typer.Option(None, "--db-path", help="Override DB path from config.")


# ── Setup commands ────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Initialize the SQLite database and apply the schema.

    Safe to run multiple times; all DDL uses IF NOT EXISTS.
    """
    from item_sync.db.schema import ALL_TABLE_NAMES

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo(f"Initializing database at: {db_path or config.database.db_path}")
    with _open_db(config, db_path):
        pass

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPTION,
    show_full: bool = typer.Option(False, "--full", help="Print the full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values."""
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:   {config.database.db_path}")
    typer.echo(f"  API endpoint:    {config.api.base_url}{config.api.items_endpoint}")
    typer.echo(f"  Cache TTL:       {config.api.cache_ttl_seconds}s")
    typer.echo(f"  Default limit:   {config.query.default_limit}")
    typer.echo(f"  Log level:       {config.logging.level}")
    typer.echo(f"  Debug mode:      {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("")
    typer.echo("[OK] Config valid.")


# ── Sync commands ─────────────────────────────────────────────────────────────

@app.command("fetch-items")
def fetch_items(
    category: Optional[str] = typer.Option(None, "--category"),
    core_stats: Optional[str] = typer.Option(None, "--core-stats"),
    item_type: Optional[str] = typer.Option(None, "--item-type"),
    learnable: Optional[bool] = typer.Option(None, "--learnable/--not-learnable"),
    min_level: Optional[int] = typer.Option(None, "--min-level"),
    page: Optional[int] = typer.Option(None, "--page"),
    per_page: Optional[int] = typer.Option(None, "--per-page"),
    primary_stats: Optional[str] = typer.Option(None, "--primary-stats"),
    profession: Optional[str] = typer.Option(None, "--profession"),
    stats: Optional[str] = typer.Option(None, "--stats"),
    sub_category: Optional[str] = typer.Option(None, "--sub-category"),
    sub_type: Optional[str] = typer.Option(None, "--sub-type"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the cache lookup."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Fetch items from the external API (cache-aware) and reconcile them."""
    from item_sync.errors import UpstreamFetchError
    from item_sync.models.query import FetchParams
    from item_sync.pipeline.fetch import FetchItemsStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    params = FetchParams(
        category=category,
        core_stats=core_stats,
        item_type=item_type,
        learnable=learnable,
        min_level=min_level,
        page=page,
        per_page=per_page,
        primary_stats=primary_stats,
        profession=profession,
        stats=stats,
        sub_category=sub_category,
        sub_type=sub_type,
    )

    try:
        run = FetchItemsStage(config, db_path=db_path).run(params=params, use_cache=not no_cache)
    except UpstreamFetchError as exc:
        typer.echo(f"[ERROR] Upstream fetch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    source = "cache" if run.from_cache else "API"
    typer.echo(f"[OK] Reconciled {run.rows_processed} item(s) from {source}. run={run.run_slug}")


@app.command("import-items")
def import_items(
    source_file: str = typer.Argument(..., help="JSON file: array of items or {items: [...]}."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Reconcile items from a saved API payload."""
    from item_sync.pipeline.import_items import ImportItemsStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(source_file)
    if not path.exists():
        typer.echo(f"[ERROR] File not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        run = ImportItemsStage(config, db_path=db_path).run(source_path=path)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] {path} is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"[OK] Reconciled {run.rows_processed} item(s) from {path}.")


@app.command("purge-cache")
def purge_cache(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Delete expired API cache entries."""
    from item_sync.db.repositories.cache_repo import ApiCacheRepository
    from item_sync.sync.cache import ResponseCache

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        cache = ResponseCache(
            ApiCacheRepository(conn),
            default_ttl=timedelta(seconds=config.api.cache_ttl_seconds),
        )
        removed = cache.purge_expired()

    typer.echo(f"[OK] Removed {removed} expired cache entr{'y' if removed == 1 else 'ies'}.")


# ── Item commands ─────────────────────────────────────────────────────────────

@app.command("seed-sample")
def seed_sample(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Reconcile the built-in sample item (idempotent by external id)."""
    from item_sync.db.repositories.item_repo import ItemRepository
    from item_sync.sync.normalizer import SAMPLE_RAW_ITEM
    from item_sync.sync.reconciler import SyncReconciler

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        ids = SyncReconciler(ItemRepository(conn)).reconcile([SAMPLE_RAW_ITEM])

    typer.echo(f"[OK] Sample item stored as item_id={ids[0]}.")


@app.command("show-item")
def show_item(
    item_id: int = typer.Argument(...),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print one item as JSON."""
    from item_sync.db.repositories.item_repo import ItemRepository
    from item_sync.errors import ItemNotFoundError
    from item_sync.sync.catalog import ItemCatalog

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        try:
            item = ItemCatalog(ItemRepository(conn)).get_item(item_id)
        except ItemNotFoundError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)

    typer.echo(json.dumps(item.model_dump(mode="json"), indent=2))


@app.command("delete-item")
def delete_item(
    item_id: int = typer.Argument(...),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Delete one item."""
    from item_sync.db.repositories.item_repo import ItemRepository
    from item_sync.errors import ItemNotFoundError
    from item_sync.sync.catalog import ItemCatalog

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        try:
            ItemCatalog(ItemRepository(conn)).delete_item(item_id)
        except ItemNotFoundError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)

    typer.echo(f"[OK] Deleted item {item_id}.")


# ── Query commands ────────────────────────────────────────────────────────────

@app.command("query-items")
def query_items(
    category: Optional[str] = typer.Option(None, "--category"),
    item_type: Optional[str] = typer.Option(None, "--item-type"),
    learnable: Optional[bool] = typer.Option(None, "--learnable/--not-learnable"),
    min_level: Optional[int] = typer.Option(None, "--min-level"),
    sub_category: Optional[str] = typer.Option(None, "--sub-category"),
    sub_type: Optional[str] = typer.Option(None, "--sub-type"),
    offset: int = typer.Option(0, "--offset"),
    limit: Optional[int] = typer.Option(None, "--limit"),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Query stored items by flat attributes."""
    from item_sync.db.repositories.item_repo import ItemRepository
    from item_sync.models.query import ItemFilter
    from item_sync.sync.query_engine import ItemQueryEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    page = _page_or_exit(config, offset, limit)

    flt = ItemFilter(
        category=category,
        item_type=item_type,
        learnable=learnable,
        min_level=min_level,
        sub_category=sub_category,
        sub_type=sub_type,
    )
    with _open_db(config, db_path) as conn:
        engine = ItemQueryEngine(ItemRepository(conn), max_limit=config.query.max_limit)
        _echo_items(engine.query_items(flt, page))


@app.command("query-by-stats")
def query_by_stats(
    stat_name: Optional[str] = typer.Option(None, "--stat-name"),
    stat_type: Optional[str] = typer.Option(None, "--stat-type", help="core | primary | general"),
    min_value: Optional[float] = typer.Option(None, "--min-value"),
    category: Optional[str] = typer.Option(None, "--category"),
    item_type: Optional[str] = typer.Option(None, "--item-type"),
    offset: int = typer.Option(0, "--offset"),
    limit: Optional[int] = typer.Option(None, "--limit"),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Query items having one stat that satisfies every stat filter."""
    from pydantic import ValidationError

    from item_sync.db.repositories.item_repo import ItemRepository
    from item_sync.models.query import StatFilter
    from item_sync.sync.query_engine import ItemQueryEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    page = _page_or_exit(config, offset, limit)

    try:
        flt = StatFilter(
            stat_name=stat_name,
            stat_type=stat_type,
            min_value=min_value,
            category=category,
            item_type=item_type,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid stat filter: {exc}", err=True)
        raise typer.Exit(code=1)

    with _open_db(config, db_path) as conn:
        engine = ItemQueryEngine(ItemRepository(conn), max_limit=config.query.max_limit)
        _echo_items(engine.query_by_stats(flt, page))


@app.command("query-by-profession")
def query_by_profession(
    profession: Optional[str] = typer.Option(None, "--profession"),
    max_level: Optional[int] = typer.Option(None, "--max-level"),
    category: Optional[str] = typer.Option(None, "--category"),
    item_type: Optional[str] = typer.Option(None, "--item-type"),
    offset: int = typer.Option(0, "--offset"),
    limit: Optional[int] = typer.Option(None, "--limit"),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Query items having one profession that satisfies every profession filter."""
    from item_sync.db.repositories.item_repo import ItemRepository
    from item_sync.models.query import ProfessionFilter
    from item_sync.sync.query_engine import ItemQueryEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    page = _page_or_exit(config, offset, limit)

    flt = ProfessionFilter(
        profession=profession,
        max_level=max_level,
        category=category,
        item_type=item_type,
    )
    with _open_db(config, db_path) as conn:
        engine = ItemQueryEngine(ItemRepository(conn), max_limit=config.query.max_limit)
        _echo_items(engine.query_by_profession(flt, page))


# ── Admin server ──────────────────────────────────────────────────────────────

@app.command("serve-admin")
def serve_admin(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Serve the admin health-check endpoint."""
    import uvicorn

    from item_sync.admin.app import create_app

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    bind_host = host or config.admin.host
    bind_port = port or config.admin.port
    typer.echo(f"Serving admin endpoint on http://{bind_host}:{bind_port}")
    uvicorn.run(create_app(config.admin), host=bind_host, port=bind_port, log_config=None)


if __name__ == "__main__":
    app()
