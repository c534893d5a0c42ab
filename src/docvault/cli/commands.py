"""CLI command implementations"""

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

import typer
from sqlmodel import SQLModel

from docvault.config import Settings, load_config
from docvault.core.events import EventBus, log_transport
from docvault.core.export import Exporter
from docvault.core.indexer import SqlIndexer
from docvault.core.service import DocumentService, SaveRequest
from docvault.crud.assets import VaultAssetStore
from docvault.crud.database import init_db, make_engine
from docvault.crud.documents import DocumentStore
from docvault.crud.projects import StoreProjectCache
from docvault.crud.vault import FileManager, Vault
from docvault.exceptions import DocVaultError
from docvault.logging_config import configure_logging


@dataclass
class AppContext:
    settings: Settings
    vault: Vault
    store: DocumentStore
    indexer: SqlIndexer
    service: DocumentService
    exporter: Exporter


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _context(overrides: dict = None) -> AppContext:
    """Wire vault, store, indexer, events and service from settings."""
    settings = _settings(overrides)
    configure_logging(settings.log_level)
    engine = make_engine(settings.db_url)
    init_db(engine)
    try:
        vault = Vault(settings.vault_dir)
    except (ValueError, OSError) as e:
        _fail(f"Cannot open vault at {settings.vault_dir}", e)

    store = DocumentStore(engine)
    file_manager = FileManager(vault)
    indexer = SqlIndexer(store, file_manager)
    bus = EventBus()
    bus.connect(log_transport)
    service = DocumentService(store, vault, indexer, StoreProjectCache(vault), bus)
    exporter = Exporter(file_manager, VaultAssetStore(vault))
    return AppContext(settings, vault, store, indexer, service, exporter)


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize the vault directory and database schema. Use --reset to clear the index."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        SQLModel.metadata.drop_all(engine)
        typer.echo("Existing index cleared.")
    init_db(engine)
    try:
        vault = Vault(settings.vault_dir)
    except (ValueError, OSError) as e:
        _fail(f"Cannot create vault at {settings.vault_dir}", e)
    typer.echo(f"Vault initialized at: {vault.root}")
    typer.echo(f"Database initialized at: {settings.db_url}")


def new_cmd(
    project: Annotated[str, typer.Argument(help="Project alias, e.g. @notes")],
    title: Annotated[str, typer.Argument(help="Document title")],
    tags: Annotated[Optional[list[str]], typer.Option("--tag", help="Tag to attach (repeatable)")] = None,
    ):
    """Create an empty document in a project."""
    ctx = _context()
    try:
        path = ctx.service.save(SaveRequest(project_alias=project, title=title, tags=tags or []))
    except DocVaultError as e:
        _fail("Save failed", e)
    typer.echo(path)


def show_cmd(
    path: Annotated[str, typer.Argument(help="Vault-relative document path")],
    ):
    """Print a document's index metadata."""
    ctx = _context()
    try:
        result = ctx.service.get(path)
    except DocVaultError as e:
        _fail("Show failed", e)
    doc = result.document
    typer.echo(f"path:     {doc.path}")
    typer.echo(f"project:  {doc.project_alias}")
    typer.echo(f"title:    {doc.title}")
    typer.echo(f"tags:     {', '.join(result.tags)}")
    typer.echo(f"blocks:   {len(result.file.blocks)}")
    typer.echo(f"archived: {'yes' if doc.is_deleted else 'no'}")


def list_cmd(
    project: Annotated[str, typer.Argument(help="Project alias")],
    archived: Annotated[bool, typer.Option("--archived", help="Include archived documents")] = False,
    limit: Annotated[Optional[int], typer.Option("--limit", help="Page size")] = None,
    offset: Annotated[int, typer.Option("--offset", help="Rows to skip")] = 0,
    ):
    """List documents of a project, newest first."""
    ctx = _context({"list_limit": limit})
    try:
        docs = ctx.service.list_by_project(project, archived, ctx.settings.list_limit, offset)
    except DocVaultError as e:
        _fail("List failed", e)
    if not docs:
        typer.echo(f"No documents found in {project}.")
        raise typer.Exit(1)
    for doc in docs:
        marker = " (archived)" if doc.is_deleted else ""
        typer.echo(f"{doc.path}  {doc.title}{marker}")


def delete_cmd(
    path: Annotated[str, typer.Argument(help="Vault-relative document path")],
    hard: Annotated[bool, typer.Option("--hard", help="Remove the file and index row permanently")] = False,
    ):
    """Archive a document, or delete it permanently with --hard."""
    ctx = _context()
    try:
        if hard:
            ctx.service.hard_delete(path)
        else:
            ctx.service.soft_delete(path)
    except DocVaultError as e:
        _fail("Delete failed", e)
    typer.echo(f"{'Deleted' if hard else 'Archived'}: {path}")


def restore_cmd(
    path: Annotated[str, typer.Argument(help="Vault-relative document path")],
    ):
    """Restore an archived document."""
    ctx = _context()
    try:
        ctx.service.restore(path)
    except DocVaultError as e:
        _fail("Restore failed", e)
    typer.echo(f"Restored: {path}")


def purge_cmd(
    project: Annotated[str, typer.Argument(help="Project alias")],
    ):
    """Permanently delete every document of a project, archived ones included."""
    ctx = _context()
    try:
        count = ctx.service.hard_delete_by_project(project)
    except DocVaultError as e:
        _fail("Purge failed", e)
    typer.echo(f"Deleted {count} document(s) from {project}")


def reindex_cmd():
    """Rebuild index rows, tags and search content from the vault files."""
    ctx = _context()
    count = ctx.indexer.index_vault()
    typer.echo(f"Indexed {count} document(s)")


def export_cmd(
    path: Annotated[str, typer.Argument(help="Vault-relative document path")],
    out: Annotated[str, typer.Argument(help="Output markdown file")],
    ):
    """Export one document to markdown, copying its assets."""
    ctx = _context()
    try:
        written = ctx.exporter.export_document(path, Path(out))
    except DocVaultError as e:
        _fail("Export failed", e)
    typer.echo(f"  {path} -> {written}")


def export_project_cmd(
    project: Annotated[str, typer.Argument(help="Project alias")],
    out_dir: Annotated[Optional[str], typer.Argument(help="Output directory")] = None,
    ):
    """Export every document of a project to markdown."""
    ctx = _context({"export_dir": out_dir})
    output_dir = Path(ctx.settings.export_dir)
    try:
        written = ctx.exporter.export_project(project, output_dir)
    except DocVaultError as e:
        _fail("Export failed", e)
    for p in written:
        typer.echo(f"  {p}")
    typer.echo(f"Exported {len(written)} document(s) to {output_dir}/")
