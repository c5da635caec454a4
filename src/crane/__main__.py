"""CLI entry point for crane."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
import httpx

from .adapters.citation import HtmlCitationAdapter
from .adapters.http import HttpFetcher, create_http_client
from .adapters.metadata import UnixrefAdapter
from .adapters.registry import DoiRegistryAdapter
from .adapters.storage import FilesystemAdapter
from .config import Settings, load_settings
from .domain.catalog import Catalog
from .domain.errors import CraneError
from .domain.models import Document
from .domain.naming import sanitize_category
from .domain.services import AcquisitionService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Request lines from httpx would drown out our own logging
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_catalog(settings: Settings) -> Catalog:
    """Build the catalog and load it from disk."""
    catalog = Catalog(settings.paths.root, FilesystemAdapter(), UnixrefAdapter())
    catalog.populate()
    return catalog


def create_acquisition_service(
    settings: Settings, catalog: Catalog, client: httpx.Client
) -> AcquisitionService:
    """Create an AcquisitionService with configured adapters."""
    return AcquisitionService(
        catalog=catalog,
        fetcher=HttpFetcher(client, settings.http.max_size),
        registry=DoiRegistryAdapter(client, settings.registry.url),
        citations=HtmlCitationAdapter(),
        sidecars=UnixrefAdapter(),
        mirror_url=settings.mirror.url,
        tmp_dir=settings.paths.tmp,
        mirror_user_agent=settings.http.mirror_user_agent,
    )


def format_document(key: str, doc: Document) -> str:
    """One listing line: key, then title and authors when known."""
    meta = doc.metadata
    if not meta.title:
        return key
    authors = ", ".join(c.last_name for c in meta.contributors if c.last_name)
    details = meta.title
    if authors:
        details += f" - {authors}"
    if meta.pub_year:
        details += f" ({meta.pub_year})"
    return f"{key}  {details}"


def category_argument(value: str) -> str:
    category = sanitize_category(value)
    if not category:
        raise click.BadParameter(f"invalid category {value!r}")
    return category


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """Crane - catalog and download papers."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


def _load(ctx: click.Context) -> tuple[Settings, Catalog]:
    settings = load_settings(ctx.obj["config_path"])
    try:
        catalog = create_catalog(settings)
    except CraneError as e:
        # An inconsistent index is worse than none at all
        click.echo(f"Error: failed to load catalog: {e}", err=True)
        sys.exit(1)
    return settings, catalog


def _fail(e: CraneError) -> NoReturn:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


@cli.command()
@click.pass_context
def categories(ctx: click.Context) -> None:
    """List categories."""
    _, catalog = _load(ctx)
    for category in catalog.categories():
        click.echo(f"{category} ({len(catalog.documents(category))})")


@cli.command("ls")
@click.argument("category", required=False)
@click.pass_context
def list_documents(ctx: click.Context, category: str | None) -> None:
    """List papers, optionally limited to one category."""
    _, catalog = _load(ctx)
    names = [category_argument(category)] if category else catalog.categories()
    try:
        for name in names:
            for key, doc in sorted(catalog.documents(name).items()):
                click.echo(format_document(key, doc))
    except CraneError as e:
        _fail(e)


@cli.command()
@click.argument("key")
@click.pass_context
def show(ctx: click.Context, key: str) -> None:
    """Show a paper's metadata and location."""
    _, catalog = _load(ctx)
    try:
        doc = catalog.get(key)
        path = catalog.resolve_path(key)
    except CraneError as e:
        _fail(e)

    meta = doc.metadata
    click.echo(f"path: {path}")
    if doc.sidecar_path:
        click.echo(f"sidecar: {doc.sidecar_path}")
    for label, value in [
        ("title", meta.title),
        ("journal", meta.journal),
        ("issn", meta.issn),
        ("year", meta.pub_year),
        ("month", meta.pub_month),
        ("pages", "-".join(p for p in (meta.first_page, meta.last_page) if p)),
        ("identifier", meta.identifier),
        ("resource", meta.resource),
    ]:
        if value:
            click.echo(f"{label}: {value}")
    for contributor in meta.contributors:
        click.echo(
            f"{contributor.role or 'contributor'}: "
            f"{contributor.first_name} {contributor.last_name}".rstrip()
        )


@cli.command()
@click.argument("category")
@click.argument("source")
@click.pass_context
def add(ctx: click.Context, category: str, source: str) -> None:
    """Download a paper from a URL or identifier into CATEGORY."""
    settings, catalog = _load(ctx)
    with create_http_client(settings.http) as client:
        service = create_acquisition_service(settings, catalog, client)
        try:
            doc = service.acquire(category_argument(category), source)
        except CraneError as e:
            _fail(e)

    click.echo(f"{doc.display_title!r} downloaded successfully")
    click.echo(f"output: {doc.path}")
    if doc.sidecar_path:
        click.echo(f"sidecar: {doc.sidecar_path}")


@cli.command()
@click.argument("category")
@click.pass_context
def mkcat(ctx: click.Context, category: str) -> None:
    """Create a category (and any missing parents)."""
    _, catalog = _load(ctx)
    name = category_argument(category)
    try:
        catalog.add_category(name)
    except CraneError as e:
        _fail(e)
    click.echo(f"category {name!r} added successfully")


@cli.command()
@click.argument("keys", nargs=-1, required=True)
@click.argument("dest")
@click.pass_context
def mv(ctx: click.Context, keys: tuple[str, ...], dest: str) -> None:
    """Move papers into category DEST."""
    _, catalog = _load(ctx)
    dest = category_argument(dest)
    try:
        for key in keys:
            catalog.move_paper(key, dest)
    except CraneError as e:
        _fail(e)
    click.echo("move successful")


@cli.command()
@click.argument("old")
@click.argument("new")
@click.pass_context
def rename(ctx: click.Context, old: str, new: str) -> None:
    """Rename category OLD (and its subcategories) to NEW."""
    _, catalog = _load(ctx)
    try:
        catalog.rename_category(category_argument(old), category_argument(new))
    except CraneError as e:
        _fail(e)
    click.echo("rename successful")


@cli.command()
@click.argument("keys", nargs=-1, required=True)
@click.pass_context
def rm(ctx: click.Context, keys: tuple[str, ...]) -> None:
    """Delete papers."""
    _, catalog = _load(ctx)
    try:
        for key in keys:
            catalog.delete_paper(key)
    except CraneError as e:
        _fail(e)
    click.echo("delete successful")


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def rmcat(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Delete categories, their subcategories and all papers in them."""
    _, catalog = _load(ctx)
    try:
        for name in names:
            catalog.delete_category(category_argument(name))
    except CraneError as e:
        _fail(e)
    click.echo("delete successful")


if __name__ == "__main__":
    cli()
