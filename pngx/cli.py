"""CLI entry point for pngx, a command-line client for Paperless-ngx.

Commands:
    pngx auth login|logout|status       Manage saved credentials
    pngx documents list|get|content|download|open
    pngx search QUERY                   Full-text search
    pngx inbox                          Documents carrying an inbox tag
    pngx tags|correspondents|document-types
    pngx version                        Client and server versions

Errors from the API client exit with the code of their kind (see
``pngx.errors``); configuration errors exit with 1.
"""

import logging
import os
import tempfile
from collections.abc import Callable
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import click

from pngx.config import CONFIG_FILE_PATH, ClientConfig, ConfigError, load_config
from pngx.credentials import TOKEN_KEY, read_credentials, remove_credentials, write_credentials
from pngx.errors import EXIT_GENERIC_FAILURE, ApiError, LocalIoError
from pngx.output import OutputFormat, format_details, print_all, print_results

if TYPE_CHECKING:
    from pngx.integrations.paperless import PaperlessClient
    from pngx.schemas.paperless import Document, DocumentVersion

logger = logging.getLogger("pngx")

DEFAULT_LIMIT = 25
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

F = TypeVar("F", bound=Callable[..., Any])


def _pngx_version() -> str:
    try:
        return package_version("pngx")
    except PackageNotFoundError:
        return "unknown"


class PngxGroup(click.Group):
    """Top-level group: command aliases and exit codes for client errors."""

    aliases = {"doc": "documents"}

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except ApiError as exc:
            logger.debug("Command failed with %s", exc.kind.value, exc_info=True)
            click.echo(f"Error: {exc}", err=True)
            ctx.exit(exc.exit_code)
        except ConfigError as exc:
            click.echo(f"Error: {exc}", err=True)
            ctx.exit(EXIT_GENERIC_FAILURE)


def _configure_logging(verbose: int) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")
    logger.setLevel(level)


# ------------------------------------------------------------------
# Global options
#
# Declared on the group and again on every command, so both
# `pngx -o json tags` and `pngx tags -o json` work. A value given after
# the command wins.
# ------------------------------------------------------------------


def _url_option(**kwargs: Any) -> Callable[[F], F]:
    return click.option("--url", default=None, help="Paperless-ngx server URL.", **kwargs)


def _token_option(**kwargs: Any) -> Callable[[F], F]:
    return click.option("--token", default=None, help="API authentication token.", **kwargs)


def _output_option(**kwargs: Any) -> Callable[[F], F]:
    return click.option(
        "--output",
        "-o",
        type=click.Choice([f.value for f in OutputFormat], case_sensitive=False),
        default=None,
        help="Output format (default: markdown, or PNGX_OUTPUT_FORMAT).",
        **kwargs,
    )


def _verbose_option(**kwargs: Any) -> Callable[[F], F]:
    return click.option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv).", **kwargs)


def _override_root(ctx: click.Context, param: click.Parameter, value: Any) -> None:
    """Store a command-level global option over the group-level value."""
    if value is None or (param.name == "verbose" and not value):
        return
    opts = ctx.find_root().obj
    if param.name == "output":
        value = OutputFormat(value.lower())
    elif param.name == "verbose":
        value = max(value, opts["verbose"])
        _configure_logging(value)
    opts[param.name] = value


def _connection_options(fn: F) -> F:
    for option in (_token_option, _url_option):
        fn = option(expose_value=False, callback=_override_root)(fn)
    return fn


def _output_options(fn: F) -> F:
    for option in (_verbose_option, _output_option):
        fn = option(expose_value=False, callback=_override_root)(fn)
    return fn


@click.group(cls=PngxGroup)
@_url_option()
@_token_option()
@_output_option()
@_verbose_option()
@click.version_option(_pngx_version(), prog_name="pngx")
@click.pass_context
def cli(ctx: click.Context, url: str | None, token: str | None, output: str | None, verbose: int) -> None:
    """Command-line client for Paperless-ngx.

    \b
    Getting started:
      pngx auth login              Save server URL and API token
      pngx auth status             Verify connection
      pngx search "invoice 2024"   Find documents matching a query
      pngx documents get 42 43     View document details
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj.update(
        url=url,
        token=token,
        output=OutputFormat(output.lower()) if output else None,
        verbose=verbose,
    )


# ------------------------------------------------------------------
# Shared helpers
# ------------------------------------------------------------------


def _load_client_config(ctx: click.Context) -> ClientConfig:
    opts = ctx.find_root().obj
    raw = load_config(opts["url"], opts["token"], config_path=CONFIG_FILE_PATH)
    return raw.validated()


def _open_client(config: ClientConfig) -> "PaperlessClient":
    from pngx.integrations.paperless import PaperlessClient

    return PaperlessClient(
        config.url,
        config.token.get_secret_value(),
        page_size=config.page_size,
        timeout=config.timeout,
    )


def _output_format(ctx: click.Context, config: ClientConfig) -> OutputFormat:
    return ctx.find_root().obj["output"] or config.output_format


def _limit_options(fn: F) -> F:
    fn = click.option("--all", "-a", "fetch_all", is_flag=True, help="Fetch all results.")(fn)
    fn = click.option(
        "--limit",
        "-n",
        type=click.IntRange(min=0),
        default=DEFAULT_LIMIT,
        show_default=True,
        help="Maximum number of results (0 for unlimited).",
    )(fn)
    return fn


def _resolve_limit(limit: int, fetch_all: bool) -> int | None:
    return None if fetch_all or limit == 0 else limit


_ids_argument = click.argument("ids", nargs=-1, required=True, type=click.IntRange(min=0))


def _list_resolved(
    ctx: click.Context,
    collect: Callable[["PaperlessClient"], tuple[list["Document"], int]],
    empty_message: str | None = None,
) -> None:
    """Collect documents, resolve their references and print them."""
    from pngx.resolver import NameResolver, ResolvedDocument, resolve_documents

    config = _load_client_config(ctx)
    with _open_client(config) as client:
        docs, total = collect(client)
        if not docs and empty_message:
            click.echo(empty_message, err=True)
            return
        names = NameResolver.fetch(client)
    print_results(_output_format(ctx, config), resolve_documents(docs, names), total, ResolvedDocument)


# ------------------------------------------------------------------
# pngx auth
# ------------------------------------------------------------------


@cli.group()
def auth() -> None:
    """Manage authentication."""


@auth.command()
@click.option("--url", "login_url", default=None, help="Server URL (skips the prompt).")
@click.option("--token", "login_token", default=None, help="API token (skips the prompt).")
@_output_options
def login(login_url: str | None, login_token: str | None) -> None:
    """Save server URL and API token."""
    if (login_url is None) != (login_token is None):
        raise click.UsageError(
            "both --url and --token are required for non-interactive login. "
            "Either provide both flags or omit both for interactive mode."
        )
    if login_url is None:
        login_url = click.prompt("Paperless NGX URL")
        login_token = click.prompt("API Token", hide_input=True)

    login_url, login_token = login_url.strip(), login_token.strip()
    if not login_url or not login_token:
        raise click.UsageError("URL and token must not be empty")

    try:
        path = write_credentials(CONFIG_FILE_PATH, login_url, login_token)
    except OSError as exc:
        raise click.ClickException(f"failed to write config file {CONFIG_FILE_PATH}: {exc}") from exc
    click.echo(f"Credentials saved to {path}")


@auth.command()
@_output_options
def logout() -> None:
    """Remove saved credentials."""
    if remove_credentials(CONFIG_FILE_PATH):
        click.echo(f"Logged out. Config removed from {CONFIG_FILE_PATH}")
    else:
        click.echo(f"No config file found at {CONFIG_FILE_PATH}")


@auth.command()
@_connection_options
@_output_options
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show current configuration and verify the connection."""
    if CONFIG_FILE_PATH.exists():
        click.echo(f"Config file: {CONFIG_FILE_PATH}")
        for key, value in read_credentials(CONFIG_FILE_PATH).items():
            click.echo(f"  {key} = {'***' if key == TOKEN_KEY else value}")
    else:
        click.echo("No config file. Run `pngx auth login` to set up.")

    try:
        config = _load_client_config(ctx)
    except ConfigError as exc:
        click.echo(f"Not configured: {exc}")
        return

    with _open_client(config) as client:
        settings = client.ui_settings()
    click.echo(f"Server:        {config.url}")
    click.echo(f"Logged in as:  {settings.user.display_name()}")
    click.echo(f"Server version: paperless-ngx {settings.settings.version}")


# ------------------------------------------------------------------
# pngx documents
# ------------------------------------------------------------------


@cli.group()
def documents() -> None:
    """List, view, and download documents."""


@documents.command("list")
@_limit_options
@_connection_options
@_output_options
@click.pass_context
def list_documents(ctx: click.Context, limit: int, fetch_all: bool) -> None:
    """List documents."""
    resolved_limit = _resolve_limit(limit, fetch_all)
    _list_resolved(ctx, lambda client: client.collect_documents(resolved_limit))


@documents.command()
@_ids_argument
@_connection_options
@_output_options
@click.pass_context
def get(ctx: click.Context, ids: tuple[int, ...]) -> None:
    """Show details of documents by ID."""
    from pngx.resolver import NameResolver, resolve_documents

    config = _load_client_config(ctx)
    with _open_client(config) as client:
        names = NameResolver.fetch(client)
        docs = [client.document(doc_id) for doc_id in ids]
    click.echo(format_details(_output_format(ctx, config), resolve_documents(docs, names)))


@documents.command()
@_ids_argument
@_connection_options
@_output_options
@click.pass_context
def content(ctx: click.Context, ids: tuple[int, ...]) -> None:
    """Print the extracted text of documents."""
    config = _load_client_config(ctx)
    with _open_client(config) as client:
        for i, doc_id in enumerate(ids):
            if len(ids) > 1:
                if i > 0:
                    click.echo()
                click.echo(f"--- Document {doc_id} ---", err=True)
            click.echo(client.document_content(doc_id))


def _default_download_path(doc: "Document") -> Path:
    """Basename of the original upload, or ``document-<id>``."""
    name = Path(doc.original_file_name).name if doc.original_file_name else ""
    if name in ("", ".", ".."):
        name = f"document-{doc.id}"
    return Path(name)


def _download_to(
    client: "PaperlessClient",
    doc_id: int,
    version: "DocumentVersion",
    path: Path,
) -> int:
    """Stream a document into a sibling temp file, then move it onto ``path``.

    ``path`` is only replaced once the whole body has arrived; on any failure
    the temp file is removed and an existing ``path`` is left untouched.
    """
    try:
        sink = tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f".{path.name}.", suffix=".part", delete=False
        )
    except OSError as exc:
        raise LocalIoError(f"failed to create file {path}: {exc}") from exc
    part = Path(sink.name)
    try:
        with sink:
            written = client.download_document(doc_id, version, sink)
        os.replace(part, path)
    except OSError as exc:
        raise LocalIoError(f"failed to write {path}: {exc}") from exc
    finally:
        part.unlink(missing_ok=True)
    return written


@documents.command()
@_ids_argument
@click.option("--original", is_flag=True, help="Download the original file instead of the archived version.")
@click.option(
    "--file",
    "--dest",
    "dest",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file path (only valid with a single ID).",
)
@_connection_options
@_output_options
@click.pass_context
def download(ctx: click.Context, ids: tuple[int, ...], original: bool, dest: Path | None) -> None:
    """Download document files."""
    from pngx.schemas.paperless import DocumentVersion

    if dest is not None and len(ids) > 1:
        raise click.UsageError("--file can only be used with a single document ID")
    version = DocumentVersion.ORIGINAL if original else DocumentVersion.ARCHIVED

    config = _load_client_config(ctx)
    with _open_client(config) as client:
        for doc_id in ids:
            doc = client.document(doc_id)
            path = dest or _default_download_path(doc)
            written = _download_to(client, doc_id, version, path)
            click.echo(f"Downloaded {written} bytes to {path}", err=True)


@documents.command("open")
@_ids_argument
@_connection_options
@_output_options
@click.pass_context
def open_documents(ctx: click.Context, ids: tuple[int, ...]) -> None:
    """Open documents in the Paperless-ngx web UI."""
    config = _load_client_config(ctx)
    with _open_client(config) as client:
        for doc_id in ids:
            url = client.get_document_url(doc_id)
            click.launch(url)
            click.echo(f"Opened {url}", err=True)


# ------------------------------------------------------------------
# pngx search / inbox
# ------------------------------------------------------------------


@cli.command()
@click.argument("query")
@_limit_options
@_connection_options
@_output_options
@click.pass_context
def search(ctx: click.Context, query: str, limit: int, fetch_all: bool) -> None:
    """Search documents."""
    resolved_limit = _resolve_limit(limit, fetch_all)
    _list_resolved(
        ctx,
        lambda client: client.collect_search(query, resolved_limit),
        empty_message=f"No documents found for query: {query}",
    )


@cli.command()
@_limit_options
@_connection_options
@_output_options
@click.pass_context
def inbox(ctx: click.Context, limit: int, fetch_all: bool) -> None:
    """List documents in the inbox."""
    resolved_limit = _resolve_limit(limit, fetch_all)
    _list_resolved(
        ctx,
        lambda client: client.collect_inbox_documents(resolved_limit),
        empty_message="Inbox is empty",
    )


# ------------------------------------------------------------------
# pngx tags / correspondents / document-types
# ------------------------------------------------------------------


@cli.command()
@_connection_options
@_output_options
@click.pass_context
def tags(ctx: click.Context) -> None:
    """List tags."""
    from pngx.schemas.paperless import Tag

    config = _load_client_config(ctx)
    with _open_client(config) as client:
        items, _ = client.collect_tags()
    print_all(_output_format(ctx, config), items, Tag)


@cli.command()
@_connection_options
@_output_options
@click.pass_context
def correspondents(ctx: click.Context) -> None:
    """List correspondents."""
    from pngx.schemas.paperless import Correspondent

    config = _load_client_config(ctx)
    with _open_client(config) as client:
        items, _ = client.collect_correspondents()
    print_all(_output_format(ctx, config), items, Correspondent)


@cli.command("document-types")
@_connection_options
@_output_options
@click.pass_context
def document_types(ctx: click.Context) -> None:
    """List document types."""
    from pngx.schemas.paperless import DocumentType

    config = _load_client_config(ctx)
    with _open_client(config) as client:
        items, _ = client.collect_document_types()
    print_all(_output_format(ctx, config), items, DocumentType)


# ------------------------------------------------------------------
# pngx version
# ------------------------------------------------------------------


@cli.command()
@_connection_options
@_output_options
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show client and server versions."""
    click.echo(f"pngx {_pngx_version()}")
    try:
        config = _load_client_config(ctx)
    except ConfigError:
        return
    with _open_client(config) as client:
        click.echo(f"paperless-ngx {client.server_version()}")
