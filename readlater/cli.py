"""Command line interface for readlater."""

import asyncio
import sys

import click

from readlater.config import get_config
from readlater.errors import NetworkError, RemoteError
from readlater.logging_config import logger, setup_logging
from readlater.runtime import ReadLaterRuntime
from readlater.server.app import run_server


def _run(coro):
    return asyncio.run(coro)


@click.group()
def cli() -> None:
    """Save pages to read later, with an offline cache."""
    setup_logging(get_config())


@cli.command()
@click.option(
    "--port",
    default=3001,
    help="Port to listen on for SSE or Streamable HTTP transport"
)
@click.option(
    "--host",
    default="127.0.0.1",
    help="Host to bind to (use 0.0.0.0 for Docker)"
)
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default="stdio",
    help="Transport type (stdio, sse, or streamable-http)"
)
def serve(port: int, host: str, transport: str) -> None:
    """Run the MCP server."""
    try:
        _run(run_server(transport, host=host, port=port))
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        sys.exit(1)


@cli.command()
@click.argument("url")
def save(url: str) -> None:
    """Save URL, queueing it if the server is unreachable."""

    async def _save():
        async with ReadLaterRuntime(get_config()) as runtime:
            return await runtime.coordinator.save_article(url)

    outcome = _run(_save())
    if outcome.saved:
        click.echo(f"Saved [{outcome.article.id}] {outcome.article.title or outcome.article.url}")
    elif outcome.queued:
        click.echo(f"Server unreachable, queued for later: {url}")
    else:
        click.echo(f"Failed: {outcome.error}", err=True)
        sys.exit(1)


@cli.command("list")
@click.option("--archived", is_flag=True, help="Show archived articles")
@click.option("--search", default="", help="Only articles whose title or excerpt contains TEXT")
@click.option("--tag", default="", help="Only articles tagged TAG")
@click.option("--refresh/--no-refresh", default=True, help="Refresh from the server first")
def list_command(archived: bool, search: str, tag: str, refresh: bool) -> None:
    """List cached articles."""

    async def _list():
        async with ReadLaterRuntime(get_config()) as runtime:
            if refresh and not search:
                if tag:
                    await runtime.coordinator.refresh(tag=tag)
                else:
                    await runtime.coordinator.refresh(archived=archived)
            articles = await runtime.list_view(archived, search, tag).current()
            return articles, runtime.coordinator.online

    articles, online = _run(_list())
    if not online:
        click.echo("(offline, showing cached articles)")
    for article in articles:
        click.echo(f"[{article.id}] {article.title or article.url}")
        click.echo(f"    {article.url}")


@cli.command()
def sync() -> None:
    """Send saves that were queued while offline."""

    async def _sync():
        async with ReadLaterRuntime(get_config()) as runtime:
            return await runtime.coordinator.sync_pending()

    report = _run(_sync())
    for article in report.replayed:
        click.echo(f"Saved [{article.id}] {article.url}")
    for entry in report.dead_lettered:
        click.echo(f"Gave up on {entry.url}: {entry.last_error}", err=True)
    if report.stopped_error:
        click.echo(f"Stopped: {report.stopped_error}", err=True)
    click.echo(f"{report.remaining} queued")


@cli.command("server-url")
@click.argument("url", required=False)
@click.option("--verify/--no-verify", default=True, help="Test the connection before switching")
def server_url(url: str, verify: bool) -> None:
    """Show or change the server URL."""

    async def _server_url():
        async with ReadLaterRuntime(get_config()) as runtime:
            if url:
                return await runtime.set_server_url(url, verify=verify)
            return runtime.settings.server_url

    try:
        click.echo(_run(_server_url()))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="URL")
    except (NetworkError, RemoteError) as e:
        click.echo(f"Cannot connect to server: {e}", err=True)
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
