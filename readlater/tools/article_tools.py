"""Read-later MCP tools.

This module provides MCP tools for saving, listing, reading and archiving
articles through the offline-aware sync layer.

NOTE: Never use Optional parameters in MCP tools - they break MCP clients.
Use empty string "" for optional strings and 0 for optional integers.
"""

import logging
from typing import Any, Callable, Dict, List

from mcp.server.fastmcp import Context

from readlater.errors import NetworkError, RemoteError
from readlater.models.schemas import Article
from readlater.runtime import ReadLaterRuntime

logger = logging.getLogger(__name__)


def _summary(article: Article) -> Dict[str, Any]:
    return {
        "id": article.id,
        "url": article.url,
        "title": article.title,
        "excerpt": article.excerpt,
        "author": article.author,
        "image": article.image,
        "archived": article.archived,
        "created_at": article.created_at,
        "read_at": article.read_at,
        "tags": article.tags,
    }


def build_article_tools(runtime: ReadLaterRuntime) -> List[Callable]:
    """Create the tool functions bound to a runtime.

    Args:
        runtime: Runtime owning the cache, queue and remote client

    Returns:
        List of async tool functions for registration
    """

    async def save_article(url: str, ctx: Context = None) -> Dict[str, Any]:
        """Save a web page to read later.

        If the server cannot be reached the URL is queued locally and sent
        automatically once the connection is back.

        Args:
            url: Address of the page to save
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool (true when saved or queued)
            - status: "saved", "queued" or "failed"
            - article: saved article (when saved)
            - pending: queue entry (when queued)
            - error: message when queued or failed
        """
        await runtime.open()
        outcome = await runtime.coordinator.save_article(url.strip())

        result: Dict[str, Any] = {
            "success": outcome.status.value != "failed",
            "status": outcome.status.value,
        }
        if outcome.article is not None:
            result["article"] = _summary(outcome.article)
        if outcome.pending is not None:
            result["pending"] = outcome.pending.to_dict()
            result["message"] = "Server unreachable, saved for later and will retry"
        if outcome.error:
            result["error"] = outcome.error
        return result

    async def list_articles(
        archived: bool = False,
        search: str = "",
        refresh: bool = True,
        tag: str = "",
        ctx: Context = None,
    ) -> Dict[str, Any]:
        """List saved articles from the local cache.

        Unread articles are listed by default. A non-empty search switches to
        a case-sensitive title/excerpt match and ignores the archived flag and
        tag. A non-empty tag lists only articles with that tag and ignores the
        archived flag.

        Args:
            archived: List archived articles instead of unread ones
            search: Text to look for in titles and excerpts (empty string for none)
            refresh: Refresh the cache from the server first (ignored while searching)
            tag: Only list articles with this tag (empty string for all)
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - count: number of articles
            - online: whether the server answered the last request
            - articles: list of article summaries, newest first
        """
        await runtime.open()
        if refresh and not search:
            if tag:
                await runtime.coordinator.refresh(tag=tag)
            else:
                await runtime.coordinator.refresh(archived=archived)

        articles = await runtime.list_view(
            archived_only=archived, search_query=search, tag=tag
        ).current()

        return {
            "success": True,
            "count": len(articles),
            "online": runtime.coordinator.online,
            "filters_applied": {
                "archived": archived,
                "search": search or None,
                "tag": tag or None,
            },
            "articles": [_summary(a) for a in articles],
        }

    async def get_article(article_id: int, ctx: Context = None) -> Dict[str, Any]:
        """Get an article with its full content.

        Falls back to the cached copy when the server is unreachable.

        Args:
            article_id: Article id (from list_articles)
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - article: full article including content (if found)
            - error: string if not found on the server or in the cache
        """
        await runtime.open()
        article = await runtime.coordinator.get_article_detail(article_id)

        if article is None:
            return {
                "success": False,
                "error": f"Article with id {article_id} not found",
            }

        return {"success": True, "article": article.to_dict()}

    async def archive_article(
        article_id: int,
        archived: bool = True,
        ctx: Context = None,
    ) -> Dict[str, Any]:
        """Archive an article, or move it back to the reading list.

        Args:
            article_id: Article id (from list_articles)
            archived: True to archive, False to unarchive
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - article: updated cached article (if cached)
            - error: string if the server refused or was unreachable
        """
        await runtime.open()
        result = await runtime.coordinator.archive_article(article_id, archived)

        if not result.success:
            return {"success": False, "error": result.error}

        return {
            "success": True,
            "article": _summary(result.article) if result.article else None,
        }

    async def mark_article_read(article_id: int, ctx: Context = None) -> Dict[str, Any]:
        """Mark an article as read.

        The server records the read time. Fails without changing anything
        locally when the server is unreachable.

        Args:
            article_id: Article id (from list_articles)
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - article: object with id, title, url, read_at (if cached)
            - error: string if the server refused or was unreachable
        """
        await runtime.open()
        result = await runtime.coordinator.mark_read(article_id)

        if not result.success:
            return {"success": False, "error": result.error}

        article = result.article
        return {
            "success": True,
            "article": {
                "id": article.id,
                "title": article.title,
                "url": article.url,
                "read_at": article.read_at,
            } if article else None,
        }

    async def delete_article(article_id: int, ctx: Context = None) -> Dict[str, Any]:
        """Delete an article from the server and the local cache.

        Args:
            article_id: Article id (from list_articles)
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - message: confirmation string if successful
            - error: string if the server refused or was unreachable
        """
        await runtime.open()
        result = await runtime.coordinator.delete_article(article_id)

        if not result.success:
            return {"success": False, "error": result.error}

        return {"success": True, "message": f"Deleted article {article_id}"}

    async def search_articles(
        query: str,
        limit: int = 20,
        ctx: Context = None,
    ) -> Dict[str, Any]:
        """Search saved articles on the server.

        Falls back to searching cached titles and excerpts when offline.

        Args:
            query: Search text
            limit: Maximum number of results (default: 20)
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - count: number of results
            - online: whether the server answered
            - articles: list of article summaries
        """
        if not query.strip():
            return {"success": False, "error": "Search query is required"}

        await runtime.open()
        articles = await runtime.coordinator.search(query.strip(), limit=limit)

        return {
            "success": True,
            "count": len(articles),
            "online": runtime.coordinator.online,
            "articles": [_summary(a) for a in articles],
        }

    async def refresh_articles(
        archived: bool = False,
        limit: int = 50,
        offset: int = 0,
        tag: str = "",
        ctx: Context = None,
    ) -> Dict[str, Any]:
        """Refresh one page of the local cache from the server.

        Args:
            archived: Refresh archived articles instead of unread ones
            limit: Page size (default: 50)
            offset: Page offset (default: 0)
            tag: Refresh only articles with this tag (overrides archived)
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool (false when the server could not be reached)
            - refreshed: number of articles stored
        """
        await runtime.open()
        if tag:
            stored = await runtime.coordinator.refresh(
                limit=limit, offset=offset, tag=tag
            )
        else:
            stored = await runtime.coordinator.refresh(
                archived=archived, limit=limit, offset=offset
            )

        if stored is None:
            return {
                "success": False,
                "refreshed": 0,
                "error": "Server unavailable, showing cached articles",
            }

        return {"success": True, "refreshed": stored}

    async def sync_pending(ctx: Context = None) -> Dict[str, Any]:
        """Send saves that were queued while offline.

        Args:
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - replayed: articles created on the server
            - dead_lettered: queue entries given up on
            - remaining: entries still waiting
            - error: why the sync stopped early, if it did
        """
        await runtime.open()
        report = await runtime.coordinator.sync_pending()

        if report.skipped:
            return {
                "success": True,
                "skipped": True,
                "remaining": report.remaining,
                "message": "A sync is already running",
            }

        result: Dict[str, Any] = {
            "success": report.stopped_error is None,
            "replayed": [_summary(a) for a in report.replayed],
            "dead_lettered": [p.to_dict() for p in report.dead_lettered],
            "remaining": report.remaining,
        }
        if report.stopped_error is not None:
            result["error"] = report.stopped_error
        return result

    async def list_pending(ctx: Context = None) -> Dict[str, Any]:
        """List saves waiting to be sent, and those that were given up on.

        Args:
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - pending: queued entries in send order
            - dead_letters: entries the server rejected too many times
        """
        await runtime.open()
        pending = await runtime.queue.list()
        dead = await runtime.queue.list_dead_letters()

        return {
            "success": True,
            "count": len(pending),
            "pending": [p.to_dict() for p in pending],
            "dead_letters": [p.to_dict() for p in dead],
        }

    async def clear_cache(include_queue: bool = False, ctx: Context = None) -> Dict[str, Any]:
        """Remove all cached articles from this device.

        Articles on the server are not touched.

        Args:
            include_queue: Also drop saves waiting to be sent
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - articles_removed: count of cached articles removed
        """
        await runtime.open()
        removed = await runtime.coordinator.clear_cache(include_queue=include_queue)

        return {
            "success": True,
            "articles_removed": removed,
            "queue_cleared": include_queue,
        }

    async def list_tags(ctx: Context = None) -> Dict[str, Any]:
        """List all tags known to the server.

        Args:
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - count: number of tags
            - tags: list of objects with id and name
        """
        await runtime.open()
        tags = await runtime.coordinator.list_tags()

        return {
            "success": True,
            "count": len(tags),
            "online": runtime.coordinator.online,
            "tags": [{"id": t.id, "name": t.name} for t in tags],
        }

    async def add_tag(article_id: int, tag: str, ctx: Context = None) -> Dict[str, Any]:
        """Tag an article.

        Args:
            article_id: Article id (from list_articles)
            tag: Tag name
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with success and, on failure, error
        """
        if not tag.strip():
            return {"success": False, "error": "Tag is required"}

        await runtime.open()
        result = await runtime.coordinator.add_tag(article_id, tag.strip())
        if not result.success:
            return {"success": False, "error": result.error}
        return {
            "success": True,
            "article_id": article_id,
            "tag": tag.strip(),
            "tags": result.article.tags if result.article else None,
        }

    async def remove_tag(article_id: int, tag: str, ctx: Context = None) -> Dict[str, Any]:
        """Remove a tag from an article.

        Args:
            article_id: Article id (from list_articles)
            tag: Tag name
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with success and, on failure, error
        """
        if not tag.strip():
            return {"success": False, "error": "Tag is required"}

        await runtime.open()
        result = await runtime.coordinator.remove_tag(article_id, tag.strip())
        if not result.success:
            return {"success": False, "error": result.error}
        return {
            "success": True,
            "article_id": article_id,
            "tag": tag.strip(),
            "tags": result.article.tags if result.article else None,
        }

    async def get_server_url(ctx: Context = None) -> Dict[str, Any]:
        """Show the server this client talks to.

        Args:
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with success, server_url and online
        """
        await runtime.open()
        return {
            "success": True,
            "server_url": runtime.settings.server_url,
            "online": runtime.coordinator.online,
        }

    async def set_server_url(
        url: str,
        verify: bool = True,
        ctx: Context = None,
    ) -> Dict[str, Any]:
        """Point the client at another server.

        The connection is tested first unless verify is false. The setting
        is remembered across restarts.

        Args:
            url: Server base URL, e.g. "http://192.168.1.10:8080"
            verify: Test the connection before switching
            ctx: MCP Context object (injected automatically)

        Returns:
            Dictionary with:
            - success: bool
            - server_url: the normalized URL now in use
            - error: string if the URL is invalid or the server unreachable
        """
        try:
            server_url = await runtime.set_server_url(url, verify=verify)
        except ValueError as e:
            return {"success": False, "error": str(e)}
        except (NetworkError, RemoteError) as e:
            return {"success": False, "error": f"Cannot connect to server: {e}"}

        return {"success": True, "server_url": server_url}

    return [
        save_article,
        list_articles,
        get_article,
        archive_article,
        mark_article_read,
        delete_article,
        search_articles,
        refresh_articles,
        sync_pending,
        list_pending,
        clear_cache,
        list_tags,
        add_tag,
        remove_tag,
        get_server_url,
        set_server_url,
    ]
