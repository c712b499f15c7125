"""HTML pages for the home page and the log browser."""

from __future__ import annotations

import html
import json
from typing import Any, Iterable

from webhook_logger.records import WebhookRecord

_STYLE = """
    body { font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }
    h1 { color: #333; }
    pre { background-color: #f5f5f5; padding: 10px; border-radius: 5px; overflow: auto; }
    ul { list-style-type: none; padding: 0; }
    li { margin: 10px 0; }
    a { color: #0066cc; text-decoration: none; }
    a:hover { text-decoration: underline; }
"""


def _page(title: str, content: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        f"  <head>\n    <meta charset=\"utf-8\">\n    <title>{html.escape(title)}</title>\n"
        f"    <style>{_STYLE}</style>\n  </head>\n"
        f"  <body>\n{content}\n  </body>\n"
        "</html>\n"
    )


def _pretty(value: Any) -> str:
    return html.escape(json.dumps(value, indent=2, ensure_ascii=False))


def render_home(storage_name: str) -> str:
    return _page(
        "Webhook Logger",
        "<h1>Webhook Logger</h1>\n"
        "<p>Send POST requests to <code>/webhook</code> to log payloads.</p>\n"
        "<p>View logs at <a href=\"/logs\">/logs</a></p>\n"
        f"<p>Storage: <code>{html.escape(storage_name)}</code></p>",
    )


def render_log_list(identifiers: Iterable[str]) -> str:
    items = "".join(
        f'<li><a href="/logs/{html.escape(identifier, quote=True)}">{html.escape(identifier)}</a></li>'
        for identifier in identifiers
    )
    return _page(
        "Webhook Logs",
        "<h1>Webhook Logs</h1>\n"
        '<a href="/">Back to home</a>\n'
        f"<ul>{items}</ul>",
    )


def render_empty_logs() -> str:
    return _page(
        "Webhook Logs",
        '<h1>No logs yet</h1>\n<a href="/">Back to home</a>',
    )


def render_log_detail(record: WebhookRecord) -> str:
    title = f"Webhook Log: {record.identifier}"
    return _page(
        title,
        f"<h1>{html.escape(title)}</h1>\n"
        f"<p>Received at <time>{html.escape(record.timestamp)}</time></p>\n"
        '<a href="/logs">Back to logs</a>\n'
        f"<h2>Headers</h2>\n<pre>{_pretty(record.headers)}</pre>\n"
        f"<h2>Body</h2>\n<pre>{_pretty(record.body)}</pre>\n"
        f"<h2>Query Parameters</h2>\n<pre>{_pretty(record.query)}</pre>",
    )


def render_message(title: str, message: str) -> str:
    return _page(
        title,
        f"<h1>{html.escape(title)}</h1>\n"
        f"<p>{html.escape(message)}</p>\n"
        '<a href="/logs">Back to logs</a>',
    )
