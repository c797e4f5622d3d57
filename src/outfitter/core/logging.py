"""Logging for Outfitter: stdlib loggers rendered through rich on stderr.

Modules log with keyword context, e.g. ``logger.info("Purged", packages="a,b")``.
The context is appended as ``[k=v ...]``. Values are markup-escaped because
apt repository lines and installer output routinely contain square brackets.
"""

import logging
from collections.abc import MutableMapping
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

_STDLIB_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

# Chatty at DEBUG and never about a unit
_QUIET_LOGGERS = ("asyncio", "aiohttp")


def format_context(context: dict[str, Any]) -> str:
    """Render context as sorted ``k=v`` pairs, quoting values with spaces."""
    items = []
    for key, value in sorted(context.items()):
        text = str(value)
        if not text or " " in text:
            text = repr(text)
        items.append(f"{key}={escape(text)}")
    return " ".join(items)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that renders keyword arguments as context data.

    Context bound when the adapter is created (``get_logger(name, unit="nix")``)
    is merged under the per-call keywords.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        context = dict(self.extra or {})
        context.update((k, v) for k, v in kwargs.items() if k not in _STDLIB_KWARGS)
        clean_kwargs = {k: v for k, v in kwargs.items() if k in _STDLIB_KWARGS}

        if context:
            msg = f"{msg} [dim][[/dim]{format_context(context)}[dim]][/dim]"

        return msg, clean_kwargs


def setup_logging(verbose: bool = False, trace: bool = False) -> None:
    """Configure logging with rich integration.

    Args:
        verbose: Enable debug logging
        trace: Also show source locations, locals in tracebacks and
            event-loop and HTTP client debug output
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=trace,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=trace,
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )

    logging.basicConfig(
        level=logging.DEBUG if verbose or trace else logging.INFO,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if trace else logging.WARNING)


def get_logger(name: str = "", **context: Any) -> StructuredLoggerAdapter:
    """Get a structured logger, optionally with context bound to every record.

    Args:
        name: Logger name (typically __name__ of the module)
        **context: Context included in every message from this adapter
    """
    return StructuredLoggerAdapter(logging.getLogger(name or __name__), context)
