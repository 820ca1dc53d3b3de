import logging
import sys
import time
from pathlib import Path
from typing import Any, Optional

import structlog

EVENT_LABELS = {
    "incoming": "⇦ INCOMING",
    "outgoing": "⇨ OUTGOING",
    "blocked": "🚫 BLOCKED",
    "success": "✅ SUCCESS",
    "error": "❌ ERROR",
}


def configure_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """Configure structlog on top of stdlib logging.

    Console rendering is the default for interactive runs; JSON output is
    available for runs whose logs are shipped somewhere else.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


_events = get_logger("profile_scraper.events")


def log_event(kind: str, message: str, **fields: Any) -> None:
    """Emit a labelled progress event.

    Kinds map to short labels (outgoing request, blocked page, saved record)
    so a run can be followed at a glance in the console.
    """
    label = EVENT_LABELS.get(kind, "")
    if kind == "error":
        _events.error(message, label=label, **fields)
    elif kind == "blocked":
        _events.warning(message, label=label, **fields)
    else:
        _events.info(message, label=label, **fields)


def save_debug_html(content: str, prefix: str = "debug", directory: str = "/tmp") -> Optional[str]:
    """Save page HTML to `directory` for diagnostics.

    Returns the file path or None if saving fails. This is gated by the
    `debug` setting and should not be enabled in production by default.
    """
    try:
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        html_path = path / f"{prefix}_{int(time.time() * 1000)}.html"
        html_path.write_text(content, encoding="utf-8")
        return str(html_path)
    except OSError:
        return None
