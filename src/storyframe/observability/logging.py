"""Structured logging for the engine.

Console events are rendered by rich on stderr at the level chosen with ``-v``.
With ``--log-dir`` every event is also appended to ``{log_dir}/debug.jsonl``.

While a frame runs, :func:`frame_context` binds the frame index and the
focused scene, so every event logged by the stack or a scene hook carries
them: as ``frame``/``top_scene`` keys in the JSONL file and as a
``[frame N Scene]`` prefix on the console.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping
    from pathlib import Path

    from structlog.typing import Processor

LOG_FILENAME = "debug.jsonl"

_configured = False
_file_handler: logging.FileHandler | None = None


def _frame_prefix(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Fold bound frame context into the console message."""
    frame = event_dict.pop("frame", None)
    top_scene = event_dict.pop("top_scene", None)
    if frame is not None:
        where = f"frame {frame}" if top_scene is None else f"frame {frame} {top_scene}"
        event_dict["event"] = f"[{where}] {event_dict.get('event', '')}"
    return event_dict


def _drop_handler_fields(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    # RichHandler prints time and level itself
    for key in ("timestamp", "level", "logger"):
        event_dict.pop(key, None)
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _console_handler(verbosity: int, level: int) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=level,
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _frame_prefix,
                _drop_handler_fields,
                structlog.dev.ConsoleRenderer(colors=False),
            ],
        )
    )
    return handler


def _jsonl_handler(log_dir: Path) -> logging.FileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / LOG_FILENAME, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(serializer=json.dumps, default=repr),
            ],
        )
    )
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure logging for the engine and its command line.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also write every event as JSON lines into ``log_dir``.
        log_dir: Directory for ``debug.jsonl``. Required if log_to_file=True.

    Raises:
        ValueError: If log_to_file=True but log_dir is not provided.
    """
    global _configured, _file_handler

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()

    console_level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    handlers = [_console_handler(verbosity, console_level)]
    if log_to_file and log_dir is not None:
        _file_handler = _jsonl_handler(log_dir)
        handlers.append(_file_handler)

    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, handlers=handlers, force=True)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        # Module-level loggers must pick up a later -v or --log-dir
        cache_logger_on_first_use=False,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring quiet defaults on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def close_file_logging() -> None:
    """Detach and close the JSONL file handler, if any."""
    global _file_handler
    if _file_handler is not None:
        logging.getLogger().removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None


@contextmanager
def frame_context(frame: int, top_scene: str | None = None) -> Iterator[None]:
    """Bind ``frame`` and the focused ``top_scene`` to events logged inside the block.

    Example::

        with frame_context(3, "Title"):
            log.debug("scene_popped", depth=0)  # frame=3 top_scene="Title"
    """
    context: dict[str, Any] = {"frame": frame}
    if top_scene is not None:
        context["top_scene"] = top_scene
    with structlog.contextvars.bound_contextvars(**context):
        yield


__all__ = [
    "LOG_FILENAME",
    "close_file_logging",
    "configure_logging",
    "frame_context",
    "get_logger",
]
