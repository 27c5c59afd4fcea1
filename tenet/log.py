# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Process logging.

Logs always go to stderr; stdout carries diagnostics only, so `--format
json` output stays machine-readable whatever the verbosity.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

import structlog

CONSOLE = "console"
JSON = "json"
LOG_FORMATS = (CONSOLE, JSON)


@dataclass(frozen=True)
class LogOptions:
	verbose: bool = False
	fmt: str = CONSOLE


def configure_logging(verbose: bool = False, fmt: str = CONSOLE) -> None:
	if fmt not in LOG_FORMATS:
		raise ValueError(f"unknown log format: {fmt}")
	level = logging.DEBUG if verbose else logging.WARNING
	renderer = structlog.processors.JSONRenderer() if fmt == JSON else structlog.dev.ConsoleRenderer(colors=False)
	structlog.configure(
		processors=[
			structlog.processors.add_log_level,
			structlog.processors.TimeStamper(fmt="iso"),
			renderer,
		],
		wrapper_class=structlog.make_filtering_bound_logger(level),
		context_class=dict,
		logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
		cache_logger_on_first_use=False,
	)


__all__ = ["LOG_FORMATS", "LogOptions", "configure_logging"]
