# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The `check` command: load modules, compile them, report diagnostics.

`check_modules` returns the process exit status: 0 when everything loaded
and compiled cleanly (nothing is written), 1 otherwise.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Sequence, TextIO, Tuple

import structlog

from tenet.bundle import as_bundle
from tenet.compiler import Compiler
from tenet.core.errors import Errors, LoaderErrors, TenetError
from tenet.loader import filtered
from tenet.loader.filter import any_filter, glob_exclude_name
from tenet.parser.ast import Module

logger = structlog.get_logger(__name__)

DEFAULT_ERROR_LIMIT = 10


class OutputFormat(str, Enum):
	PRETTY = "pretty"
	JSON = "json"


@dataclass(frozen=True)
class CheckParams:
	format: OutputFormat = OutputFormat.PRETTY
	error_limit: int = DEFAULT_ERROR_LIMIT
	ignore: Tuple[str, ...] = ()
	bundle_mode: bool = False


def _to_json(obj: Any) -> Any:
	to_json = getattr(obj, "to_json", None)
	if to_json is None:
		raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
	return to_json()


def _render_pretty(err: Any, stdout: TextIO, stderr: TextIO) -> None:
	stdout.write(f"{err}\n")


def _render_json(err: Any, stdout: TextIO, stderr: TextIO) -> None:
	try:
		text = json.dumps({"errors": err}, indent=2, default=_to_json)
	except (TypeError, ValueError) as exc:
		stderr.write(f"{exc}\n")
		return
	stdout.write(text + "\n")


_RENDERERS: Dict[OutputFormat, Callable[[Any, TextIO, TextIO], None]] = {
	OutputFormat.PRETTY: _render_pretty,
	OutputFormat.JSON: _render_json,
}


def output_errors(err: Any, fmt: OutputFormat, stdout: TextIO | None = None, stderr: TextIO | None = None) -> None:
	"""Render a diagnostic set (or a single error) in `fmt`."""
	_RENDERERS[OutputFormat(fmt)](err, stdout or sys.stdout, stderr or sys.stderr)


def _insert(modules: Dict[str, Module], key: str, module: Module) -> None:
	if key in modules:
		logger.warning("module_replaced", key=key)
	modules[key] = module


def _load_bundles(paths: Sequence[str]) -> Dict[str, Module]:
	modules: Dict[str, Module] = {}
	for path in paths:
		bundle = as_bundle(path)
		for mf in bundle.modules:
			_insert(modules, mf.path, mf.parsed)
	return modules


def _load_filtered(paths: Sequence[str], ignore: Iterable[str]) -> Dict[str, Module]:
	filter = any_filter([glob_exclude_name(pattern, 0) for pattern in ignore])
	result = filtered(paths, filter)
	modules: Dict[str, Module] = {}
	for module in result.modules.values():
		_insert(modules, module.name, module)
	return modules


def check_modules(
	params: CheckParams,
	paths: Sequence[str],
	stdout: TextIO | None = None,
	stderr: TextIO | None = None,
) -> int:
	try:
		if params.bundle_mode:
			modules = _load_bundles(paths)
		else:
			modules = _load_filtered(paths, params.ignore)
	except TenetError as err:
		output_errors(Errors([err]), params.format, stdout, stderr)
		return 1
	except LoaderErrors as err:
		output_errors(err, params.format, stdout, stderr)
		return 1

	compiler = Compiler().set_error_limit(params.error_limit)
	compiler.compile(modules)
	if compiler.failed():
		output_errors(compiler.errors, params.format, stdout, stderr)
		return 1
	return 0


__all__ = ["CheckParams", "DEFAULT_ERROR_LIMIT", "OutputFormat", "check_modules", "output_errors"]
