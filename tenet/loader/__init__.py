# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Filtered loader: turn command-line paths into modules and data documents.

Directories are walked recursively in sorted order; symlinked directories
below a root argument are not followed. `*.tenet` files are
parsed as modules, `*.json`/`*.yaml`/`*.yml` files as data documents and
everything else is skipped. Every failure is collected; if there was any,
`LoaderErrors` is raised once the walk is complete and nothing is returned.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List

import structlog
import yaml

from tenet.core.errors import LOAD_ERR, LoaderErrors, TenetError
from tenet.core.location import Location
from tenet.loader.filter import Filter, any_filter, glob_exclude_name, should_ignore
from tenet.parser import parse_module
from tenet.parser.ast import Module

logger = structlog.get_logger(__name__)

MODULE_SUFFIX = ".tenet"
JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yaml", ".yml")


@dataclass
class Result:
	modules: Dict[str, Module] = field(default_factory=dict)
	documents: Dict[str, Any] = field(default_factory=dict)


def filtered(paths: Iterable[str], filter: Filter | None = None) -> Result:
	result = Result()
	errors: List[TenetError] = []
	for root in paths:
		_walk(Path(root), 0, filter, result, errors)
	if errors:
		raise LoaderErrors(errors)
	return result


def _walk(path: Path, depth: int, filter: Filter | None, result: Result, errors: List[TenetError]) -> None:
	name = str(path)
	if not path.exists():
		errors.append(TenetError(LOAD_ERR, f"stat {name}: no such file or directory", Location(file=name)))
		return
	is_dir = path.is_dir()
	if filter is not None and filter(name, is_dir, depth):
		logger.debug("path_ignored", path=name, depth=depth)
		return
	if is_dir:
		if depth > 0 and path.is_symlink():
			logger.debug("symlink_skipped", path=name)
			return
		try:
			children = sorted(path.iterdir())
		except OSError as err:
			errors.append(TenetError(LOAD_ERR, f"{name}: {err.strerror}", Location(file=name)))
			return
		for child in children:
			_walk(child, depth + 1, filter, result, errors)
		return

	suffix = path.suffix.lower()
	if suffix != MODULE_SUFFIX and suffix not in JSON_SUFFIXES + YAML_SUFFIXES:
		return
	try:
		source = path.read_text(encoding="utf-8")
	except (OSError, UnicodeDecodeError) as err:
		errors.append(TenetError(LOAD_ERR, f"{name}: {_reason(err)}", Location(file=name)))
		return

	if suffix == MODULE_SUFFIX:
		try:
			module = parse_module(source, name)
		except TenetError as err:
			errors.append(err)
			return
		result.modules[module.name] = module
		logger.debug("module_loaded", path=name, package=module.package_path)
		return

	try:
		result.documents[name] = load_document(source, name, yaml_syntax=suffix in YAML_SUFFIXES)
	except TenetError as err:
		errors.append(err)
		return
	logger.debug("document_loaded", path=name)


def load_document(source: str, name: str, yaml_syntax: bool = False) -> Any:
	"""Parse a JSON or YAML data document, raising a load error on bad syntax."""
	if not yaml_syntax:
		try:
			return json.loads(source)
		except json.JSONDecodeError as err:
			loc = Location(file=name, row=err.lineno, col=err.colno)
			raise TenetError(LOAD_ERR, f"{name}: invalid JSON: {err.msg}", loc) from err
	try:
		return yaml.safe_load(source)
	except yaml.YAMLError as err:
		mark = getattr(err, "problem_mark", None)
		loc = Location(file=name, row=mark.line + 1, col=mark.column + 1) if mark is not None else Location(file=name)
		problem = getattr(err, "problem", None) or str(err)
		raise TenetError(LOAD_ERR, f"{name}: invalid YAML: {problem}", loc) from err


def _reason(err: Exception) -> str:
	if isinstance(err, OSError) and err.strerror:
		return err.strerror.lower()
	return str(err)


__all__ = [
	"Filter",
	"Result",
	"any_filter",
	"filtered",
	"glob_exclude_name",
	"load_document",
	"should_ignore",
]
