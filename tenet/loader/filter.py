# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Path filters for the filtered loader.

A filter is called with `(path, is_dir, depth)` for every candidate the
loader reaches, root arguments included (depth 0), and returns True to
exclude it. Excluding a directory prunes everything below it.
"""

from __future__ import annotations

import os
from fnmatch import fnmatchcase
from typing import Callable, Iterable, Sequence

Filter = Callable[[str, bool, int], bool]


def should_ignore(path: str, patterns: Iterable[str]) -> bool:
	"""True when the base name of `path` matches any of `patterns`."""
	name = os.path.basename(os.path.normpath(path))
	return any(fnmatchcase(name, pattern) for pattern in patterns)


def glob_exclude_name(pattern: str, min_depth: int = 0) -> Filter:
	"""Exclude entries whose base name matches `pattern`, from `min_depth` down."""

	def _filter(path: str, is_dir: bool, depth: int) -> bool:
		return depth >= min_depth and should_ignore(path, (pattern,))

	return _filter


def any_filter(filters: Sequence[Filter]) -> Filter | None:
	if not filters:
		return None
	if len(filters) == 1:
		return filters[0]
	return lambda path, is_dir, depth: any(f(path, is_dir, depth) for f in filters)


__all__ = ["Filter", "any_filter", "glob_exclude_name", "should_ignore"]
