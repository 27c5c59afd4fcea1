# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Module-structure stages: import validity and rule-definition conflicts.

These run before any body-level analysis; a conflicting rule set makes the
later stages' name resolution ambiguous.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Mapping

from tenet.compiler.scope import IGNORED_IMPORT_ROOTS, ROOT_DOCUMENTS, RuleTable
from tenet.core.errors import COMPILE_ERR, TenetError
from tenet.parser.ast import Module, RuleKind

Report = Callable[[TenetError], None]


def check_imports(modules: Mapping[str, Module], table: RuleTable, report: Report) -> None:
	for key in sorted(modules):
		module = modules[key]
		seen: Dict[str, str] = {}
		rule_names = {rule.name for rule in module.rules}
		for imp in module.imports:
			dotted = ".".join(imp.path)
			root = imp.path[0]
			if root in IGNORED_IMPORT_ROOTS:
				continue
			if root not in ROOT_DOCUMENTS:
				report(TenetError(COMPILE_ERR, f"invalid import {dotted}: path must begin with input or data", imp.loc))
				continue
			name = imp.name
			if imp.alias is not None and imp.alias in ROOT_DOCUMENTS:
				report(TenetError(COMPILE_ERR, f"import alias must not be {imp.alias}", imp.loc))
				continue
			if name in seen:
				report(TenetError(COMPILE_ERR, f"import {name} already declared by import {seen[name]}", imp.loc))
				continue
			seen[name] = dotted
			if name in rule_names:
				report(TenetError(COMPILE_ERR, f"rule {name} conflicts with import {dotted}", imp.loc))


def check_rule_conflicts(modules: Mapping[str, Module], table: RuleTable, report: Report) -> None:
	"""
	Enforce one definition shape per rule path.

	All definitions of a path (across files) must agree on kind and, for
	functions, on arity; at most one may be `default`. `else` is only valid
	on complete rules and functions. A rule may not share its path with a
	package.
	"""
	for path in table.paths():
		entries = table.by_path[path]
		first = entries[0]
		kinds = {e.rule.kind for e in entries}
		if len(kinds) > 1:
			report(
				TenetError(
					COMPILE_ERR,
					f"conflicting rules {path} found",
					first.rule.loc,
					details={"kinds": sorted(k.value for k in kinds), "files": _files(entries)},
				)
			)
			continue
		if first.rule.kind is RuleKind.FUNCTION:
			arities = {len(e.rule.args) for e in entries}
			if len(arities) > 1:
				report(
					TenetError(
						COMPILE_ERR,
						f"conflicting rules {path} found: functions must use the same number of arguments",
						first.rule.loc,
						details={"arities": sorted(arities), "files": _files(entries)},
					)
				)
		defaults = [e for e in entries if e.rule.default]
		if len(defaults) > 1:
			report(TenetError(COMPILE_ERR, f"multiple default rules {path} found", defaults[1].rule.loc))
		for entry in entries:
			if entry.rule.else_clauses and entry.rule.kind in (RuleKind.PARTIAL_SET, RuleKind.PARTIAL_OBJECT):
				report(TenetError(COMPILE_ERR, f"else keyword cannot be used on {entry.rule.kind.value} rules", entry.rule.loc))
		for pkg in sorted(table.packages):
			if pkg == path or pkg.startswith(path + "."):
				report(TenetError(COMPILE_ERR, f"package {pkg} conflicts with rule {path}", first.rule.loc))
				break


def _files(entries: List) -> List[str]:
	return sorted({e.module.name for e in entries})


__all__ = ["Report", "check_imports", "check_rule_conflicts"]
