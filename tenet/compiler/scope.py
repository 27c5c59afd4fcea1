# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Name resolution for the compiler: the global rule table and per-module scope.

Rules are addressed by their full document path (`data.<package>.<name>`).
All modules declaring the same package contribute to the same namespace, so
a rule defined in one file is visible by its short name from another file of
the same package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from tenet.compiler.builtins import BUILTINS, Builtin
from tenet.parser.ast import Module, Rule, RuleKind

ROOT_DOCUMENTS = ("data", "input")
IGNORED_IMPORT_ROOTS = ("future",)


@dataclass(frozen=True)
class RuleEntry:
	path: str
	module: Module
	rule: Rule


class RuleTable:
	"""All rules of a compilation unit, keyed by full path, in module-key order."""

	def __init__(self, modules: Mapping[str, Module]) -> None:
		self.by_path: Dict[str, List[RuleEntry]] = {}
		self.packages: Set[str] = set()
		self._names_by_package: Dict[str, Set[str]] = {}
		for key in sorted(modules):
			module = modules[key]
			pkg = module.package_path
			self.packages.add(pkg)
			names = self._names_by_package.setdefault(pkg, set())
			for rule in module.rules:
				path = f"{pkg}.{rule.name}"
				self.by_path.setdefault(path, []).append(RuleEntry(path=path, module=module, rule=rule))
				names.add(rule.name)

	def names_in_package(self, package_path: str) -> Set[str]:
		return self._names_by_package.get(package_path, set())

	def paths(self) -> List[str]:
		return sorted(self.by_path)

	def function_arity(self, path: str) -> Optional[int]:
		entries = self.by_path.get(path)
		if not entries:
			return None
		for entry in entries:
			if entry.rule.kind is RuleKind.FUNCTION:
				return len(entry.rule.args)
		return None

	def resolve_data_ref(self, parts: List[str]) -> List[str]:
		"""
		Map a `data...` ref (string segments only) to the rule paths it reads.

		The longest prefix naming a rule wins; a prefix naming a package (or
		any ancestor of packages) reads every rule below it.
		"""
		for i in range(len(parts), 1, -1):
			prefix = ".".join(parts[:i])
			if prefix in self.by_path:
				return [prefix]
		prefix = ".".join(parts)
		return [p for p in self.paths() if p.startswith(prefix + ".")]


class ModuleScope:
	"""Global names visible inside one module: roots, imports and package rules."""

	def __init__(self, module: Module, table: RuleTable) -> None:
		self.module = module
		self.table = table
		self.package_path = module.package_path
		self.rule_names = table.names_in_package(self.package_path)
		self.imports: Dict[str, List[str]] = {}
		for imp in module.imports:
			if imp.path and imp.path[0] in ROOT_DOCUMENTS:
				self.imports[imp.name] = list(imp.path)

	def global_names(self) -> Set[str]:
		return set(ROOT_DOCUMENTS) | set(self.rule_names) | set(self.imports)

	def expand(self, parts: List[str]) -> Optional[List[str]]:
		"""
		Rewrite a ref's leading name into an absolute document path.

		Returns None when the head is not a global (a local variable).
		"""
		if not parts:
			return None
		head, rest = parts[0], parts[1:]
		if head in ROOT_DOCUMENTS:
			return list(parts)
		if head in self.imports:
			return self.imports[head] + rest
		if head in self.rule_names:
			return self.package_path.split(".") + parts
		return None

	def resolve_function(self, name: str) -> Tuple[str, Optional[str], Optional[Builtin]]:
		"""
		Resolve a call target.

		Returns ("user", path, None), ("builtin", name, builtin) or
		("undefined", None, None).
		"""
		parts = name.split(".")
		path: Optional[str] = None
		if len(parts) == 1:
			path = f"{self.package_path}.{name}"
		else:
			expanded = self.expand(parts)
			if expanded is not None and expanded[0] == "data":
				path = ".".join(expanded)
		if path is not None and self.table.function_arity(path) is not None:
			return "user", path, None
		builtin = BUILTINS.get(name)
		if builtin is not None:
			return "builtin", name, builtin
		return "undefined", None, None


def module_scopes(modules: Mapping[str, Module], table: RuleTable) -> Iterable[Tuple[str, ModuleScope]]:
	for key in sorted(modules):
		yield key, ModuleScope(modules[key], table)


__all__ = ["IGNORED_IMPORT_ROOTS", "ModuleScope", "ROOT_DOCUMENTS", "RuleEntry", "RuleTable", "module_scopes"]
