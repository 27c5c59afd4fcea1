# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Rule dependency graph and recursion detection.

Nodes are full rule paths. A rule depends on every rule it may read: short
names in its own package, refs through imports or `data`, and user function
calls. Each strongly connected component with a cycle is reported once,
starting from its smallest path.
"""

from __future__ import annotations

from collections import deque
from typing import Dict, List, Mapping, Optional, Set

from tenet.compiler.rules import Report
from tenet.compiler.scope import ModuleScope, RuleTable, module_scopes
from tenet.compiler.walk import iter_rule_terms
from tenet.core.errors import RECURSION_ERR, TenetError
from tenet.parser.ast import AssignLit, Call, Literal, Module, Ref, Rule, Scalar, SomeLit, Var

Graph = Dict[str, Set[str]]


def _local_names(rule: Rule) -> Set[str]:
	names: Set[str] = set()
	for arg in rule.args:
		if isinstance(arg, Var):
			names.add(arg.name)
	bodies: List[List[Literal]] = [rule.body] + [c.body for c in rule.else_clauses]
	for body in bodies:
		for lit in body:
			if isinstance(lit, SomeLit):
				names |= {v.name for v in lit.names}
			elif isinstance(lit, AssignLit) and isinstance(lit.lhs, Var):
				names.add(lit.lhs.name)
	return names


def _ref_parts(ref: Ref) -> List[str]:
	parts = [ref.head.name]
	for seg in ref.path:
		if isinstance(seg, Scalar) and isinstance(seg.value, str):
			parts.append(seg.value)
		else:
			break
	return parts


def _rule_deps(rule: Rule, scope: ModuleScope) -> Set[str]:
	table = scope.table
	local = _local_names(rule)
	terms = list(iter_rule_terms(rule))
	ref_heads = {id(t.head) for t in terms if isinstance(t, Ref)}
	deps: Set[str] = set()

	def read(parts: List[str]) -> None:
		if parts[0] in local:
			return
		expanded = scope.expand(parts)
		if expanded is not None and expanded[0] == "data":
			deps.update(table.resolve_data_ref(expanded))

	for term in terms:
		if isinstance(term, Ref):
			read(_ref_parts(term))
		elif isinstance(term, Var) and id(term) not in ref_heads:
			read([term.name])
		elif isinstance(term, Call):
			kind, target, _builtin = scope.resolve_function(term.name)
			if kind == "user" and target is not None:
				deps.add(target)
	return deps


def build_graph(modules: Mapping[str, Module], table: RuleTable) -> Graph:
	graph: Graph = {path: set() for path in table.paths()}
	for _key, scope in module_scopes(modules, table):
		for rule in scope.module.rules:
			path = f"{scope.package_path}.{rule.name}"
			graph[path] |= _rule_deps(rule, scope)
	return graph


def strongly_connected(graph: Graph) -> List[List[str]]:
	"""Tarjan's algorithm; components and their members come out sorted."""
	index: Dict[str, int] = {}
	low: Dict[str, int] = {}
	stack: List[str] = []
	on_stack: Set[str] = set()
	out: List[List[str]] = []

	def visit(node: str) -> None:
		index[node] = low[node] = len(index)
		stack.append(node)
		on_stack.add(node)
		for succ in sorted(graph.get(node, ())):
			if succ not in index:
				visit(succ)
				low[node] = min(low[node], low[succ])
			elif succ in on_stack:
				low[node] = min(low[node], index[succ])
		if low[node] == index[node]:
			component = []
			while True:
				member = stack.pop()
				on_stack.discard(member)
				component.append(member)
				if member == node:
					break
			out.append(sorted(component))

	for node in sorted(graph):
		if node not in index:
			visit(node)
	return sorted(out)


def _cycle(graph: Graph, members: Set[str], start: str) -> List[str]:
	# shortest path start -> ... -> start inside the component
	prev: Dict[str, Optional[str]] = {}
	queue = deque([start])
	while queue:
		node = queue.popleft()
		for succ in sorted(graph[node] & members):
			if succ == start:
				path = [start]
				cur: Optional[str] = node
				while cur is not None and cur != start:
					path.append(cur)
					cur = prev[cur]
				path.append(start)
				return [path[0]] + list(reversed(path[1:-1])) + [start]
			if succ not in prev:
				prev[succ] = node
				queue.append(succ)
	return [start, start]


def check_recursion(modules: Mapping[str, Module], table: RuleTable, report: Report) -> None:
	graph = build_graph(modules, table)
	for component in strongly_connected(graph):
		start = component[0]
		if len(component) == 1 and start not in graph[start]:
			continue
		cycle = _cycle(graph, set(component), start)
		loc = table.by_path[start][0].rule.loc
		report(TenetError(RECURSION_ERR, f"rule {start} is recursive: {' -> '.join(cycle)}", loc))


__all__ = ["build_graph", "check_recursion", "strongly_connected"]
