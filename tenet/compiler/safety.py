# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Variable safety and assignment checks.

A body is safe when every variable it reads is bound by some positive
literal in the same body (or an enclosing one, for comprehensions). Binding
is order-insensitive: literals are re-scanned until a fixpoint is reached,
mirroring how a query planner would reorder them.

Binding sources:
  - `x := t` binds the variables of the left-hand pattern once `t` is safe,
  - `a = b` binds the unbound pattern variables of one side once the other
    side is fully bound,
  - an unbound variable used as a ref index in a positive literal
    (`xs[i]`) is bound by iteration,
  - function arguments, imports, rule names, `input` and `data` are bound
    on entry.
"""

from __future__ import annotations

from typing import List, Mapping, Set, Tuple

from tenet.compiler.rules import Report
from tenet.compiler.scope import ROOT_DOCUMENTS, RuleTable, module_scopes
from tenet.compiler.walk import (
	WILDCARD,
	Comprehension,
	children,
	comprehension_parts,
	iter_terms,
	iter_vars,
	literal_terms,
	rule_clauses,
)
from tenet.core.errors import COMPILE_ERR, UNSAFE_VAR_ERR, TenetError
from tenet.parser.ast import (
	ArrayTerm,
	AssignLit,
	BinOp,
	Call,
	ExprLit,
	Literal,
	Module,
	NotLit,
	ObjectTerm,
	Ref,
	Rule,
	Scalar,
	SetTerm,
	SomeLit,
	Term,
	UnifyLit,
	Var,
)


def check_safety(modules: Mapping[str, Module], table: RuleTable, report: Report) -> None:
	for _key, scope in module_scopes(modules, table):
		globals_ = scope.global_names()
		for rule in scope.module.rules:
			_check_rule(rule, globals_, report)


def _check_rule(rule: Rule, globals_: Set[str], report: Report) -> None:
	for index, (args, value, body) in enumerate(rule_clauses(rule)):
		heads: List[Term] = []
		if index == 0 and rule.key is not None:
			heads.append(rule.key)
		if value is not None:
			heads.append(value)
		analyzer = _BodyAnalyzer(report)
		arg_names = {v.name for arg in args for v in iter_vars(arg)}
		bound = analyzer.check_body(body, set(globals_) | arg_names, assigned=set(arg_names))
		for head in heads:
			analyzer.report_unsafe([v for v in iter_vars(head) if v.name not in bound])
			analyzer.check_closures(head, bound)


def _kind_name(term: Term) -> str:
	if isinstance(term, Scalar):
		value = term.value
		if value is None:
			return "null"
		if isinstance(value, bool):
			return "boolean"
		if isinstance(value, str):
			return "string"
		return "number"
	if isinstance(term, Ref):
		return "ref"
	if isinstance(term, (Call, BinOp)):
		return "call"
	if isinstance(term, SetTerm):
		return "set"
	if isinstance(term, Comprehension):
		return "comprehension"
	return type(term).__name__.lower()


def _split_pattern(term: Term) -> Tuple[List[Var], List[Term]]:
	"""
	Split a unification/assignment side into pattern variables and the
	sub-terms that must be fully bound (refs, calls, object keys, ...).
	"""
	if isinstance(term, Var):
		return ([term] if term.name != WILDCARD else []), []
	if isinstance(term, Scalar):
		return [], []
	if isinstance(term, ArrayTerm):
		pattern: List[Var] = []
		fixed: List[Term] = []
		for item in term.items:
			p, f = _split_pattern(item)
			pattern.extend(p)
			fixed.extend(f)
		return pattern, fixed
	if isinstance(term, ObjectTerm):
		pattern = []
		fixed = []
		for key, value in term.items:
			fixed.append(key)
			p, f = _split_pattern(value)
			pattern.extend(p)
			fixed.extend(f)
		return pattern, fixed
	return [], [term]


def _term_io(term: Term, bound: Set[str], allow_outputs: bool) -> Tuple[List[Var], Set[str]]:
	"""
	Return (unbound input variables, variables bound by ref iteration).
	"""
	candidates: List[Var] = []
	outputs: Set[str] = set()

	def visit(t: Term) -> None:
		if isinstance(t, Comprehension):
			return
		if isinstance(t, Var):
			candidates.append(t)
			return
		if isinstance(t, Ref):
			visit(t.head)
			for seg in t.path:
				if isinstance(seg, Var):
					if seg.name == WILDCARD:
						continue
					if allow_outputs and seg.name not in bound:
						outputs.add(seg.name)
						continue
				visit(seg)
			return
		for child in children(t):
			visit(child)

	visit(term)
	inputs = [v for v in candidates if v.name != WILDCARD and v.name not in bound and v.name not in outputs]
	return inputs, outputs


class _BodyAnalyzer:
	"""Safety state for one rule clause; each unsafe name is reported once."""

	def __init__(self, report: Report) -> None:
		self.report = report
		self.reported: Set[str] = set()

	def report_unsafe(self, unsafe: List[Var]) -> None:
		for var in unsafe:
			if var.name in self.reported:
				continue
			self.reported.add(var.name)
			self.report(TenetError(UNSAFE_VAR_ERR, f"var {var.name} is unsafe", var.loc))

	def literal_io(self, lit: Literal, bound: Set[str]) -> Tuple[List[Var], Set[str]]:
		"""Return (missing inputs, outputs) for `lit` under `bound`."""
		if isinstance(lit, ExprLit):
			return _term_io(lit.term, bound, allow_outputs=True)
		if isinstance(lit, NotLit):
			inputs, _outputs = _term_io(lit.term, bound, allow_outputs=False)
			return inputs, set()
		if isinstance(lit, AssignLit):
			pattern, fixed = _split_pattern(lit.lhs)
			missing, outputs = _term_io(lit.rhs, bound, allow_outputs=True)
			for t in fixed:
				i, o = _term_io(t, bound, allow_outputs=True)
				missing.extend(i)
				outputs |= o
			outputs |= {v.name for v in pattern}
			return missing, outputs
		if isinstance(lit, UnifyLit):
			pattern_l, fixed_l = _split_pattern(lit.lhs)
			pattern_r, fixed_r = _split_pattern(lit.rhs)
			missing: List[Var] = []
			outputs: Set[str] = set()
			for t in fixed_l + fixed_r:
				i, o = _term_io(t, bound, allow_outputs=True)
				missing.extend(i)
				outputs |= o
			unbound_l = [v for v in pattern_l if v.name not in bound]
			unbound_r = [v for v in pattern_r if v.name not in bound]
			if unbound_l and unbound_r:
				missing.extend(unbound_l)
				missing.extend(unbound_r)
			else:
				outputs |= {v.name for v in unbound_l + unbound_r}
			return missing, outputs
		return [], set()

	def check_assignments(self, body: List[Literal], assigned: Set[str]) -> None:
		for lit in body:
			if not isinstance(lit, AssignLit):
				continue
			self._check_assign_target(lit.lhs, assigned)

	def _check_assign_target(self, target: Term, assigned: Set[str]) -> None:
		if isinstance(target, Var):
			if target.name == WILDCARD:
				return
			if target.name in ROOT_DOCUMENTS:
				self.report(TenetError(COMPILE_ERR, f"variables must not shadow {target.name}", target.loc))
				return
			if target.name in assigned:
				self.report(TenetError(COMPILE_ERR, f"var {target.name} assigned above", target.loc))
				return
			assigned.add(target.name)
			return
		if isinstance(target, ArrayTerm):
			for item in target.items:
				self._check_assign_target(item, assigned)
			return
		if isinstance(target, ObjectTerm):
			for _key, value in target.items:
				self._check_assign_target(value, assigned)
			return
		if isinstance(target, Scalar):
			return
		self.report(TenetError(COMPILE_ERR, f"cannot assign to {_kind_name(target)}", target.loc))

	def check_body(self, body: List[Literal], bound: Set[str], assigned: Set[str] | None = None) -> Set[str]:
		"""Check one body scope; returns the set of names bound at its end."""
		self.check_assignments(body, set(assigned or ()))

		local: Set[str] = set()
		for lit in body:
			if isinstance(lit, SomeLit):
				local |= {v.name for v in lit.names}
			elif isinstance(lit, AssignLit):
				local |= {v.name for v in _split_pattern(lit.lhs)[0]}
		bound = (set(bound) - local) | (set(assigned or ()) & bound)

		pending = [lit for lit in body if not isinstance(lit, SomeLit)]
		changed = True
		while changed and pending:
			changed = False
			for lit in list(pending):
				missing, outputs = self.literal_io(lit, bound)
				if not missing:
					bound |= outputs
					pending.remove(lit)
					changed = True

		if pending:
			self._report_pending(pending, bound)

		for lit in body:
			for term in literal_terms(lit):
				self.check_closures(term, bound)
		return bound

	def _report_pending(self, pending: List[Literal], bound: Set[str]) -> None:
		ios = [self.literal_io(lit, bound) for lit in pending]
		filtered: List[List[Var]] = []
		for index, (missing, _outputs) in enumerate(ios):
			others: Set[str] = set()
			for j, (_m, outputs) in enumerate(ios):
				if j != index:
					others |= outputs
			filtered.append([v for v in missing if v.name not in others])
		if not any(filtered):
			filtered = [missing for missing, _outputs in ios]
		for missing in filtered:
			self.report_unsafe(missing)

	def check_closures(self, term: Term, bound: Set[str]) -> None:
		for t in iter_terms(term):
			if not isinstance(t, Comprehension):
				continue
			heads, body = comprehension_parts(t)
			inner = self.check_body(body, set(bound))
			for head in heads:
				self.report_unsafe([v for v in iter_vars(head) if v.name not in inner])
				self.check_closures(head, inner)


__all__ = ["check_safety"]
