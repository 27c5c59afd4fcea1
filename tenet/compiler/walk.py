# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
AST traversal helpers shared by the compiler stages.

Comprehensions are closures with their own body scope, so the default walk
stops at a comprehension node: callers that need the inside visit it
explicitly via `comprehension_parts`.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from tenet.parser.ast import (
	ArrayCompr,
	ArrayTerm,
	AssignLit,
	BinOp,
	Call,
	ExprLit,
	Literal,
	Neg,
	NotLit,
	ObjectCompr,
	ObjectTerm,
	Ref,
	Rule,
	SetCompr,
	SetTerm,
	SomeLit,
	Term,
	UnifyLit,
	Var,
)

WILDCARD = "_"

Comprehension = (ArrayCompr, SetCompr, ObjectCompr)


def children(term: Term) -> List[Term]:
	"""Direct sub-terms of `term`, excluding comprehension internals."""
	if isinstance(term, Ref):
		return [term.head, *term.path]
	if isinstance(term, Call):
		return list(term.args)
	if isinstance(term, (ArrayTerm, SetTerm)):
		return list(term.items)
	if isinstance(term, ObjectTerm):
		out: List[Term] = []
		for k, v in term.items:
			out.append(k)
			out.append(v)
		return out
	if isinstance(term, BinOp):
		return [term.left, term.right]
	if isinstance(term, Neg):
		return [term.operand]
	return []


def iter_terms(term: Term) -> Iterator[Term]:
	"""Pre-order walk that yields comprehension nodes but does not enter them."""
	yield term
	if isinstance(term, Comprehension):
		return
	for child in children(term):
		yield from iter_terms(child)


def comprehension_parts(term: Term) -> Tuple[List[Term], List[Literal]]:
	"""Return (head terms, body) for a comprehension node."""
	if isinstance(term, ObjectCompr):
		return [term.key, term.value], term.body
	if isinstance(term, (ArrayCompr, SetCompr)):
		return [term.term], term.body
	raise TypeError(f"not a comprehension: {type(term).__name__}")


def literal_terms(lit: Literal) -> List[Term]:
	if isinstance(lit, (ExprLit, NotLit)):
		return [lit.term]
	if isinstance(lit, (AssignLit, UnifyLit)):
		return [lit.lhs, lit.rhs]
	if isinstance(lit, SomeLit):
		return list(lit.names)
	return []


def iter_vars(term: Term) -> Iterator[Var]:
	"""Variables occurring in `term` outside comprehensions (wildcards skipped)."""
	for t in iter_terms(term):
		if isinstance(t, Var) and t.name != WILDCARD:
			yield t


def iter_all_terms(term: Term) -> Iterator[Term]:
	"""Walk `term` including comprehension heads and bodies."""
	for t in iter_terms(term):
		yield t
		if isinstance(t, Comprehension):
			heads, body = comprehension_parts(t)
			for h in heads:
				yield from iter_all_terms(h)
			for lit in body:
				for lt in literal_terms(lit):
					yield from iter_all_terms(lt)


def rule_clauses(rule: Rule) -> Iterator[Tuple[List[Term], Optional[Term], List[Literal]]]:
	"""
	Yield (args, value, body) for the main clause and each `else` clause.

	`else` clauses share the rule's args. The partial-rule key only belongs
	to the main clause; callers read it from `rule.key`.
	"""
	yield list(rule.args), rule.value, rule.body
	for clause in rule.else_clauses:
		yield list(rule.args), clause.value, clause.body


def rule_head_terms(rule: Rule) -> List[Term]:
	out: List[Term] = []
	if rule.key is not None:
		out.append(rule.key)
	if rule.value is not None:
		out.append(rule.value)
	return out


def iter_rule_terms(rule: Rule) -> Iterator[Term]:
	"""Every term of a rule (args, head, bodies, else clauses), comprehensions included."""
	for t in [*rule.args, *rule_head_terms(rule)]:
		yield from iter_all_terms(t)
	for lit in rule.body:
		for t in literal_terms(lit):
			yield from iter_all_terms(t)
	for clause in rule.else_clauses:
		if clause.value is not None:
			yield from iter_all_terms(clause.value)
		for lit in clause.body:
			for t in literal_terms(lit):
				yield from iter_all_terms(t)


__all__ = [
	"Comprehension",
	"WILDCARD",
	"children",
	"comprehension_parts",
	"iter_all_terms",
	"iter_rule_terms",
	"iter_terms",
	"iter_vars",
	"literal_terms",
	"rule_clauses",
	"rule_head_terms",
]
