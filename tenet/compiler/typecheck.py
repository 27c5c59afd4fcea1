# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Call resolution and local type checking.

Types are inferred only where they are obvious from the source: literals,
collection constructors, builtin results and variables assigned from any of
those. Everything else is `any` and always accepted.
"""

from __future__ import annotations

from typing import Dict, List, Mapping

from tenet.compiler.builtins import (
	ANY,
	ARRAY,
	BOOLEAN,
	COMPARISONS,
	NULL,
	NUMBER,
	OBJECT,
	OPERATORS,
	SET,
	STRING,
	Builtin,
)
from tenet.compiler.rules import Report
from tenet.compiler.scope import ModuleScope, RuleTable, module_scopes
from tenet.compiler.walk import (
	Comprehension,
	children,
	comprehension_parts,
	iter_rule_terms,
	literal_terms,
	rule_clauses,
)
from tenet.core.errors import TYPE_ERR, TenetError
from tenet.parser.ast import (
	ArrayCompr,
	ArrayTerm,
	AssignLit,
	BinOp,
	Call,
	Literal,
	Module,
	Neg,
	ObjectCompr,
	ObjectTerm,
	Scalar,
	SetCompr,
	SetTerm,
	Term,
	Var,
)

TypeEnv = Dict[str, str]


def check_functions(modules: Mapping[str, Module], table: RuleTable, report: Report) -> None:
	for _key, scope in module_scopes(modules, table):
		for rule in scope.module.rules:
			for term in iter_rule_terms(rule):
				if isinstance(term, Call):
					_check_call_target(term, scope, report)


def _check_call_target(call: Call, scope: ModuleScope, report: Report) -> None:
	kind, target, builtin = scope.resolve_function(call.name)
	if kind == "undefined":
		report(TenetError(TYPE_ERR, f"undefined function {call.name}", call.loc))
		return
	if kind == "builtin":
		assert builtin is not None
		want = builtin.arity
	else:
		assert target is not None
		want = scope.table.function_arity(target) or 0
	have = len(call.args)
	if have != want:
		report(TenetError(TYPE_ERR, f"{call.name}: arity mismatch", call.loc, details={"have": have, "want": want}))


def type_of(term: Term, env: TypeEnv) -> str:
	"""Best-effort static type of `term`; `any` when unknown."""
	if isinstance(term, Scalar):
		value = term.value
		if value is None:
			return NULL
		if isinstance(value, bool):
			return BOOLEAN
		if isinstance(value, str):
			return STRING
		return NUMBER
	if isinstance(term, (ArrayTerm, ArrayCompr)):
		return ARRAY
	if isinstance(term, (ObjectTerm, ObjectCompr)):
		return OBJECT
	if isinstance(term, (SetTerm, SetCompr)):
		return SET
	if isinstance(term, Var):
		return env.get(term.name, ANY)
	if isinstance(term, Neg):
		return NUMBER
	if isinstance(term, BinOp):
		if term.op in COMPARISONS:
			return BOOLEAN
		op = OPERATORS.get(term.op)
		if op is None:
			return ANY
		if term.op == "-":
			left = type_of(term.left, env)
			return left if left in (NUMBER, SET) else ANY
		return op.result
	return ANY


class _TypeChecker:
	def __init__(self, scope: ModuleScope, report: Report) -> None:
		self.scope = scope
		self.report = report

	def check_body(self, body: List[Literal], env: TypeEnv) -> TypeEnv:
		for lit in body:
			for term in literal_terms(lit):
				self.check_term(term, env)
			if isinstance(lit, AssignLit) and isinstance(lit.lhs, Var):
				env[lit.lhs.name] = type_of(lit.rhs, env)
		return env

	def check_term(self, term: Term, env: TypeEnv) -> None:
		if isinstance(term, Comprehension):
			heads, body = comprehension_parts(term)
			inner = self.check_body(body, dict(env))
			for head in heads:
				self.check_term(head, inner)
			return
		for child in children(term):
			self.check_term(child, env)
		if isinstance(term, Call):
			kind, _target, builtin = self.scope.resolve_function(term.name)
			if kind == "builtin" and builtin is not None and builtin.arity == len(term.args):
				self._check_args(term.name, builtin, term.args, term, env)
		elif isinstance(term, BinOp) and term.op in OPERATORS:
			op = OPERATORS[term.op]
			self._check_args(op.name, op, [term.left, term.right], term, env)

	def _check_args(self, name: str, builtin: Builtin, args: List[Term], at: Term, env: TypeEnv) -> None:
		have = [type_of(arg, env) for arg in args]
		ok = all(builtin.accepts(i, t) for i, t in enumerate(have))
		if ok and builtin.name == "minus" and {have[0], have[1]} == {NUMBER, SET}:
			ok = False
		if not ok:
			self.report(
				TenetError(
					TYPE_ERR,
					f"{name}: invalid argument(s)",
					at.loc,
					details={"have": have, "want": builtin.describe_args()},
				)
			)


def check_types(modules: Mapping[str, Module], table: RuleTable, report: Report) -> None:
	for _key, scope in module_scopes(modules, table):
		checker = _TypeChecker(scope, report)
		for rule in scope.module.rules:
			for index, (args, value, body) in enumerate(rule_clauses(rule)):
				env: TypeEnv = {}
				for arg in args:
					checker.check_term(arg, env)
				env = checker.check_body(body, env)
				if index == 0 and rule.key is not None:
					checker.check_term(rule.key, env)
				if value is not None:
					checker.check_term(value, env)


__all__ = ["check_functions", "check_types", "type_of"]
