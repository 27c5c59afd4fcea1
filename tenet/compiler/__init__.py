# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Compiler: runs the semantic checks over a set of parsed modules.

    compiler = Compiler().set_error_limit(10)
    compiler.compile(modules)
    if compiler.failed():
        print(compiler.errors)

Stages run in a fixed order and compilation stops after the first stage
that reported anything; later stages assume the earlier invariants hold.
"""

from __future__ import annotations

from typing import Callable, List, Mapping, Tuple

import structlog

from tenet.compiler.graph import check_recursion
from tenet.compiler.rules import Report, check_imports, check_rule_conflicts
from tenet.compiler.safety import check_safety
from tenet.compiler.scope import RuleTable
from tenet.compiler.typecheck import check_functions, check_types
from tenet.core.errors import COMPILE_ERR, Errors, TenetError
from tenet.parser.ast import Module

logger = structlog.get_logger(__name__)

Stage = Callable[[Mapping[str, Module], RuleTable, Report], None]

STAGES: List[Tuple[str, Stage]] = [
	("check_imports", check_imports),
	("check_rule_conflicts", check_rule_conflicts),
	("check_safety", check_safety),
	("check_functions", check_functions),
	("check_types", check_types),
	("check_recursion", check_recursion),
]


class _LimitReached(Exception):
	pass


class Compiler:
	def __init__(self) -> None:
		self.errors = Errors()
		self.error_limit = 0
		self.modules: dict[str, Module] = {}

	def set_error_limit(self, limit: int) -> Compiler:
		"""Cap reported errors at `limit`; zero or negative means unbounded."""
		self.error_limit = limit
		return self

	def failed(self) -> bool:
		return bool(self.errors)

	def _err(self, error: TenetError) -> None:
		if self.error_limit > 0 and len(self.errors) >= self.error_limit:
			self.errors.append(TenetError(COMPILE_ERR, "error limit reached"))
			logger.debug("error_limit_reached", limit=self.error_limit)
			raise _LimitReached()
		self.errors.append(error)

	def compile(self, modules: Mapping[str, Module]) -> Compiler:
		self.modules = {key: modules[key] for key in sorted(modules)}
		self.errors = Errors()
		logger.debug("compile_started", modules=len(self.modules))
		table = RuleTable(self.modules)
		try:
			for name, stage in STAGES:
				stage(self.modules, table, self._err)
				if self.errors:
					logger.debug("compile_stage_failed", stage=name, errors=len(self.errors))
					break
		except _LimitReached:
			pass
		except RecursionError:
			self.errors.append(TenetError(COMPILE_ERR, "expression nested too deeply"))
			logger.debug("compile_stage_failed", stage=name, errors=len(self.errors))
		logger.debug("compile_finished", errors=len(self.errors))
		return self


__all__ = ["Compiler", "STAGES"]
