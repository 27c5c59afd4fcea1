# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from typing import Dict

import pytest

from tenet.compiler import Compiler
from tenet.parser import parse_module


def compile_sources(sources: Dict[str, str], limit: int = 0) -> Compiler:
	modules = {name: parse_module(src, name) for name, src in sources.items()}
	return Compiler().set_error_limit(limit).compile(modules)


@pytest.fixture
def compile_src():
	return compile_sources
