# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import io
import json

from tenet.check import OutputFormat, output_errors
from tenet.core.errors import COMPILE_ERR, UNSAFE_VAR_ERR, Errors, LoaderErrors, TenetError
from tenet.core.location import Location


def _errors() -> Errors:
	return Errors(
		[
			TenetError(UNSAFE_VAR_ERR, "var x is unsafe", Location(file="a.tenet", row=3, col=2, text="\tx")),
			TenetError(COMPILE_ERR, "error limit reached"),
		]
	)


def test_pretty_renders_each_error_on_its_own_line():
	out = io.StringIO()
	output_errors(_errors(), OutputFormat.PRETTY, stdout=out)
	assert out.getvalue() == (
		"2 errors occurred:\n"
		"a.tenet:3: tenet_unsafe_var_error: var x is unsafe\n"
		"tenet_compile_error: error limit reached\n"
	)


def test_pretty_single_error():
	out = io.StringIO()
	output_errors(Errors(_errors()[:1]), OutputFormat.PRETTY, stdout=out)
	assert out.getvalue() == "1 error occurred: a.tenet:3: tenet_unsafe_var_error: var x is unsafe\n"


def test_json_is_indented_and_complete():
	out = io.StringIO()
	output_errors(_errors(), OutputFormat.JSON, stdout=out)
	text = out.getvalue()
	assert text.startswith('{\n  "errors": [\n')
	assert json.loads(text) == {
		"errors": [
			{
				"code": "tenet_unsafe_var_error",
				"message": "var x is unsafe",
				"location": {"file": "a.tenet", "row": 3, "col": 2, "text": "\tx"},
			},
			{"code": "tenet_compile_error", "message": "error limit reached"},
		]
	}


def test_json_loader_errors():
	out = io.StringIO()
	err = LoaderErrors([TenetError("tenet_load_error", "stat x: no such file or directory")])
	output_errors(err, "json", stdout=out)
	assert json.loads(out.getvalue()) == {
		"errors": [{"code": "tenet_load_error", "message": "stat x: no such file or directory"}]
	}


def test_json_failure_goes_to_stderr():
	out, errout = io.StringIO(), io.StringIO()
	output_errors(object(), OutputFormat.JSON, stdout=out, stderr=errout)
	assert out.getvalue() == ""
	assert "not JSON serializable" in errout.getvalue()


def test_defaults_to_process_streams(capsys):
	output_errors(_errors(), OutputFormat.PRETTY)
	assert capsys.readouterr().out.startswith("2 errors occurred:")
