# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import pytest

from tenet.log import configure_logging


@pytest.fixture(autouse=True)
def _quiet_logging() -> None:
	"""
	Route structlog to stderr at warning level for every test.

	structlog's unconfigured default prints every event to stdout, which would
	leak into assertions about diagnostic output.
	"""
	configure_logging()
