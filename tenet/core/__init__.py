# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Shared diagnostic types used by the parser, loader, compiler and reporter.
"""

from tenet.core.errors import Errors, LoaderErrors, TenetError
from tenet.core.location import Location

__all__ = ["Errors", "LoaderErrors", "Location", "TenetError"]
