# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Tenet: a batch validator for the Tenet policy language.
"""

__version__ = "0.1.0"
