# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse

from tenet.check import DEFAULT_ERROR_LIMIT, CheckParams, OutputFormat, check_modules
from tenet.log import LOG_FORMATS, LogOptions, configure_logging


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="tenet", description="Tenet policy tooling")
	p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")
	p.add_argument("--log-format", choices=LOG_FORMATS, default="console", help="Log renderer (default: console)")
	sub = p.add_subparsers(dest="cmd", required=True)

	check = sub.add_parser("check", help="Check policy modules for parse and compilation errors")
	check.add_argument("paths", nargs="+", metavar="path", help="Module files, directories or bundles to check")
	check.add_argument(
		"-f",
		"--format",
		choices=[f.value for f in OutputFormat],
		default=OutputFormat.PRETTY.value,
		help="Output format for diagnostics (default: pretty)",
	)
	check.add_argument(
		"-m",
		"--max-errors",
		type=int,
		default=DEFAULT_ERROR_LIMIT,
		help=f"Stop after this many errors; zero or less means no limit (default: {DEFAULT_ERROR_LIMIT})",
	)
	check.add_argument(
		"--ignore",
		action="append",
		default=[],
		metavar="PATTERN",
		help="Skip files and directories whose name matches this glob (repeatable)",
	)
	check.add_argument("-b", "--bundle", action="store_true", help="Load paths as bundle directories or tarballs")
	return p


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)

	log = LogOptions(verbose=bool(args.verbose), fmt=args.log_format)
	configure_logging(log.verbose, log.fmt)

	if args.cmd == "check":
		params = CheckParams(
			format=OutputFormat(args.format),
			error_limit=args.max_errors,
			ignore=tuple(args.ignore),
			bundle_mode=bool(args.bundle),
		)
		return check_modules(params, args.paths)

	p.error(f"unknown command: {args.cmd}")
	return 2


__all__ = ["main"]
