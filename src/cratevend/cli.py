"""Command line entry point.

Usage:
    cratevend [--root DIR] [build] [--backend ...] [--report FILE]
    cratevend [--root DIR] test
    cratevend [--root DIR] clean
"""

from __future__ import annotations

import argparse
import shlex
import sys
from collections.abc import Sequence
from pathlib import Path

from cratevend.backends import CargoVendorBackend, InProcessVendorBackend, VendorBackend
from cratevend.config import DEFAULT_UNKNOWN_LICENSE, VendorConfig
from cratevend.errors import VendorError
from cratevend.licenses import CargoManifestLicenseScanner, CommandLicenseScanner, LicenseScanner
from cratevend.observability import StructuredLogger
from cratevend.workflow import OperationResult, Workflow

_COMMANDS = ("build", "test", "clean")
# options taking a value that belong to the top-level parser
_GLOBAL_OPTIONS = ("--root", "--log-file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cratevend",
        description="Vendor Cargo dependencies and write license and checksum manifests.",
    )
    parser.add_argument("--root", type=Path, default=Path("."), help="Crate root directory")
    parser.add_argument("--log-file", type=Path, help="Write structured run logs as JSON lines")
    sub = parser.add_subparsers(dest="command")

    vendoring = argparse.ArgumentParser(add_help=False)
    vendoring.add_argument(
        "--backend",
        choices=("cargo", "inprocess"),
        default="cargo",
        help="Vendoring engine (inprocess stages placeholders without cargo)",
    )
    vendoring.add_argument("--cargo", default="cargo", help="cargo executable")
    vendoring.add_argument(
        "--vendor-arg",
        action="append",
        default=[],
        help="Extra argument passed to `cargo vendor` (repeatable)",
    )
    vendoring.add_argument("--report", type=Path, help="Write a run report (.json or .cbor)")

    build_p = sub.add_parser(
        "build",
        parents=[vendoring],
        help="Vendor, then write config, licenses and checksum manifests",
    )
    build_p.add_argument(
        "--license-helper",
        help="Command printing license identifiers for a package directory",
    )
    build_p.add_argument(
        "--unknown-marker",
        default=DEFAULT_UNKNOWN_LICENSE,
        help="Entry recorded for packages without a determinable license",
    )

    sub.add_parser(
        "test",
        parents=[vendoring],
        help="Vendor, then write config and checksum manifest only",
    )
    sub.add_parser("clean", help="Remove the vendor directory and the lockfile")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    arguments = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(_with_default_command(arguments))
    if args.command is None:
        parser.error("a command is required: build, test or clean")

    config = VendorConfig(
        root=args.root,
        unknown_license=getattr(args, "unknown_marker", DEFAULT_UNKNOWN_LICENSE),
    )
    logger = StructuredLogger()
    workflow = Workflow(
        config=config,
        backend=_backend(args),
        scanner=_scanner(args),
        logger=logger,
    )

    try:
        if args.command == "build":
            result = workflow.build()
        elif args.command == "test":
            result = workflow.test()
        else:
            result = workflow.clean()
    finally:
        if args.log_file is not None:
            logger.to_json_lines(args.log_file)

    return _finish(result, args)


def _finish(result: OperationResult, args: argparse.Namespace) -> int:
    for path in result.stale_outputs:
        print(f"warning: {path} may be out of date", file=sys.stderr)
    if result.error is not None:
        print(f"error: {result.error}", file=sys.stderr)
        return result.exit_code

    report_path = getattr(args, "report", None)
    if result.report is not None and report_path is not None:
        try:
            result.report.write(report_path)
        except VendorError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
    print(f"{result.operation}: {', '.join(result.step_names())}")
    return result.exit_code


def _with_default_command(arguments: list[str]) -> list[str]:
    """Insert `build` after the global options when no sub-command is named."""
    index = 0
    while index < len(arguments):
        token = arguments[index]
        if token in _COMMANDS or token in ("-h", "--help"):
            return arguments
        if token in _GLOBAL_OPTIONS:
            index += 2
        elif token.startswith(tuple(f"{option}=" for option in _GLOBAL_OPTIONS)):
            index += 1
        else:
            break
    return [*arguments[:index], "build", *arguments[index:]]


def _backend(args: argparse.Namespace) -> VendorBackend:
    if getattr(args, "backend", "cargo") == "inprocess":
        return InProcessVendorBackend()
    return CargoVendorBackend(
        tool=getattr(args, "cargo", "cargo"),
        vendor_args=list(getattr(args, "vendor_arg", [])),
    )


def _scanner(args: argparse.Namespace) -> LicenseScanner:
    helper = getattr(args, "license_helper", None)
    if helper:
        return CommandLicenseScanner(command=tuple(shlex.split(helper)))
    return CargoManifestLicenseScanner()
