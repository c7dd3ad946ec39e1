"""Command line interface.

Usage:
    lambdapack modules package.json --cache s3://bucket/cache --output-dir dist
    lambdapack project app-1.0.0.tgz dist/ --disable-upload
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from lambdapack.builder import archive_modules
from lambdapack.config import COMPRESSOR_MODES, PackagerConfig
from lambdapack.errors import PackagerError
from lambdapack.observability import stream_sink
from lambdapack.project import archive_project


def cmd_modules(args: argparse.Namespace, config: PackagerConfig) -> str:
    return archive_modules(
        args.manifest,
        cache_uri=args.cache,
        keep=args.keep,
        output_dir=args.output_dir,
        config=config,
    )


def cmd_project(args: argparse.Namespace, config: PackagerConfig) -> str:
    return archive_project(
        args.source,
        args.target,
        cache_uri=args.cache,
        keep=args.keep,
        disable_upload=args.disable_upload,
        config=config,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lambdapack",
        description="Build cached dependency archives and deployable project bundles",
    )
    parser.add_argument("--installer", help="Installer executable (default: npm)")
    parser.add_argument("--compressor", choices=COMPRESSOR_MODES, help="Archive implementation")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    sub = parser.add_subparsers(dest="command", required=True)

    modules_p = sub.add_parser("modules", help="Build or fetch the node_modules archive")
    modules_p.add_argument("manifest", help="Path to package.json")
    modules_p.add_argument("--cache", help="Cache location, s3://bucket/prefix")
    modules_p.add_argument("--output-dir", help="Directory receiving a copy of the archive")
    modules_p.add_argument("--keep", action="store_true", help="Keep intermediate files")
    modules_p.set_defaults(func=cmd_modules)

    project_p = sub.add_parser("project", help="Package an npm pack bundle with its dependencies")
    project_p.add_argument("source", help="Bundle location (path or s3://bucket/key.tgz)")
    project_p.add_argument("target", help="Output location (directory, .zip path, or s3:// URI)")
    project_p.add_argument("--cache", help="Cache location, s3://bucket/prefix")
    project_p.add_argument("--keep", action="store_true", help="Keep intermediate files")
    project_p.add_argument(
        "--disable-upload",
        action="store_true",
        help="Copy the archive locally instead of uploading it",
    )
    project_p.set_defaults(func=cmd_project)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides: dict[str, object] = {}
    if args.installer:
        overrides["installer"] = args.installer
    if args.compressor:
        overrides["compressor"] = args.compressor
    if not args.quiet:
        overrides["log_sink"] = stream_sink()

    try:
        config = PackagerConfig.from_env(**overrides)
        result = args.func(args, config)
    except PackagerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
