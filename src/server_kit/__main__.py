from __future__ import annotations

import argparse
import importlib
import logging
import sys
from typing import Optional, Sequence

from pydantic import BaseModel

from server_kit.config import ConfigBuilder, ConfigError, ConfigFormat, ServerConfig, dump_document, to_document
from server_kit.logging import init_logging_from_env

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="server-kit", description="Service configuration tools")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: resolve
    resolve_parser = subparsers.add_parser("resolve", help="Resolve configuration sources and print the result")
    resolve_parser.add_argument(
        "--config",
        action="append",
        default=[],
        metavar="PATH",
        help="Config source (.env* or .toml/.yaml/.yml/.json). Repeat in precedence order.",
    )
    resolve_parser.add_argument(
        "--dotenv",
        action="store_true",
        help="Load ./.env before the other sources.",
    )
    resolve_parser.add_argument(
        "--target",
        default=None,
        metavar="MODULE:CLASS",
        help="Configuration model to bind (default: server_kit.config.ServerConfig)",
    )
    resolve_parser.add_argument(
        "--env-prefix",
        default="",
        help="Prefix for derived environment variable names.",
    )
    resolve_parser.add_argument(
        "--format",
        choices=[ConfigFormat.JSON.value, ConfigFormat.YAML.value, ConfigFormat.TOML.value],
        default=ConfigFormat.JSON.value,
        help="Output format (default: json)",
    )
    return parser


def _load_target(spec: Optional[str]) -> type[BaseModel]:
    if spec is None:
        return ServerConfig
    module_name, sep, attr = spec.partition(":")
    if not sep or not attr:
        raise SystemExit(f"--target must look like 'package.module:ClassName', got {spec!r}")
    target = getattr(importlib.import_module(module_name), attr)
    if not (isinstance(target, type) and issubclass(target, BaseModel)):
        raise SystemExit(f"--target {spec!r} is not a pydantic model")
    return target


def _resolve(args: argparse.Namespace) -> int:
    target = _load_target(args.target)
    builder = ConfigBuilder(target, env_prefix=args.env_prefix)
    if args.dotenv:
        builder.with_dotenv()
    for path in args.config:
        builder.with_config_file(path)

    config = builder.build()
    sys.stdout.write(dump_document(to_document(config), ConfigFormat(args.format)))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    init_logging_from_env(default_level="warning")

    try:
        if args.command == "resolve":
            return _resolve(args)
    except ConfigError as exc:
        logger.error("config.build_failed error=%s", exc)
        return EXIT_CONFIG_ERROR
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
