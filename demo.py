from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.rule import Rule
from rich.traceback import install as rich_traceback

from data_mocker import OpenApiDataMocker
from errors import OpenApiDataMockerError
from type import MockerConfig
from utils import read_schema_file

rich_traceback(show_locals=False)
console = Console()

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openapi-mock",
        description="Mock values for an OpenAPI 3.0 schema fragment.",
    )
    parser.add_argument(
        "schema",
        type=str,
        help="Path to a schema fragment (JSON or YAML).",
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Seed for reproducible output."
    )
    parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="How many values to mock.",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=MockerConfig.max_depth,
        help="Nesting limit for items/properties.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log retries and ignored formats.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    schema = read_schema_file(args.schema)
    mocker = OpenApiDataMocker(
        MockerConfig(seed=args.seed, max_depth=args.max_depth)
    )
    logger.debug("Mocking %s with seed %s", args.schema, mocker.seed)

    console.print(Rule(f"[cyan]{args.schema}[/cyan]"))
    for _ in range(args.count):
        try:
            value = mocker.mock_from_schema(schema)
        except OpenApiDataMockerError as e:
            console.print(
                Panel.fit(
                    f"[red]{type(e).__name__}[/red]: {e.message}\n"
                    f"[dim]{e.details}[/dim]",
                    title="Mocking failed",
                )
            )
            return 1

        console.print_json(data=value)

    console.print(Rule(f"[green]{args.count} value(s), seed {mocker.seed}[/green]"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
