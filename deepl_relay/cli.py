"""Command line interface for the DeepL relay."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import pathlib
import sys
from typing import Any, Iterable, List, Optional

from .configuration import load_settings
from .errors import (
    RelayError,
    RequestValidationError,
    TranslationProviderConfigurationError,
)
from .structures import TextFormat, TextInput, UsageReport
from .translator import build_translator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deepl-relay",
        description="Translate text, markdown or rich-text blocks through DeepL.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to a YAML configuration file (default: ./deepl-relay.yaml).",
    )
    parser.add_argument(
        "-p",
        "--provider",
        choices=["deepl", "echo"],
        help="Translation provider identifier (default: from configuration).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    translate = commands.add_parser("translate", help="Translate text.")
    translate.add_argument(
        "text",
        nargs="*",
        help="Texts to translate. Each argument is translated separately.",
    )
    translate.add_argument(
        "-i",
        "--input",
        help="Read the text from a file. A .json file may hold a list of "
        "strings or a rich-text block document.",
    )
    translate.add_argument(
        "-t",
        "--target-locale",
        required=True,
        help="Destination locale (e.g. de, en-GB, pt-BR).",
    )
    translate.add_argument(
        "-s",
        "--source-locale",
        help="Source locale (e.g. en). Required whenever there is text to translate.",
    )
    translate.add_argument(
        "-f",
        "--format",
        choices=[item.value for item in TextFormat],
        help="Format of the input text (default: HTML-aware).",
    )
    translate.add_argument(
        "--priority",
        type=float,
        help="Scheduling priority; higher values are dispatched first.",
    )

    commands.add_parser("usage", help="Show the account's character usage.")
    return parser


def read_input(path: str) -> TextInput:
    """Load request text from a file."""

    input_path = pathlib.Path(path).expanduser()
    if not input_path.is_file():
        raise RequestValidationError(f"Input file not found: {input_path}")
    content = input_path.read_text(encoding="utf-8")
    if input_path.suffix.lower() == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise RequestValidationError(
                f"Input file {input_path} is not valid JSON: {exc}"
            ) from exc
    return content


def print_result(result: List[Any], *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
        return
    for item in result:
        print(item)


def print_usage(report: UsageReport) -> None:
    limit = "unlimited" if report.character_limit is None else str(report.character_limit)
    print(f"  Characters used:  {report.character_count}")
    print(f"  Character limit:  {limit}")


async def run_command(args: argparse.Namespace) -> int:
    config_path = pathlib.Path(args.config).expanduser() if args.config else None
    settings = load_settings(config_path)
    overrides: dict[str, Any] = {}
    if args.provider:
        overrides["provider"] = args.provider
    if args.debug_provider:
        overrides["provider_debug"] = True
    if overrides:
        settings = settings.model_copy(update=overrides)

    translator = build_translator(settings)

    if args.command == "usage":
        print_usage(await translator.usage())
        return 0

    if args.input:
        text = read_input(args.input)
        as_json = pathlib.Path(args.input).suffix.lower() == ".json"
    else:
        text = list(args.text)
        as_json = False

    result = await translator.translate_text(
        text,
        source_locale=args.source_locale,
        target_locale=args.target_locale,
        priority=args.priority,
        format=args.format,
    )
    print_result(result, as_json=as_json)
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    level = logging.WARNING
    if args.verbose:
        level = logging.INFO
    if args.debug_provider:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    try:
        return asyncio.run(run_command(args))
    except TranslationProviderConfigurationError as exc:
        print(f"Configuration problem: {exc}")
        return 1
    except RelayError as exc:
        print(exc)
        return 1
    except KeyboardInterrupt:
        print("Translation interrupted by user.")
        return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
