"""CLI entry point for the receipts module."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import ReceiptsConfig, load_config
from .ocr import ENGINE_NAMES
from .parser import ReceiptParser
from .pipeline import PipelineError, ReceiptPipeline


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="prizma-receipts",
        description="Разчитане на касови бележки: снимка → продукти, цени и обща сума",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Път до конфигурационен файл (TOML)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Подробен изход (DEBUG)"
    )

    sub = parser.add_subparsers(dest="command")

    # scan
    scan_parser = sub.add_parser("scan", help="Разчитане на снимка на бележка")
    scan_parser.add_argument("image", type=str, help="Файл със снимка")
    scan_parser.add_argument("--json", action="store_true", help="Изход в JSON формат")

    # parse
    parse_parser = sub.add_parser("parse", help="Анализ на записан OCR текст")
    parse_parser.add_argument("textfile", type=str, help="Текстов файл с OCR резултат")
    parse_parser.add_argument("--json", action="store_true", help="Изход в JSON формат")

    # engines
    sub.add_parser("engines", help="Списък на конфигурираните OCR двигатели")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    config = load_config(args.config)

    match args.command:
        case "scan":
            asyncio.run(_cmd_scan(config, args))
        case "parse":
            _cmd_parse(config, args)
        case "engines":
            _cmd_engines(config)


def _print_json(obj) -> None:
    print(json.dumps(dataclasses.asdict(obj), ensure_ascii=False, indent=2))


async def _cmd_scan(config: ReceiptsConfig, args) -> None:
    path = Path(args.image)
    if not path.exists():
        print(f"Файлът не съществува: {path}", file=sys.stderr)
        sys.exit(1)

    try:
        pipeline = ReceiptPipeline.from_config(config)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    if not args.json:
        print(f"🔍 Разчитане с {', '.join(pipeline.engines)}...")

    try:
        result = await pipeline.process_receipt_image(path.read_bytes())
    except PipelineError as e:
        print(f"Грешка: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        _print_json(result)
    else:
        print(result.display())


def _cmd_parse(config: ReceiptsConfig, args) -> None:
    path = Path(args.textfile)
    if not path.exists():
        print(f"Файлът не съществува: {path}", file=sys.stderr)
        sys.exit(1)

    parser = ReceiptParser(thresholds=config.thresholds)
    receipt = parser.parse(path.read_text(encoding="utf-8"), engine="file")

    if args.json:
        _print_json(receipt)
        return

    print(f"🏪 {receipt.retailer}  📅 {receipt.date}")
    print(f"{'─' * 50}")
    for item in receipt.items:
        print(
            f"  {item.name[:28]:<28} {item.quantity:>6g} {item.price:>8.2f}"
            f"  [{item.category}] {item.confidence:.0%}"
        )
    print(f"{'─' * 50}")
    validation = receipt.metadata.total_validation
    mark = "✓" if validation.valid else "✗"
    print(
        f"  Общо: {receipt.total:.2f} лв  (изчислено {validation.calculated_total:.2f} {mark})"
    )
    print(f"  Увереност: {receipt.confidence:.0%}")
    for issue in receipt.quality_issues:
        print(f"  ⚠ [{issue.severity}] {issue.description}")
    for suggestion in receipt.suggestions:
        print(f"  💡 {suggestion}")


def _has_credentials(name: str, config: ReceiptsConfig) -> bool:
    ocr = config.ocr
    match name:
        case "google_vision":
            gv = ocr.google_vision
            return bool(gv.api_key or gv.project_id or gv.credentials_path)
        case "gpt_vision":
            return bool(ocr.gpt_vision.api_key)
        case "claude":
            return bool(ocr.claude.api_key)
        case "gemini":
            return bool(ocr.gemini.api_key)
    return False


def _cmd_engines(config: ReceiptsConfig) -> None:
    print(f"Налични двигатели: {len(ENGINE_NAMES)}")
    for name in ENGINE_NAMES:
        order = (
            f"#{config.ocr.engines.index(name) + 1}"
            if name in config.ocr.engines
            else "  "
        )
        status = "✓ ключ" if _has_credentials(name, config) else "✗ няма ключ"
        print(f"  {order} {name:<14} {status}")
    unknown = [n for n in config.ocr.engines if n not in ENGINE_NAMES]
    for name in unknown:
        print(f"  ? {name:<14} непознат двигател")
