"""Пакетная конвертация из командной строки, без окна.

    png2jpg-cli logo.png icons/*.png -o out -q 0.85
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from png2jpg.config import ConverterSettings, configure_logging
from png2jpg.models.image_model import ConversionStatus, SourceImage
from png2jpg.services.file_service import FileService
from png2jpg.services.queue_service import ConversionQueue
from png2jpg.utils.formatting import format_bytes, format_savings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="png2jpg-cli",
        description="Convert PNG images to JPEG, filling transparent areas with white",
    )
    parser.add_argument("files", nargs="+", help="PNG files to convert")
    parser.add_argument(
        "-o", "--output-dir", default=None,
        help="Directory for the JPEG files (default: next to each source file)",
    )
    parser.add_argument("-q", "--quality", type=float, default=None, help="JPEG quality in [0, 1] (default: 0.9)")
    parser.add_argument("-w", "--workers", type=int, default=None, help="Maximum concurrent conversions (default: 4)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.quality is not None and not 0.0 <= args.quality <= 1.0:
        parser.error(f"quality must be in [0, 1], got {args.quality}")
    try:
        settings = ConverterSettings().with_overrides(
            quality=args.quality,
            max_workers=args.workers,
            log_level=logging.DEBUG if args.verbose else None,
        )
    except ValueError as exc:
        parser.error(str(exc))

    configure_logging(settings.log_level)

    output_dir = Path(args.output_dir) if args.output_dir else None
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    file_service = FileService()
    failures = 0
    sources: List[SourceImage] = []
    for name in args.files:
        try:
            sources.append(file_service.load_source(name))
        except OSError as exc:
            logger.error(f"Cannot read {name}: {exc}")
            failures += 1

    queue = ConversionQueue(settings=settings)
    try:
        queue.add(sources)
    except ValueError as exc:
        logger.error(str(exc))
        return 1
    failures += len(sources) - len(queue.records)

    asyncio.run(queue.convert_pending())

    for record in queue.records:
        if record.status is not ConversionStatus.COMPLETED:
            print(f"{record.source.name}: failed ({record.error})", file=sys.stderr)
            failures += 1
            continue
        target_dir = output_dir or record.source.path.parent
        try:
            target = file_service.save_converted(record.converted, record.source.name, target_dir)
        except OSError as exc:
            logger.error(f"Cannot write {record.source.name}: {exc}")
            failures += 1
            continue
        print(
            f"{record.source.name} -> {target.name}: "
            f"{format_bytes(record.original_size)} -> {format_bytes(record.converted_size)} "
            f"({format_savings(record.savings_ratio)})"
        )

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
