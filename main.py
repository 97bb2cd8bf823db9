from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

# Core config (app name/version)
from core import config
from core.errors import TransportError
from core.helper import ARGUMENT_HELP, DESCRIPTION, EPILOG
from core.models import Chapter, ChapterOutcome
from core.utils import format_time, load_settings, sanitize_title, save_settings, setup_logger

from logic.downloader import DownloadOptions, download_chapters
from logic.progress import LoggingProgressSink

logger = logging.getLogger("main")


def parse_chapter_arg(value: str) -> Chapter:
    """'ID:NUMMER[:NAME]' -> Chapter. Der Name darf selbst Doppelpunkte enthalten."""
    parts = value.split(":", 2)
    if len(parts) < 2 or not parts[0].strip() or not parts[1].strip():
        raise argparse.ArgumentTypeError(f"Ungültige Kapitelangabe {value!r}, erwartet ID:NUMMER[:NAME]")
    name = parts[2].strip() if len(parts) == 3 else ""
    return Chapter(id=parts[0].strip(), number=parts[1].strip(), display_name=name)


def load_chapters_file(path: Path) -> List[Chapter]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: erwartet eine JSON-Liste")
    chapters = []
    for item in data:
        if not isinstance(item, dict) or not item.get("id"):
            raise ValueError(f"{path}: Eintrag ohne id: {item!r}")
        chapters.append(
            Chapter(
                id=str(item["id"]),
                number=str(item.get("number") or "0"),
                display_name=str(item.get("name") or item.get("display_name") or ""),
            )
        )
    return chapters


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mangadex-pdf",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("chapters", nargs="*", type=parse_chapter_arg, help=ARGUMENT_HELP["chapters"])
    parser.add_argument("-f", "--chapters-file", type=Path, help=ARGUMENT_HELP["chapters_file"])
    parser.add_argument("-t", "--title", help=ARGUMENT_HELP["title"])
    parser.add_argument("-d", "--dest", type=Path, help=ARGUMENT_HELP["dest"])
    parser.add_argument("-w", "--workers", type=int, help=ARGUMENT_HELP["workers"])
    parser.add_argument("-p", "--parallel-chapters", type=int, help=ARGUMENT_HELP["parallel_chapters"])
    parser.add_argument("--timeout", type=float, help=ARGUMENT_HELP["timeout"])
    parser.add_argument("--data-saver", action="store_true", default=None, help=ARGUMENT_HELP["data_saver"])
    parser.add_argument("--grayscale", action="store_true", default=None, help=ARGUMENT_HELP["grayscale"])
    parser.add_argument("--jpeg-quality", type=int, help=ARGUMENT_HELP["jpeg_quality"])
    parser.add_argument("--settings", type=Path, help=ARGUMENT_HELP["settings"])
    parser.add_argument("--save-settings", action="store_true", help=ARGUMENT_HELP["save_settings"])
    parser.add_argument("-v", "--verbose", action="store_true", help=ARGUMENT_HELP["verbose"])
    parser.add_argument("--version", action="version", version=f"{config.APP_NAME} v{config.APP_VERSION}")
    return parser


def resolve_dest(args: argparse.Namespace, settings: dict) -> Path:
    if args.dest:
        return args.dest
    base = Path(settings.get("download_dir") or config.DOWNLOADS_DIR)
    return base / sanitize_title(args.title) if args.title else base


def options_from_args(args: argparse.Namespace, settings: dict) -> DownloadOptions:
    return DownloadOptions.from_settings(
        settings,
        max_workers=args.workers,
        max_parallel_chapters=args.parallel_chapters,
        timeout=args.timeout,
        data_saver=args.data_saver,
        grayscale=args.grayscale,
        jpeg_quality=args.jpeg_quality,
    )


def persist_options(options: DownloadOptions, settings: dict, settings_file: Optional[Path]) -> None:
    settings = dict(settings)
    settings.update({
        "max_concurrent_downloads": options.max_workers,
        "max_parallel_chapters": options.max_parallel_chapters,
        "timeout": options.timeout,
        "data_saver": options.data_saver,
        "grayscale": options.grayscale,
        "jpeg_quality": options.jpeg_quality,
    })
    save_settings(settings, settings_file)


def report(outcomes: Sequence[ChapterOutcome], dest: Path, elapsed: float) -> None:
    succeeded = [o for o in outcomes if o.success]
    failed = [o for o in outcomes if not o.success]
    logger.info("-" * 60)
    logger.info("DOWNLOAD ABGESCHLOSSEN")
    for outcome in outcomes:
        logger.info(" %s %s", "OK  " if outcome.success else "FEHL", outcome.describe())
    logger.info("Erfolgreich: %d Kapitel", len(succeeded))
    logger.info("Seiten gesamt: %d", sum(o.page_count for o in succeeded))
    logger.info("Übersprungene Seiten: %d", sum(o.dropped for o in outcomes))
    logger.info("Gesamtzeit: %s", format_time(elapsed))
    logger.info("Fehlgeschlagen: %d Kapitel", len(failed))
    logger.info("Zielordner: %s", dest)
    if os.path.exists(os.path.join(dest, "error_log.txt")):
        logger.info("Fehler-Log: error_log.txt erstellt")
    logger.info("-" * 60)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    for name in ("main", "core", "logic"):
        setup_logger(name, level=level)

    chapters: List[Chapter] = list(args.chapters)
    if args.chapters_file:
        try:
            chapters.extend(load_chapters_file(args.chapters_file))
        except (OSError, ValueError) as e:
            parser.error(f"Kapiteldatei nicht lesbar: {e}")
    if not chapters:
        parser.error("keine Kapitel angegeben")

    settings = load_settings(args.settings)
    options = options_from_args(args, settings)
    if args.save_settings:
        persist_options(options, settings, args.settings)
        logger.info("Einstellungen gespeichert")

    dest = resolve_dest(args, settings)
    logger.info("%s v%s: %d Kapitel -> %s", config.APP_NAME, config.APP_VERSION, len(chapters), dest)

    start = time.time()
    try:
        outcomes = download_chapters(
            chapters,
            dest,
            options=options,
            sink=LoggingProgressSink(),
            manga_title=args.title,
        )
    except TransportError as e:
        logger.error("Netzwerk nicht verfügbar: %s", e)
        return 2
    report(outcomes, dest, time.time() - start)
    return 0 if all(o.success for o in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
