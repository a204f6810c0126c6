"""Main module for the studio batch CLI."""

import asyncio
import sys
import argparse
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from . import __version__
from .core import (
    BatchConfig,
    ConfigurationError,
    StudioBatchError,
    get_logger,
    get_settings,
    set_debug,
)
from .core.image_utils import guess_mime_type, is_image_mime
from .core.models import DEFAULT_MODEL, AppStatus, NoticeLevel
from .ingestion import LocalDirectoryHandle, UploadedFile
from .ingestion.scanner import group_by_folder
from .processors import BatchController


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="studio-batch",
        description="Studio Batch - turn folders of product photos into studio shots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate studio shots next to every image under ./products
  studio-batch process ./products

  # Resize locally to 1200px wide and collect the results as a ZIP
  studio-batch process ./products --mode resize --width 1200 --flat --zip-dir ./out

  # Show version
  studio-batch version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser(
        "process", help="Process every image under a folder"
    )
    process_parser.add_argument("root", type=Path, help="Folder to process recursively")
    process_parser.add_argument(
        "--mode",
        choices=["ai", "resize"],
        default="ai",
        help="'ai' sends each image to the generation service, 'resize' resizes locally",
    )
    process_parser.add_argument("--prompt", default=None, help="Style prompt (ai mode)")
    process_parser.add_argument(
        "--width", type=int, default=800, help="Target output width in pixels"
    )
    process_parser.add_argument(
        "--aspect-ratio",
        default="1:1",
        choices=["1:1", "3:4", "4:3", "9:16", "16:9"],
        help="Requested output aspect ratio (ai mode)",
    )
    process_parser.add_argument("--model", default=DEFAULT_MODEL, help="Generation model")
    process_parser.add_argument(
        "--concurrency", type=int, default=3, help="Parallel requests (ai mode)"
    )
    process_parser.add_argument(
        "--flat",
        action="store_true",
        help="Treat the folder as an upload: no write-back, results go to a ZIP",
    )
    process_parser.add_argument(
        "--zip-dir",
        type=Path,
        default=None,
        help="Also write a ZIP of the results here (always written for --flat)",
    )
    process_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")
    return parser


def build_config(args: argparse.Namespace) -> BatchConfig:
    options = {
        "mode": args.mode,
        "target_width": args.width,
        "aspect_ratio": args.aspect_ratio,
        "model": args.model,
        "concurrency": args.concurrency,
    }
    if args.prompt:
        options["prompt"] = args.prompt
    try:
        return BatchConfig(**options)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid batch options: {e}") from e


def collect_uploads(root: Path) -> List[UploadedFile]:
    return [
        UploadedFile.from_path(path, root)
        for path in sorted(root.rglob("*"))
        if path.is_file() and is_image_mime(guess_mime_type(path.name))
    ]


async def run_process(args: argparse.Namespace) -> int:
    """Ingest, run and deliver one batch. Returns the process exit code."""
    logger = get_logger("cli")
    root: Path = args.root
    if not root.is_dir():
        raise ConfigurationError(f"{root} is not a folder")

    config = build_config(args)
    controller = BatchController(settings=get_settings())

    if args.flat:
        await controller.ingest_files(collect_uploads(root))
    else:
        await controller.ingest_directory(LocalDirectoryHandle(root))

    if controller.notice:
        logger.info(f"{controller.notice.level.value.upper()}: {controller.notice.message}")
    if controller.status is not AppStatus.READY:
        return 0

    summary = await controller.start_run(config)

    for folder, items in group_by_folder(controller.items):
        done = sum(1 for item in items if item.result is not None)
        print(f"{folder:<40} {done}/{len(items)} completed")
        for item in items:
            if item.error:
                print(f"  ! {item.name}: {item.error}")
    print(
        f"Completed: {summary.completed}  Errors: {summary.errored}  "
        f"Time: {summary.duration:.1f}s"
    )

    if args.zip_dir is not None or not controller.live:
        archive = controller.assemble_archive()
        if archive is not None:
            target = archive.save(args.zip_dir or Path.cwd())
            print(f"Archive written to {target}")

    if controller.notice and controller.notice.level is NoticeLevel.SECURITY:
        logger.warning(controller.notice.message)

    return 1 if summary.errored else 0


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the studio batch command-line interface.

    ``process`` runs one batch over a folder; ``version`` prints version
    information. Exits 1 on configuration errors or when any image failed.
    """
    parser = build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.command == "process":
        if args.debug:
            set_debug(True)
        try:
            exit_code = asyncio.run(run_process(args))
        except KeyboardInterrupt:
            get_logger("cli").warning("Processing interrupted by user.")
            sys.exit(130)
        except StudioBatchError as e:
            get_logger("cli").error(f"Processing failed: {e}")
            sys.exit(1)
        sys.exit(exit_code)

    elif args.command == "version":
        print("Studio Batch CLI")
        print(f"Version {__version__}")
        print("Folder-to-studio image pipeline with write-back and ZIP delivery")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
