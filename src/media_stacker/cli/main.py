"""CLI entry point for media stacker."""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from .. import __version__
from ..core import DateRange, MediaFileScanner, StackBuilder, StackerConfig, StackingResult


def setup_logging(level: str = "INFO") -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def scan_directory_cli(
    directory: Path, config: StackerConfig, recursive: bool = True, show_progress: bool = True
) -> StackingResult:
    """
    Scan a directory and build stacks from the command line.

    Args:
        directory: Directory to scan
        config: Stacker configuration
        recursive: Whether to scan recursively
        show_progress: Whether to print progress to stdout

    Returns:
        StackingResult with the finalized stacks

    Raises:
        FileNotFoundError: If the directory does not exist
        NotADirectoryError: If the path is not a directory
    """
    logger = logging.getLogger(__name__)

    if not directory.exists():
        raise FileNotFoundError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {directory}")

    scanner = MediaFileScanner(config)
    builder = StackBuilder(config)

    def progress_callback(current: int, total: int | None = None, message: str = "") -> None:
        if message:
            print(f"\r{message}", end="", flush=True)
        elif total:
            percent = (current / total) * 100
            print(f"\rProgress: {current}/{total} ({percent:.1f}%)", end="", flush=True)
        else:
            print(f"\rProcessed: {current} files", end="", flush=True)

    start_time = time.time()
    logger.info(f"Starting scan of directory: {directory}")

    if show_progress:
        print(f"Scanning directory: {directory}")
    assets = scanner.scan_directory(
        directory,
        recursive=recursive,
        progress_callback=progress_callback if show_progress else None,
    )
    if show_progress:
        print()  # New line after progress
        print("Building stacks...")

    stacks = builder.build_stacks(assets)

    result = StackingResult(
        scan_path=directory,
        assets_found=len(assets),
        stacks=stacks,
        scan_duration_seconds=time.time() - start_time,
    )

    logger.info(f"Scan complete: {len(stacks)} stacks found")
    return result


def print_stacking_results(result: StackingResult, detailed: bool = False) -> None:
    """
    Print stacking results to console.

    Args:
        result: Results from the scan operation
        detailed: Whether to list every file in each stack
    """
    print("\n" + "=" * 60)
    print("STACKING RESULTS")
    print("=" * 60)

    print(f"Directory scanned: {result.scan_path}")
    print(f"Media files found: {result.assets_found}")
    print(f"Stacks: {len(result.stacks)} ({result.burst_count} bursts)")
    print(f"Files hidden behind a cover: {result.stacked_assets_count}")

    if not result.stacks:
        print("\nNo stacks found.")
        return

    print("\n" + "-" * 60)
    print("STACKS")
    print("-" * 60)

    for i, stack in enumerate(result.stacks, 1):
        print(f"\nStack {i}: '{stack.file_names[0]}' ({stack.kind.value})")
        print(f"  Date: {stack.date.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"  Cover: {stack.cover_id}")
        print(f"  Members: {stack.member_count}")

        if detailed:
            print("  Stacked files:")
            for member_id in stack.member_ids:
                print(f"    - {member_id}")
            print("  File names:")
            for file_name in stack.file_names:
                print(f"    - {file_name}")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="media-stacker",
        description="Media Stacker - Group burst shots and RAW+JPEG pairs behind one cover",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a directory
  media-stacker /path/to/photos

  # List every file of each stack
  media-stacker /path/to/photos --detailed

  # Only photos taken in June 2023
  media-stacker /path/to/photos --date-range 2023-06

  # Machine-readable output
  media-stacker /path/to/photos --output-format json
        """,
    )

    parser.add_argument("directory", type=Path, help="Directory to scan for media files")

    parser.add_argument(
        "--no-recursive", action="store_true", help="Don't scan subdirectories recursively"
    )

    parser.add_argument(
        "--detailed", action="store_true", help="Show every file of each stack in results"
    )

    parser.add_argument(
        "--date-range",
        default="",
        metavar="RANGE",
        help="Only stack files captured in RANGE: YYYY, YYYY-MM, YYYY-MM-DD or START,END",
    )

    parser.add_argument(
        "--output-format",
        choices=["text", "json"],
        default="text",
        help="Output format for results (default: text)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        argv: Command-line arguments, defaults to sys.argv[1:]

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        config = StackerConfig(date_range=DateRange.parse(args.date_range))

        json_output = args.output_format == "json"
        result = scan_directory_cli(
            directory=args.directory,
            config=config,
            recursive=not args.no_recursive,
            show_progress=not json_output,
        )

        if json_output:
            print(json.dumps(result.model_dump(mode="json"), indent=2))
        else:
            print_stacking_results(result, detailed=args.detailed)

        return 0

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 1
    except (FileNotFoundError, NotADirectoryError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    except Exception as e:
        logger.exception("Unexpected error occurred")
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
