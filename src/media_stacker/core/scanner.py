"""File scanning module for discovering media files and their capture dates."""

import logging
import time
from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from typing import Protocol

from PIL import Image, UnidentifiedImageError

try:
    import pillow_heif
    pillow_heif.register_heif_opener()
    HEIF_SUPPORTED = True
except ImportError:
    HEIF_SUPPORTED = False

from .models import Asset, StackerConfig

logger = logging.getLogger(__name__)

EXIF_IFD_POINTER = 0x8769
EXIF_DATETIME_ORIGINAL = 0x9003
EXIF_DATETIME = 0x0132
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"


class ProgressCallback(Protocol):
    """Protocol for progress callback functions."""

    def __call__(self, current: int, total: int | None = None, message: str = "") -> None:
        """Called to report progress during scanning."""
        ...


class MediaFileScanner:
    """Scans directories for media files and builds stacker assets."""

    def __init__(self, config: StackerConfig | None = None):
        """
        Initialize the scanner with configuration.

        Args:
            config: Stacker configuration, defaults to StackerConfig()
        """
        self.config = config or StackerConfig()
        if not HEIF_SUPPORTED:
            logger.debug("pillow-heif not installed, HEIC dates fall back to file times")

    def is_media_file(self, file_path: Path) -> bool:
        """Check if a file has a supported image or video extension."""
        return file_path.suffix.lower() in self.config.supported_extensions

    def read_exif_date(self, file_path: Path) -> datetime | None:
        """
        Read the capture date recorded in a file's EXIF block.

        Args:
            file_path: Path to an image file

        Returns:
            DateTimeOriginal if present, else the IFD0 DateTime, else None
        """
        try:
            with Image.open(file_path) as img:
                exif = img.getexif()
                candidates = [
                    exif.get_ifd(EXIF_IFD_POINTER).get(EXIF_DATETIME_ORIGINAL),
                    exif.get(EXIF_DATETIME),
                ]
        except (UnidentifiedImageError, OSError) as e:
            logger.debug(f"No readable image data in {file_path.name}: {e}")
            return None

        for value in candidates:
            if not value:
                continue
            try:
                return datetime.strptime(str(value).strip("\x00 "), EXIF_DATE_FORMAT)
            except ValueError:
                logger.debug(f"Ignoring malformed EXIF date {value!r} in {file_path.name}")
        return None

    def get_capture_date(self, file_path: Path) -> datetime:
        """
        Determine when a file was captured.

        Args:
            file_path: Path to the file

        Returns:
            EXIF capture date for images that carry one, otherwise the
            file modification time

        Raises:
            OSError: If the file cannot be accessed
        """
        exif_date = self.read_exif_date(file_path)
        if exif_date is not None:
            return exif_date
        return datetime.fromtimestamp(file_path.stat().st_mtime)

    def get_asset(self, file_path: Path, root: Path) -> Asset | None:
        """
        Build an Asset for a single file.

        Args:
            file_path: Path to the file
            root: Scanned directory; the asset id is the path relative to it

        Returns:
            Asset if successful, None if the file cannot be accessed
        """
        try:
            capture_date = self.get_capture_date(file_path)
        except OSError as e:
            logger.error(f"Error accessing file {file_path}: {e}")
            return None

        return Asset(
            id=file_path.relative_to(root).as_posix(),
            file_name=file_path.name,
            capture_date=capture_date,
        )

    def discover_files(
        self,
        directory: Path,
        recursive: bool = True,
        progress_callback: ProgressCallback | None = None,
    ) -> Generator[Path, None, None]:
        """
        Discover all files in a directory, optionally recursively.

        Args:
            directory: Directory to scan
            recursive: Whether to scan subdirectories recursively
            progress_callback: Optional callback for progress updates

        Yields:
            Path objects for discovered files, in sorted order

        Raises:
            OSError: If directory cannot be accessed
        """
        if not directory.exists():
            raise OSError(f"Directory does not exist: {directory}")

        if not directory.is_dir():
            raise OSError(f"Path is not a directory: {directory}")

        logger.info(f"Starting file discovery in: {directory}")
        files_found = 0

        file_iterator = directory.rglob("*") if recursive else directory.glob("*")

        for file_path in sorted(file_iterator):
            if file_path.is_file():
                files_found += 1
                if progress_callback:
                    progress_callback(files_found, None, f"Discovered {files_found} files...")
                yield file_path

        logger.info(f"File discovery complete. Found {files_found} total files.")

    def scan_directory(
        self,
        directory: Path,
        recursive: bool = True,
        progress_callback: ProgressCallback | None = None,
    ) -> list[Asset]:
        """
        Scan a directory for media files and return stacker assets.

        Args:
            directory: Directory to scan
            recursive: Whether to scan subdirectories recursively
            progress_callback: Optional callback for progress updates

        Returns:
            List of Asset objects for all discovered media files

        Raises:
            OSError: If directory cannot be accessed
        """
        start_time = time.time()
        assets = []

        logger.info(f"Starting media file scan: {directory}")

        all_files = list(self.discover_files(directory, recursive, progress_callback))
        total_files = len(all_files)

        logger.info(f"Found {total_files} total files, filtering for media files...")

        for i, file_path in enumerate(all_files):
            if progress_callback:
                progress_callback(i + 1, total_files, f"Processing {file_path.name}...")

            if self.is_media_file(file_path):
                asset = self.get_asset(file_path, directory)
                if asset:
                    assets.append(asset)

        scan_duration = time.time() - start_time
        logger.info(
            f"Scan complete: {len(assets)} media files found "
            f"out of {total_files} total files in {scan_duration:.2f} seconds"
        )

        return assets
