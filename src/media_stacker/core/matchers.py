"""Burst filename matchers for detecting stacked captures."""

import re
from collections.abc import Callable
from pathlib import Path, PureWindowsPath

from .models import BurstMatch

# Motion-photo sidecar marker left on the stem once the real extension is gone
MOTION_PHOTO_MARKER = ".MP"


class BurstMatcher:
    """Recognizes manufacturer-specific burst naming conventions."""

    # Legacy Nexus/Android: 00001IMG_00001_BURST20180101120000_COVER.jpg
    NEXUS_PATTERN = re.compile(r"^\d{5}IMG_\d{5}_(BURST\d{14})(_COVER)?\.[^.]+$")

    # Huawei: IMG_20180101_120000_BURST001_COVER.jpg
    HUAWEI_PATTERN = re.compile(r"^(.*)_BURST\d+(_COVER)?\.[^.]+$")

    # Google Pixel: PXL_20230101_120000000.RAW-01.MP.COVER.jpg
    PIXEL_PATTERN = re.compile(r"^(.*)\.RAW-\d+(\.MP)?(\.COVER)?\.[^.]+$")

    # Samsung: 20180101_120000_001.jpg, optionally behind a prefix such as IMG_
    SAMSUNG_PATTERN = re.compile(r"(\d{8}_\d{6})_(\d{3})\.[^.]{3}$")

    def __init__(self) -> None:
        """Set up the matcher chain in priority order."""
        self.matchers: list[Callable[[str], BurstMatch | None]] = [
            self.match_nexus_burst,
            self.match_huawei_burst,
            self.match_pixel_burst,
            self.match_samsung_burst,
        ]

    def match_nexus_burst(self, filename: str) -> BurstMatch | None:
        """Match the legacy Nexus burst convention."""
        match = self.NEXUS_PATTERN.match(filename)
        if not match:
            return None
        return BurstMatch(
            base_name=match.group(1), is_cover=match.group(2) is not None, pattern_type="NEXUS"
        )

    def match_huawei_burst(self, filename: str) -> BurstMatch | None:
        """Match the Huawei burst convention."""
        match = self.HUAWEI_PATTERN.match(filename)
        if not match:
            return None
        return BurstMatch(
            base_name=match.group(1), is_cover=match.group(2) is not None, pattern_type="HUAWEI"
        )

    def match_pixel_burst(self, filename: str) -> BurstMatch | None:
        """Match the Google Pixel RAW burst convention."""
        match = self.PIXEL_PATTERN.match(filename)
        if not match:
            return None
        return BurstMatch(
            base_name=match.group(1), is_cover=match.group(3) is not None, pattern_type="PIXEL"
        )

    def match_samsung_burst(self, filename: str) -> BurstMatch | None:
        """Match the Samsung burst convention. Sequence 001 is the cover."""
        match = self.SAMSUNG_PATTERN.search(filename)
        if not match:
            return None
        return BurstMatch(
            base_name=match.group(1), is_cover=match.group(2) == "001", pattern_type="SAMSUNG"
        )

    def match_burst(self, filename: str) -> BurstMatch | None:
        """
        Run the matcher chain against a bare file name.

        Args:
            filename: File name without directory

        Returns:
            BurstMatch from the first matcher that fires, None if none does

        Example:
            >>> matcher = BurstMatcher()
            >>> matcher.match_burst("IMG_0001_BURST20200101120000_COVER.jpg").base_name
            'IMG_0001'
        """
        if not filename:
            return None

        for matcher in self.matchers:
            result = matcher(filename)
            if result is not None:
                return result
        return None

    def split_base_name(self, filename: str) -> tuple[bool, str, bool]:
        """
        Derive the grouping base name for a file.

        Args:
            filename: File name, any directory component is ignored

        Returns:
            Tuple of (is_burst, base_name, is_cover)

        Files that match no burst convention fall back to the name without
        its extension, with a trailing motion-photo marker removed so that
        "PXL_1.MP.jpg" pairs with "PXL_1.dng".
        """
        name = base_file_name(filename)

        burst = self.match_burst(name)
        if burst is not None:
            return True, burst.base_name, burst.is_cover

        base_name = strip_extension(name)
        if base_name.endswith(MOTION_PHOTO_MARKER):
            base_name = base_name[: -len(MOTION_PHOTO_MARKER)]
        return False, base_name, False


def base_file_name(filename: str) -> str:
    """File name with any directory removed, for both / and \\ separators."""
    return PureWindowsPath(filename).name


def strip_extension(filename: str) -> str:
    """Remove the last extension from a file name."""
    return Path(filename).stem


def get_extension(filename: str) -> str:
    """Lowercase last extension of a file name, including the dot."""
    return Path(filename).suffix.lower()
