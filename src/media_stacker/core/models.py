"""Pydantic models for media stacker."""

import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def as_naive_utc(t: datetime) -> datetime:
    """Naive UTC form of a datetime; naive values are returned unchanged."""
    if t.tzinfo is None:
        return t
    return t.astimezone(timezone.utc).replace(tzinfo=None)


class StackKind(str, Enum):
    """Why a group of files forms a stack."""

    RAW_JPEG_PAIR = "RawJpegPair"
    BURST = "Burst"


class MediaType(str, Enum):
    """Coarse media type derived from a file extension."""

    IMAGE = "image"
    VIDEO = "video"
    OTHER = "other"


class BurstMatch(BaseModel):
    """Result of a successful burst-name match."""

    model_config = ConfigDict(frozen=True)

    base_name: str = Field(..., description="Shared stem used for grouping")
    is_cover: bool = Field(default=False, description="File is the designated burst cover")
    pattern_type: str = Field(..., description="Burst convention matched (NEXUS, HUAWEI, etc.)")


class GroupingKey(BaseModel):
    """Key under which assets collide into the same stack."""

    model_config = ConfigDict(frozen=True)

    rounded_capture_time: datetime = Field(..., description="Capture time rounded to the minute")
    base_name: str = Field(..., description="Normalized base name")

    def __str__(self) -> str:
        return f"{self.rounded_capture_time.isoformat()}:{self.base_name}"


class Asset(BaseModel):
    """A media item as seen by the stacker."""

    id: str = Field(..., description="Caller-defined asset identifier")
    file_name: str = Field(..., description="File name, optionally with directory")
    capture_date: datetime = Field(..., description="When the media was captured")


class Stack(BaseModel):
    """A group of assets representing one logical shot."""

    cover_id: str = Field(..., description="Asset chosen to represent the stack")
    kind: StackKind = Field(default=StackKind.RAW_JPEG_PAIR, description="Stack classification")
    member_ids: list[str] = Field(default_factory=list, description="Asset ids, insertion order")
    date: datetime = Field(..., description="Capture date of the first inserted asset")
    file_names: list[str] = Field(
        default_factory=list, description="Base file names, insertion order"
    )

    @property
    def member_count(self) -> int:
        """Number of ids in member_ids."""
        return len(self.member_ids)

    def __str__(self) -> str:
        first = self.file_names[0] if self.file_names else "?"
        return f"{self.kind.value} stack '{first}' (cover {self.cover_id}, {self.member_count} members)"


_DATE_PATTERN = re.compile(r"^(\d{4})(?:-(\d{2})(?:-(\d{2}))?)?$")


class DateRange(BaseModel):
    """Inclusive capture-date window. Missing bounds are open."""

    after: datetime | None = Field(None, description="Earliest accepted capture date")
    before: datetime | None = Field(None, description="Latest accepted capture date")

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        """Ensure both bounds share timezone awareness and are in order."""
        if self.after is None or self.before is None:
            return self
        if (self.after.tzinfo is None) != (self.before.tzinfo is None):
            raise ValueError("Date range bounds must both be naive or both timezone-aware")
        if self.after > self.before:
            raise ValueError(f"Date range start {self.after} is after end {self.before}")
        return self

    @classmethod
    def parse(cls, text: str) -> "DateRange":
        """
        Build a date range from its textual form.

        Args:
            text: "", "YYYY", "YYYY-MM", "YYYY-MM-DD" or two of these joined by a comma

        Returns:
            DateRange covering the given period

        Raises:
            ValueError: If the text is not a recognised date or range

        Example:
            >>> r = DateRange.parse("2023-06")
            >>> r.after, r.before
            (datetime.datetime(2023, 6, 1, 0, 0), datetime.datetime(2023, 6, 30, 23, 59, 59, 999999))
        """
        text = text.strip()
        if not text:
            return cls()

        if "," in text:
            start_text, end_text = text.split(",", 1)
            start, _ = cls._parse_period(start_text.strip())
            _, end = cls._parse_period(end_text.strip())
            return cls(after=start, before=end)

        start, end = cls._parse_period(text)
        return cls(after=start, before=end)

    @staticmethod
    def _parse_period(text: str) -> tuple[datetime, datetime]:
        """Return the first and last instant of a year, month or day."""
        match = _DATE_PATTERN.match(text)
        if not match:
            raise ValueError(f"Invalid date: {text!r}")

        year = int(match.group(1))
        month = int(match.group(2)) if match.group(2) else None
        day = int(match.group(3)) if match.group(3) else None

        if month is None:
            start = datetime(year, 1, 1)
            end = datetime(year + 1, 1, 1)
        elif day is None:
            start = datetime(year, month, 1)
            end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        else:
            start = datetime(year, month, day)
            end = start + timedelta(days=1)

        return start, end - timedelta(microseconds=1)

    @property
    def is_unbounded(self) -> bool:
        """True if neither bound is set."""
        return self.after is None and self.before is None

    def in_range(self, t: datetime) -> bool:
        """Check whether a capture date falls inside the range."""
        if self.is_unbounded:
            return True

        for bound in (self.after, self.before):
            if bound is not None and (bound.tzinfo is None) != (t.tzinfo is None):
                # Compare wall-clock times when one side lacks a timezone
                t = t.replace(tzinfo=bound.tzinfo)
                break

        if self.after is not None and t < self.after:
            return False
        if self.before is not None and t > self.before:
            return False
        return True

    def __str__(self) -> str:
        if self.is_unbounded:
            return "any date"
        after = self.after.date().isoformat() if self.after else "..."
        before = self.before.date().isoformat() if self.before else "..."
        return f"{after} to {before}"


class StackingResult(BaseModel):
    """Results from scanning a directory and building stacks."""

    scan_path: Path = Field(..., description="Directory that was scanned")
    assets_found: int = Field(..., ge=0, description="Media files fed into the stacker")
    stacks: list[Stack] = Field(default_factory=list, description="Finalized stacks")
    scan_duration_seconds: float = Field(..., ge=0, description="Time taken to scan")
    scan_timestamp: datetime = Field(
        default_factory=datetime.now, description="When the scan was performed"
    )

    @property
    def burst_count(self) -> int:
        """Number of burst stacks."""
        return sum(1 for stack in self.stacks if stack.kind == StackKind.BURST)

    @property
    def stacked_assets_count(self) -> int:
        """Total assets hidden behind a cover."""
        return sum(stack.member_count for stack in self.stacks)

    def __str__(self) -> str:
        return (
            f"Scan of {self.scan_path}: {self.assets_found} media files, "
            f"{len(self.stacks)} stacks ({self.burst_count} bursts), "
            f"{self.stacked_assets_count} stacked files"
        )


class StackerConfig(BaseModel):
    """Configuration settings for the stacker."""

    image_extensions: list[str] = Field(
        default=[
            ".jpg",
            ".jpeg",
            ".jpe",
            ".png",
            ".gif",
            ".bmp",
            ".tif",
            ".tiff",
            ".webp",
            ".heic",
            ".heif",
            ".avif",  # Raster
            ".dng",
            ".cr2",
            ".cr3",
            ".nef",
            ".arw",
            ".orf",
            ".raf",
            ".rw2",  # RAW
        ],
        description="File extensions classified as images",
    )
    video_extensions: list[str] = Field(
        default=[".mp4", ".mov", ".avi", ".mkv", ".wmv", ".m4v", ".3gp", ".mts", ".webm"],
        description="File extensions classified as videos",
    )
    jpeg_extensions: list[str] = Field(
        default=[".jpg", ".jpeg", ".jpe"],
        description="Extensions preferred as stack cover over RAW files",
    )
    date_range: DateRange = Field(
        default_factory=DateRange, description="Accepted capture-date window"
    )

    @field_validator("image_extensions", "video_extensions", "jpeg_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        """Ensure all extensions start with a dot and are lowercase."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @property
    def supported_extensions(self) -> list[str]:
        """Image and video extensions the scanner picks up."""
        return self.image_extensions + self.video_extensions
