"""Stack accumulation and finalization for grouping related captures."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Protocol

from .classifier import MediaTypeClassifier
from .matchers import BurstMatcher, base_file_name, get_extension
from .models import (
    Asset,
    GroupingKey,
    MediaType,
    Stack,
    StackerConfig,
    StackKind,
    as_naive_utc,
)

logger = logging.getLogger(__name__)

JPEG_EXTENSIONS = (".jpg", ".jpeg", ".jpe")


class DateRangePredicate(Protocol):
    """Protocol for the capture-date filter consulted on every insert."""

    def in_range(self, t: datetime) -> bool:
        """Return True if an asset captured at t should be stacked."""
        ...


class MediaTypeResolver(Protocol):
    """Protocol for the extension classifier consulted during finalization."""

    def type_from_extension(self, extension: str) -> MediaType:
        """Classify an extension as image, video or other."""
        ...


def round_to_minute(t: datetime) -> datetime:
    """Round a timestamp to the nearest minute, halves rounding up."""
    truncated = t.replace(second=0, microsecond=0)
    if t - truncated >= timedelta(seconds=30):
        truncated += timedelta(minutes=1)
    return truncated


def fold_stack(
    stack: Stack | None,
    asset_id: str,
    file_name: str,
    capture_date: datetime,
    is_burst: bool,
    is_cover: bool,
    jpeg_extensions: Iterable[str] = JPEG_EXTENSIONS,
) -> Stack:
    """
    Merge one asset into a stack, returning the updated stack.

    Args:
        stack: Stack for the asset's grouping key, None if this is the first asset
        asset_id: Identifier of the inserted asset
        file_name: Base file name of the asset
        capture_date: Capture date of the asset
        is_burst: Asset matched a burst naming convention
        is_cover: Asset is the designated burst cover
        jpeg_extensions: Extensions preferred as cover for non-burst files

    Returns:
        New Stack instance; the input stack is left untouched

    Cover policy, in order: an explicit burst cover always wins, then a
    non-burst JPEG replaces the current cover, otherwise the cover stays.
    Insertion order therefore decides between two candidates of equal rank.
    """
    if stack is None:
        stack = Stack(cover_id=asset_id, date=capture_date)

    cover_id = stack.cover_id
    if is_cover:
        cover_id = asset_id
    elif not is_burst and get_extension(file_name) in jpeg_extensions:
        cover_id = asset_id

    return stack.model_copy(
        update={
            "cover_id": cover_id,
            "kind": StackKind.BURST if is_burst else stack.kind,
            "member_ids": [*stack.member_ids, asset_id],
            "file_names": [*stack.file_names, file_name],
        }
    )


class StackBuilder:
    """Accumulates assets into stacks keyed by base name and capture minute."""

    def __init__(
        self,
        config: StackerConfig | None = None,
        date_range: DateRangePredicate | None = None,
        classifier: MediaTypeResolver | None = None,
    ):
        """
        Initialize the builder.

        Args:
            config: Stacker configuration, defaults to StackerConfig()
            date_range: Capture-date filter, defaults to config.date_range
            classifier: Media type classifier, defaults to one built from config
        """
        self.config = config or StackerConfig()
        self.date_range = date_range if date_range is not None else self.config.date_range
        self.classifier = classifier if classifier is not None else MediaTypeClassifier(self.config)
        self.matcher = BurstMatcher()
        self._stacks: dict[GroupingKey, Stack] = {}

        self.stats = {
            "assets_inserted": 0,
            "assets_rejected": 0,
        }

    @property
    def stacks(self) -> dict[GroupingKey, Stack]:
        """In-progress stacks by grouping key, singletons included."""
        return dict(self._stacks)

    def make_key(self, base_name: str, capture_date: datetime) -> GroupingKey:
        """Build the grouping key for a base name and capture date."""
        return GroupingKey(rounded_capture_time=round_to_minute(capture_date), base_name=base_name)

    def insert(self, asset_id: str, file_name: str, capture_date: datetime) -> None:
        """
        Add one asset to the stack it belongs to.

        Args:
            asset_id: Identifier of the asset
            file_name: File name of the asset, directory components are ignored
            capture_date: When the asset was captured

        Assets outside the configured date range are skipped. Names that
        match no convention still get a stack of their own, which the
        finalizer drops unless another asset joins it.
        """
        if not self.date_range.in_range(capture_date):
            self.stats["assets_rejected"] += 1
            logger.debug(f"Skipping {file_name}: capture date {capture_date} out of range")
            return

        is_burst, base_name, is_cover = self.matcher.split_base_name(file_name)
        key = self.make_key(base_name, capture_date)
        stored_name = base_file_name(file_name)

        self._stacks[key] = fold_stack(
            self._stacks.get(key),
            asset_id,
            stored_name,
            capture_date,
            is_burst,
            is_cover,
            self.config.jpeg_extensions,
        )
        self.stats["assets_inserted"] += 1
        logger.debug(
            f"Inserted {stored_name} into {key} (burst: {is_burst}, cover: {is_cover})"
        )

    def insert_asset(self, asset: Asset) -> None:
        """Add an Asset model to its stack."""
        self.insert(asset.id, asset.file_name, asset.capture_date)

    def finalize(self) -> list[Stack]:
        """
        Produce the final, ordered list of stacks.

        Returns:
            Stacks sorted by date, then by first file name

        Only groups with more than one member are returned. Still+video
        live photo pairs are excluded. The cover is removed from each
        returned stack's member_ids; file_names keeps every inserted name.
        Stored stacks are not modified, so repeated calls give equal results.
        """
        stacks = []

        for key, stack in self._stacks.items():
            if len(stack.member_ids) < 2:
                continue

            if self._is_live_photo_pair(stack):
                logger.debug(f"Skipping live photo pair: {key}")
                continue

            members = [member for member in stack.member_ids if member != stack.cover_id]
            stacks.append(stack.model_copy(update={"member_ids": members}, deep=True))

        stacks.sort(key=lambda s: (as_naive_utc(s.date), s.file_names[0]))

        logger.info(
            f"Created {len(stacks)} stacks from {self.stats['assets_inserted']} assets "
            f"({len(self._stacks)} groups, {self.stats['assets_rejected']} out of range)"
        )
        return stacks

    def build_stacks(self, assets: Iterable[Asset]) -> list[Stack]:
        """Insert every asset, then finalize."""
        for asset in assets:
            self.insert_asset(asset)
        return self.finalize()

    def _is_live_photo_pair(self, stack: Stack) -> bool:
        """
        Check if a stack is a still image paired with its motion video.

        Args:
            stack: Stack to check

        Returns:
            True if exactly one member is an image and exactly one is a video
        """
        images = 0
        videos = 0
        for file_name in stack.file_names:
            media_type = self.classifier.type_from_extension(get_extension(file_name))
            if media_type == MediaType.IMAGE:
                images += 1
            elif media_type == MediaType.VIDEO:
                videos += 1
        return images == 1 and videos == 1
