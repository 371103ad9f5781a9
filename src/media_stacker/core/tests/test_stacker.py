"""Tests for stack accumulation and finalization."""

from datetime import datetime, timedelta, timezone

from ..models import Asset, DateRange, MediaType, Stack, StackerConfig, StackKind
from ..stacker import StackBuilder, fold_stack, round_to_minute

T0 = datetime(2020, 1, 1, 12, 0, 0)


class TestRoundToMinute:
    """Test cases for round_to_minute."""

    def test_rounds_down_below_half(self) -> None:
        """Test seconds below 30 round down."""
        value = datetime(2020, 1, 1, 12, 0, 29, 999999)
        assert round_to_minute(value) == datetime(2020, 1, 1, 12, 0)

    def test_rounds_half_up(self) -> None:
        """Test exactly 30 seconds rounds up."""
        assert round_to_minute(datetime(2020, 1, 1, 12, 0, 30)) == datetime(2020, 1, 1, 12, 1)

    def test_rounds_across_hour(self) -> None:
        """Test rounding carries into the next hour and day."""
        assert round_to_minute(datetime(2020, 12, 31, 23, 59, 45)) == datetime(2021, 1, 1, 0, 0)

    def test_exact_minute_unchanged(self) -> None:
        """Test values on a minute boundary are kept."""
        assert round_to_minute(T0) == T0


class TestFoldStack:
    """Test cases for the fold_stack reducer."""

    def test_creates_stack(self) -> None:
        """Test the first asset creates the stack and becomes cover."""
        stack = fold_stack(None, "1", "photo.dng", T0, is_burst=False, is_cover=False)

        assert stack.cover_id == "1"
        assert stack.date == T0
        assert stack.member_ids == ["1"]
        assert stack.file_names == ["photo.dng"]
        assert stack.kind == StackKind.RAW_JPEG_PAIR

    def test_does_not_modify_input(self) -> None:
        """Test the reducer returns a new stack."""
        original = fold_stack(None, "1", "photo.dng", T0, is_burst=False, is_cover=False)
        updated = fold_stack(original, "2", "photo.jpg", T0, is_burst=False, is_cover=False)

        assert original.member_ids == ["1"]
        assert original.cover_id == "1"
        assert updated.member_ids == ["1", "2"]
        assert updated.cover_id == "2"

    def test_date_kept_from_first_asset(self) -> None:
        """Test later assets do not change the stack date."""
        stack = fold_stack(None, "1", "a.dng", T0, is_burst=False, is_cover=False)
        stack = fold_stack(stack, "2", "a.dng", T0 - timedelta(seconds=20), False, False)

        assert stack.date == T0

    def test_burst_kind_is_sticky(self) -> None:
        """Test a non-burst asset does not demote a burst stack."""
        stack = fold_stack(None, "1", "x_BURST1.jpg", T0, is_burst=True, is_cover=False)
        stack = fold_stack(stack, "2", "x.dng", T0, is_burst=False, is_cover=False)

        assert stack.kind == StackKind.BURST

    def test_burst_jpeg_does_not_take_cover(self) -> None:
        """Test JPEG preference only applies to non-burst files."""
        stack = fold_stack(None, "1", "a_BURST1.jpg", T0, is_burst=True, is_cover=False)
        stack = fold_stack(stack, "2", "a_BURST2.jpg", T0, is_burst=True, is_cover=False)

        assert stack.cover_id == "1"

    def test_jpeg_family_extensions(self) -> None:
        """Test .jpe and uppercase extensions count as JPEG."""
        for name in ["a.JPG", "a.jpeg", "a.jpe"]:
            stack = fold_stack(None, "1", "a.nef", T0, is_burst=False, is_cover=False)
            stack = fold_stack(stack, "2", name, T0, is_burst=False, is_cover=False)
            assert stack.cover_id == "2", name

    def test_non_jpeg_keeps_cover(self) -> None:
        """Test a RAW file arriving after the JPEG does not take the cover."""
        stack = fold_stack(None, "1", "a.jpg", T0, is_burst=False, is_cover=False)
        stack = fold_stack(stack, "2", "a.dng", T0, is_burst=False, is_cover=False)

        assert stack.cover_id == "1"


class TestStackBuilder:
    """Test cases for StackBuilder class."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.builder = StackBuilder()

    def test_huawei_burst_with_cover(self) -> None:
        """Test the _COVER file of a Huawei burst becomes cover."""
        self.builder.insert("1", "IMG_0001_BURST20200101120000.jpg", T0)
        self.builder.insert("2", "IMG_0001_BURST20200101120000_COVER.jpg", T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].cover_id == "2"
        assert stacks[0].member_ids == ["1"]
        assert stacks[0].kind == StackKind.BURST

    def test_raw_jpeg_pair_prefers_jpeg(self) -> None:
        """Test the JPEG of a RAW+JPEG pair becomes cover."""
        self.builder.insert("1", "photo.dng", T0)
        self.builder.insert("2", "photo.jpg", T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].cover_id == "2"
        assert stacks[0].member_ids == ["1"]
        assert stacks[0].kind == StackKind.RAW_JPEG_PAIR

    def test_singleton_dropped(self) -> None:
        """Test a group with one member is not returned."""
        self.builder.insert("1", "clip.jpg", T0)

        assert self.builder.finalize() == []

    def test_samsung_burst_first_sequence_is_cover(self) -> None:
        """Test sequence 001 of a Samsung burst is cover."""
        self.builder.insert("1", "IMG_20200101_120000_001.jpg", T0)
        self.builder.insert("2", "IMG_20200101_120000_002.jpg", T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].kind == StackKind.BURST
        assert stacks[0].cover_id == "1"
        assert stacks[0].member_ids == ["2"]

    def test_samsung_cover_inserted_last(self) -> None:
        """Test the cover is found regardless of insertion position."""
        self.builder.insert("a", "20200101_120000_003.jpg", T0)
        self.builder.insert("b", "20200101_120000_002.jpg", T0)
        self.builder.insert("c", "20200101_120000_001.jpg", T0)

        stacks = self.builder.finalize()

        assert stacks[0].cover_id == "c"
        assert stacks[0].member_ids == ["a", "b"]

    def test_pixel_motion_photo_pairs_with_raw(self) -> None:
        """Test a .MP motion photo pairs with its RAW file."""
        self.builder.insert("1", "PXL_20230101_120000000.dng", T0)
        self.builder.insert("2", "PXL_20230101_120000000.MP.jpg", T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].cover_id == "2"
        assert stacks[0].kind == StackKind.RAW_JPEG_PAIR

    def test_cover_depends_on_insertion_order(self) -> None:
        """Test a later non-burst JPEG overrides an earlier burst cover."""
        self.builder.insert("1", "PXL_1.RAW-01.MP.COVER.jpg", T0)
        self.builder.insert("2", "PXL_1.jpg", T0)
        stacks = self.builder.finalize()
        assert stacks[0].cover_id == "2"

        builder = StackBuilder()
        builder.insert("2", "PXL_1.jpg", T0)
        builder.insert("1", "PXL_1.RAW-01.MP.COVER.jpg", T0)
        stacks = builder.finalize()
        assert stacks[0].cover_id == "1"
        assert stacks[0].kind == StackKind.BURST

    def test_same_rounded_minute_groups(self) -> None:
        """Test assets within the same rounded minute share a stack."""
        self.builder.insert("1", "IMG_0002_BURST001.jpg", datetime(2020, 1, 1, 11, 59, 45))
        self.builder.insert("2", "IMG_0002_BURST002_COVER.jpg", datetime(2020, 1, 1, 12, 0, 10))

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].cover_id == "2"
        assert stacks[0].date == datetime(2020, 1, 1, 11, 59, 45)

    def test_different_rounded_minute_splits(self) -> None:
        """Test assets straddling a half minute land in different stacks."""
        self.builder.insert("1", "photo.dng", datetime(2020, 1, 1, 12, 0, 29))
        self.builder.insert("2", "photo.jpg", datetime(2020, 1, 1, 12, 0, 31))

        assert self.builder.finalize() == []
        assert len(self.builder.stacks) == 2

    def test_different_base_names_split(self) -> None:
        """Test different base names never share a stack."""
        self.builder.insert("1", "a.dng", T0)
        self.builder.insert("2", "b.jpg", T0)

        assert self.builder.finalize() == []

    def test_live_photo_pair_excluded(self) -> None:
        """Test a still image with its video is not a stack."""
        self.builder.insert("1", "IMG_1234.HEIC", T0)
        self.builder.insert("2", "IMG_1234.MOV", T0)

        assert self.builder.finalize() == []

    def test_live_photo_with_raw_kept(self) -> None:
        """Test two images plus a video is still a stack."""
        self.builder.insert("1", "IMG_1234.dng", T0)
        self.builder.insert("2", "IMG_1234.jpg", T0)
        self.builder.insert("3", "IMG_1234.mov", T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].cover_id == "2"
        assert stacks[0].member_ids == ["1", "3"]

    def test_two_videos_kept(self) -> None:
        """Test only the one image plus one video shape is excluded."""
        self.builder.insert("1", "clip.mp4", T0)
        self.builder.insert("2", "clip.mov", T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].cover_id == "1"

    def test_file_names_keep_cover(self) -> None:
        """Test file_names still lists the cover after finalization."""
        self.builder.insert("1", "photo.dng", T0)
        self.builder.insert("2", "photo.jpg", T0)

        stack = self.builder.finalize()[0]

        assert stack.member_ids == ["1"]
        assert stack.file_names == ["photo.dng", "photo.jpg"]

    def test_file_names_drop_directory(self) -> None:
        """Test directories are stripped from stored file names."""
        self.builder.insert("1", "2020/01/photo.dng", T0)
        self.builder.insert("2", "2020/01/photo.jpg", T0)

        stack = self.builder.finalize()[0]

        assert stack.file_names == ["photo.dng", "photo.jpg"]

    def test_backslash_directories_stripped(self) -> None:
        """Test Windows-style directories are stripped from stored file names."""
        self.builder.insert("1", "2020\\01\\photo.dng", T0)
        self.builder.insert("2", "2020\\01\\photo.jpg", T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].file_names == ["photo.dng", "photo.jpg"]
        assert stacks[0].cover_id == "2"

    def test_ordering_by_date_then_name(self) -> None:
        """Test stacks are sorted by date, ties broken by first file name."""
        later = T0 + timedelta(hours=1)
        self.builder.insert("1", "zeta.dng", later)
        self.builder.insert("2", "zeta.jpg", later)
        self.builder.insert("3", "beta.dng", T0)
        self.builder.insert("4", "beta.jpg", T0)
        self.builder.insert("5", "alpha.dng", T0)
        self.builder.insert("6", "alpha.jpg", T0)

        stacks = self.builder.finalize()

        assert [s.file_names[0] for s in stacks] == ["alpha.dng", "beta.dng", "zeta.dng"]
        for earlier, following in zip(stacks, stacks[1:]):
            assert (earlier.date, earlier.file_names[0]) <= (following.date, following.file_names[0])

    def test_mixed_timezone_dates_sort(self) -> None:
        """Test naive and aware stack dates can be ordered together."""
        self.builder.insert("1", "a.dng", T0)
        self.builder.insert("2", "a.jpg", T0)
        self.builder.insert("3", "b.dng", T0.replace(tzinfo=timezone.utc))
        self.builder.insert("4", "b.jpg", T0.replace(tzinfo=timezone.utc))

        stacks = self.builder.finalize()

        assert [s.file_names[0] for s in stacks] == ["a.dng", "b.dng"]
        assert stacks[0].date.tzinfo is None
        assert stacks[1].date.tzinfo is timezone.utc

    def test_finalize_is_repeatable(self) -> None:
        """Test finalize does not mutate stored stacks."""
        self.builder.insert("1", "photo.dng", T0)
        self.builder.insert("2", "photo.jpg", T0)

        first = self.builder.finalize()
        first[0].file_names.append("tampered")
        second = self.builder.finalize()

        assert second[0].member_ids == ["1"]
        assert second[0].file_names == ["photo.dng", "photo.jpg"]
        stored = next(iter(self.builder.stacks.values()))
        assert stored.member_ids == ["1", "2"]

    def test_invariants_over_mixed_input(self) -> None:
        """Test every returned stack had two members and excludes its cover."""
        names = [
            "IMG_0001_BURST001.jpg",
            "IMG_0001_BURST002_COVER.jpg",
            "IMG_0001_BURST003.jpg",
            "photo.dng",
            "photo.jpg",
            "lonely.jpg",
            "live.heic",
            "live.mov",
            "20200101_120000_001.jpg",
            "20200101_120000_002.jpg",
        ]
        for i, name in enumerate(names):
            self.builder.insert(str(i), name, T0)

        stacks = self.builder.finalize()

        assert len(stacks) == 3
        for stack in stacks:
            assert len(stack.member_ids) + 1 >= 2
            assert stack.cover_id not in stack.member_ids

    def test_date_range_rejects(self) -> None:
        """Test assets outside the configured range are ignored."""
        builder = StackBuilder(StackerConfig(date_range=DateRange.parse("2020")))
        builder.insert("1", "photo.dng", T0)
        builder.insert("2", "photo.jpg", datetime(2019, 12, 31, 12, 0))
        builder.insert("3", "other.dng", datetime(2021, 1, 1))

        assert builder.finalize() == []
        assert builder.stats == {"assets_inserted": 1, "assets_rejected": 2}

    def test_custom_collaborators(self) -> None:
        """Test injected date filter and classifier are consulted."""

        class OddMinutesOnly:
            def in_range(self, t: datetime) -> bool:
                return t.minute % 2 == 1

        class EverythingIsVideoButRaw:
            def type_from_extension(self, extension: str) -> MediaType:
                return MediaType.IMAGE if extension == ".dng" else MediaType.VIDEO

        builder = StackBuilder(date_range=OddMinutesOnly(), classifier=EverythingIsVideoButRaw())
        builder.insert("1", "photo.dng", T0)
        builder.insert("2", "photo.jpg", T0)
        builder.insert("3", "other.dng", T0 + timedelta(minutes=1))
        builder.insert("4", "other.jpg", T0 + timedelta(minutes=1))
        builder.insert("5", "pair.jpg", T0 + timedelta(minutes=1))
        builder.insert("6", "pair.jpe", T0 + timedelta(minutes=1))

        stacks = builder.finalize()

        assert len(stacks) == 1
        assert stacks[0].file_names == ["pair.jpg", "pair.jpe"]
        assert stacks[0].cover_id == "6"

    def test_build_stacks(self) -> None:
        """Test the insert-all-then-finalize convenience."""
        assets = [
            Asset(id="1", file_name="photo.dng", capture_date=T0),
            Asset(id="2", file_name="photo.jpg", capture_date=T0),
        ]

        stacks = self.builder.build_stacks(assets)

        assert stacks == [
            Stack(
                cover_id="2",
                kind=StackKind.RAW_JPEG_PAIR,
                member_ids=["1"],
                date=T0,
                file_names=["photo.dng", "photo.jpg"],
            )
        ]
