"""Core functionality for media stacker."""

from .classifier import MediaTypeClassifier
from .matchers import BurstMatcher
from .models import (
    Asset,
    BurstMatch,
    DateRange,
    GroupingKey,
    MediaType,
    Stack,
    StackerConfig,
    StackingResult,
    StackKind,
)
from .scanner import MediaFileScanner
from .stacker import StackBuilder, fold_stack, round_to_minute

__all__ = [
    "Asset",
    "BurstMatch",
    "BurstMatcher",
    "DateRange",
    "GroupingKey",
    "MediaFileScanner",
    "MediaType",
    "MediaTypeClassifier",
    "Stack",
    "StackBuilder",
    "StackerConfig",
    "StackingResult",
    "StackKind",
    "fold_stack",
    "round_to_minute",
]
