"""Genre resolution: per-album pipeline and the batch runner."""

from genre_backfill.resolve.backfill import (
    BackfillOptions,
    BackfillResult,
    BackfillSummary,
    UnresolvedEntry,
    run_backfill,
    write_unresolved_report,
)
from genre_backfill.resolve.pipeline import (
    AlbumOutcome,
    AlbumStatus,
    GenreResolver,
    ResolutionResult,
    ResolutionSource,
    UnresolvedReason,
)

__all__ = [
    "AlbumOutcome",
    "AlbumStatus",
    "BackfillOptions",
    "BackfillResult",
    "BackfillSummary",
    "GenreResolver",
    "ResolutionResult",
    "ResolutionSource",
    "UnresolvedEntry",
    "UnresolvedReason",
    "run_backfill",
    "write_unresolved_report",
]
