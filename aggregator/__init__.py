"""PR metadata aggregation."""

from .metadata_aggregator import MAX_PATCH_LINES, MetadataAggregator, compute_totals, truncate_patch

__all__ = ["MAX_PATCH_LINES", "MetadataAggregator", "compute_totals", "truncate_patch"]
