"""Statement coverage parsing, merging, aggregation and reporting.

This package provides:
- Strict parsing of raw coverage profiles (mode header + one line per block)
- Summed-hit merge keyed by block position, with build-mismatch detection
- Aggregation of N worker outputs into per-package profiles and a scoped summary
- Deterministic serialization back to the raw format

Usage:
    from parcov.coverage import aggregate, format_coverage_line

    result = aggregate([worker0_text, worker1_text], scope=["pkg", "pkg/ext"])
    print(format_coverage_line(result.summary, explicit_scope=True))
    Path("pkg.coverprofile").write_text(result.render())
"""

from parcov.coverage.aggregate import (
    AggregateResult,
    CoverageAggregator,
    DiscardedWorker,
    aggregate,
)
from parcov.coverage.merge import merge, merge_blocks, merge_mode, merge_profiles
from parcov.coverage.models import (
    BlockRecord,
    CoverageProfile,
    CoverageSummary,
    WorkerOutput,
)
from parcov.coverage.parser import (
    ProfileParser,
    is_profile,
    parse_profile,
    parse_profile_file,
)
from parcov.coverage.report import (
    build_summary,
    build_text_summary,
    compute_file_stats,
    format_coverage_line,
)
from parcov.coverage.serialize import serialize_profile, serialize_profiles

__all__ = [
    # Models
    "BlockRecord",
    "CoverageProfile",
    "CoverageSummary",
    "WorkerOutput",
    # Parser
    "ProfileParser",
    "is_profile",
    "parse_profile",
    "parse_profile_file",
    # Merge
    "merge",
    "merge_blocks",
    "merge_mode",
    "merge_profiles",
    # Aggregate
    "AggregateResult",
    "CoverageAggregator",
    "DiscardedWorker",
    "aggregate",
    # Serialize
    "serialize_profile",
    "serialize_profiles",
    # Report
    "build_summary",
    "build_text_summary",
    "compute_file_stats",
    "format_coverage_line",
]
