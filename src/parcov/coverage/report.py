"""Coverage report generation.

Turns an AggregateResult (or any set of merged profiles) into the one-line
``coverage: NN.N% of statements`` report and structured JSON.

Output schema for build_summary:
{
    "summary": {
        "packages": [str, ...],          # scope, in the order requested
        "total_statements": int,
        "covered_statements": int,
        "coverage_percent": float        # one decimal place
    },
    "packages": {package_id: {"total_statements", "covered_statements", "coverage_percent"}},
    "files": [
        {
            "path": str,
            "package": str,
            "total_statements": int,
            "covered_statements": int,
            "coverage_percent": float,
            "missed_lines": "12-14,20"   # Lines of blocks with 0 hits
        },
        ...
    ],
    "mode": str,
    "discarded_workers": [str, ...]
}
"""

from collections.abc import Iterable
from typing import Any

from parcov.coverage.aggregate import AggregateResult
from parcov.coverage.models import CoverageProfile, CoverageSummary


def _compress_ranges(lines: list[int]) -> str:
    """Compress sorted line numbers into ``1-3,5,7-9`` form."""
    if not lines:
        return ""
    ranges: list[str] = []
    start = prev = lines[0]
    for line in lines[1:]:
        if line == prev + 1:
            prev = line
            continue
        ranges.append(f"{start}-{prev}" if prev != start else str(start))
        start = prev = line
    ranges.append(f"{start}-{prev}" if prev != start else str(start))
    return ",".join(ranges)


def format_coverage_line(summary: CoverageSummary, *, explicit_scope: bool = False) -> str:
    """Render the report line printed after a package run.

    ``coverage: 80.0% of statements`` for a single package,
    ``coverage: 71.4% of statements in a, b`` when a scope was requested.
    """
    if not summary.has_statements:
        return "coverage: [no statements]"
    line = f"coverage: {summary.percent_text}% of statements"
    if explicit_scope and summary.packages:
        line += f" in {', '.join(summary.packages)}"
    return line


def compute_file_stats(profiles: Iterable[CoverageProfile]) -> list[dict[str, Any]]:
    """Compute per-file statement coverage, sorted by path.

    Args:
        profiles: Merged profiles (any packages).

    Returns:
        List of dicts with per-file stats.
    """
    by_file: dict[str, dict[str, Any]] = {}
    missed: dict[str, set[int]] = {}

    for profile in profiles:
        for block in profile.blocks:
            stats = by_file.setdefault(
                block.file,
                {
                    "path": block.file,
                    "package": block.package_id or profile.package_id,
                    "total_statements": 0,
                    "covered_statements": 0,
                },
            )
            stats["total_statements"] += block.num_statements
            if block.covered:
                stats["covered_statements"] += block.num_statements
            else:
                missed.setdefault(block.file, set()).update(
                    range(block.start_line, block.end_line + 1)
                )

    file_stats = []
    for path in sorted(by_file):
        stats = by_file[path]
        total = stats["total_statements"]
        stats["coverage_percent"] = (
            round(stats["covered_statements"] / total * 100.0, 1) if total else 100.0
        )
        stats["missed_lines"] = _compress_ranges(sorted(missed.get(path, ())))
        file_stats.append(stats)

    return file_stats


def _summary_dict(summary: CoverageSummary) -> dict[str, Any]:
    return {
        "total_statements": summary.statements_total,
        "covered_statements": summary.statements_covered,
        "coverage_percent": round(summary.percent, 1),
    }


def build_summary(result: AggregateResult, *, include_files: bool = True) -> dict[str, Any]:
    """Build a structured summary of an aggregate result.

    Args:
        result: Aggregated package run.
        include_files: Whether to include per-file details.

    Returns:
        Structured dict suitable for JSON serialization.
    """
    output: dict[str, Any] = {
        "summary": {
            "packages": list(result.summary.packages),
            **_summary_dict(result.summary),
        },
        "packages": {pid: _summary_dict(s) for pid, s in result.package_summaries.items()},
        "mode": result.mode,
        "discarded_workers": result.warnings,
    }
    if include_files:
        output["files"] = compute_file_stats(result.profiles.values())
    return output


def build_text_summary(result: AggregateResult) -> str:
    """Build the coverage line for display contexts."""
    return format_coverage_line(result.summary, explicit_scope=result.explicit_scope)
