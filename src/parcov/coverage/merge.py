"""Coverage profile merging with summed-hit semantics.

When merging profiles from parallel workers (or from several package runs
that covered the same package), each block is identified by its file and
source range:

- block[k].hit_count = sum(block[k].hit_count across all profiles)
- block[k].num_statements must be identical in every profile

In ``set`` mode counters are flags, so the merged counter is 1 if any
profile hit the block. Summing flags would make an N-worker profile differ
from the single-worker one.

Output order is fixed (package, then file and position) so that merging
the same data in any order produces byte-identical serializations.
"""

from collections.abc import Iterable
from operator import attrgetter

from parcov.core.errors import InconsistentBlockDefinition
from parcov.coverage.models import BlockKey, BlockRecord, CoverageProfile


def merge_mode(profiles: Iterable[CoverageProfile]) -> str:
    """Return the single mode shared by all profiles.

    Raises:
        InconsistentBlockDefinition: If profiles were collected in different modes.
    """
    modes = sorted({p.mode for p in profiles})
    if len(modes) != 1:
        raise InconsistentBlockDefinition.mode_mismatch(modes)
    return modes[0]


def merge_blocks(
    blocks: Iterable[BlockRecord], *, mode: str, package_id: str = ""
) -> list[BlockRecord]:
    """Merge blocks sharing a key and return them in deterministic order.

    Args:
        blocks: Blocks from any number of profiles, duplicates allowed.
        mode: Profile mode; ``set`` merges by OR instead of sum.
        package_id: Used in error messages only.

    Raises:
        InconsistentBlockDefinition: Same key with different statement counts.
    """
    merged: dict[BlockKey, BlockRecord] = {}
    for block in blocks:
        existing = merged.get(block.key)
        if existing is None:
            merged[block.key] = block
            continue

        if existing.num_statements != block.num_statements:
            raise InconsistentBlockDefinition.statement_mismatch(
                package_id or block.package_id,
                block.location(),
                existing.num_statements,
                block.num_statements,
            )

        if mode == "set":
            hits = 1 if (existing.hit_count or block.hit_count) else 0
        else:
            hits = existing.hit_count + block.hit_count
        merged[block.key] = BlockRecord(
            file=block.file,
            start_line=block.start_line,
            start_col=block.start_col,
            end_line=block.end_line,
            end_col=block.end_col,
            num_statements=block.num_statements,
            hit_count=hits,
        )

    return sorted(merged.values(), key=attrgetter("key"))


def merge_profiles(profiles: Iterable[CoverageProfile]) -> dict[str, CoverageProfile]:
    """Merge profiles into one profile per package ID.

    Args:
        profiles: CoverageProfile objects, any order, any number per package.

    Returns:
        Merged profiles keyed by package ID, in package ID order.

    Raises:
        InconsistentBlockDefinition: Mixed modes or mismatched block definitions.
    """
    profiles_list = list(profiles)
    if not profiles_list:
        return {}

    mode = merge_mode(profiles_list)

    # Group profiles by package
    by_package: dict[str, list[CoverageProfile]] = {}
    for profile in profiles_list:
        by_package.setdefault(profile.package_id, []).append(profile)

    merged: dict[str, CoverageProfile] = {}
    for package_id in sorted(by_package):
        group = by_package[package_id]
        blocks = merge_blocks(
            (b for p in group for b in p.blocks), mode=mode, package_id=package_id
        )
        merged[package_id] = CoverageProfile(package_id=package_id, mode=mode, blocks=blocks)

    return merged


def merge(*profiles: CoverageProfile) -> dict[str, CoverageProfile]:
    """Convenience function to merge profiles as varargs."""
    return merge_profiles(profiles)
