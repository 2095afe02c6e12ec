"""Write merged profiles back in the raw profile format."""

from collections.abc import Iterable
from operator import attrgetter

from parcov.config.constants import MODE_PREFIX
from parcov.coverage.merge import merge_mode
from parcov.coverage.models import CoverageProfile


def serialize_profiles(profiles: Iterable[CoverageProfile], *, mode: str | None = None) -> str:
    """Render profiles as one profile file: mode header, then one line per block.

    Blocks of every profile are emitted together in (file, position) order,
    so the output only depends on the block data. ``mode`` is required when
    there are no profiles to take it from.
    """
    profiles_list = list(profiles)
    if profiles_list:
        mode = merge_mode(profiles_list)
    elif mode is None:
        raise ValueError("Cannot serialize an empty profile list without a mode")

    blocks = sorted((b for p in profiles_list for b in p.blocks), key=attrgetter("key"))

    lines = [f"{MODE_PREFIX} {mode}"]
    lines.extend(b.to_line() for b in blocks)
    return "\n".join(lines) + "\n"


def serialize_profile(profile: CoverageProfile) -> str:
    return serialize_profiles([profile])
