"""Destination policy for per-package coverage profiles."""

from parcov.routing.placement import (
    OutputPlacement,
    PlacementRule,
    ResolvedPlacement,
    SessionNames,
    default_file_name,
    resolve_placement,
)
from parcov.routing.router import PackageCoverageRouter, RoutedProfile

__all__ = [
    "OutputPlacement",
    "PackageCoverageRouter",
    "PlacementRule",
    "ResolvedPlacement",
    "RoutedProfile",
    "SessionNames",
    "default_file_name",
    "resolve_placement",
]
