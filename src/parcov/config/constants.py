"""Configuration constants.

Values that are part of the profile format or the on-disk naming contract
and must not be user-configurable.
"""

PROFILE_MODES = ("set", "count", "atomic")
"""Coverage modes accepted in a profile's mode header."""

MODE_PREFIX = "mode:"
"""First line of every profile: ``mode: <set|count|atomic>``."""

DEFAULT_PROFILE_SUFFIX = ".coverprofile"
"""Default per-package profile name is ``<package-dir-name>.coverprofile``."""

DEFAULT_TEST_FILE_GLOB = "*_test.go"

SKIPPED_DIR_NAMES = frozenset({"vendor", "node_modules", "testdata"})
"""Directories never treated as packages in recursive mode."""

PACKAGE_NAME_SEPARATOR = "_"
"""Replaces path separators when disambiguating colliding package names."""

TEMP_PREFIX = ".parcov-"
"""Prefix for temporary files and directories created next to destinations."""

# =============================================================================
# Worker environment
# =============================================================================

ENV_WORKER_INDEX = "PARCOV_WORKER_INDEX"
ENV_WORKER_COUNT = "PARCOV_WORKER_COUNT"
ENV_PROFILE = "PARCOV_PROFILE"
