"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides the profile fixtures shared by unit and integration tests.
"""

import os
import shlex
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local parcov package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of parcov modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("parcov"):
        del sys.modules[module_name]


FIXTURE_PKG = "example.com/coverage_fixture"
EXTERNAL_PKG = "example.com/coverage_fixture/external_coverage_fixture"

# Blocks of coverage_fixture.go: (position, statements). 10 statements total.
FIXTURE_BLOCKS = [
    ("5.20,7.2", 2),
    ("9.22,10.15", 1),
    ("10.15,12.3", 2),
    ("13.2,13.14", 1),
    ("16.22,18.2", 2),
    ("20.20,22.2", 2),
]

# Blocks of external.go: 4 statements total.
EXTERNAL_BLOCKS = [
    ("3.25,5.2", 2),
    ("7.25,9.2", 2),
]


def make_profile(
    hits: list[int],
    *,
    mode: str = "count",
    blocks: list[tuple[str, int]] | None = None,
    file: str = f"{FIXTURE_PKG}/coverage_fixture.go",
    order: list[int] | None = None,
    header: bool = True,
) -> str:
    """Render a raw profile for ``blocks`` with the given per-block hit counts."""
    blocks = FIXTURE_BLOCKS if blocks is None else blocks
    indices = order if order is not None else list(range(len(blocks)))
    lines = [f"mode: {mode}"] if header else []
    for i in indices:
        position, stmts = blocks[i]
        lines.append(f"{file}:{position} {stmts} {hits[i]}")
    return "\n".join(lines) + "\n"


def make_external_profile(hits: list[int], *, mode: str = "count", header: bool = True) -> str:
    return make_profile(
        hits,
        mode=mode,
        blocks=EXTERNAL_BLOCKS,
        file=f"{EXTERNAL_PKG}/external.go",
        header=header,
    )


# One run: 8 of 10 statements covered (block 16.22,18.2 missed)
SINGLE_WORKER_HITS = [3, 2, 1, 1, 0, 4]

# The same run sharded over four workers; per-block sums equal SINGLE_WORKER_HITS
FOUR_WORKER_HITS = [
    [1, 0, 0, 1, 0, 1],
    [1, 1, 0, 0, 0, 1],
    [1, 1, 1, 0, 0, 1],
    [0, 0, 0, 0, 0, 1],
]

# External package exercised from the fixture's tests: 2 of 4 statements
EXTERNAL_HITS = [5, 0]


@pytest.fixture
def single_worker_profile() -> str:
    return make_profile(SINGLE_WORKER_HITS)


@pytest.fixture
def four_worker_profiles() -> list[str]:
    # Workers emit blocks in different orders
    orders = [None, [5, 4, 3, 2, 1, 0], [2, 0, 1, 5, 3, 4], [4, 5, 0, 1, 2, 3]]
    return [make_profile(h, order=o) for h, o in zip(FOUR_WORKER_HITS, orders, strict=True)]


@pytest.fixture
def cross_package_profile() -> str:
    """Fixture and external blocks in one profile, as ``-coverpkg`` produces."""
    return make_profile(SINGLE_WORKER_HITS) + make_external_profile(EXTERNAL_HITS, header=False)


_WORKER_BODY = '''
import os
import sys
from pathlib import Path


def shard(total, index, count):
    return total // count + (1 if index < total % count else 0)


index = int(os.environ["PARCOV_WORKER_INDEX"])
count = int(os.environ["PARCOV_WORKER_COUNT"])
profile, coverpkg = sys.argv[1], sys.argv[2]
name = Path.cwd().name
if os.environ.get("FAKE_CRASH_WORKER") == str(index):
    sys.exit(3)
if os.environ.get("FAKE_CRASH_PACKAGE") == name:
    sys.exit(3)
lines = ["mode: count"]
for (position, stmts), hits in zip(FIXTURE_BLOCKS, HITS):
    covered = shard(hits, index, count)
    lines.append(f"example.com/{name}/{name}.go:{position} {stmts} {covered}")
if "external_coverage_fixture" in coverpkg:
    for (position, stmts), hits in zip(EXTERNAL_BLOCKS, EXTERNAL_HITS):
        covered = shard(hits, index, count)
        path = f"example.com/{name}/external_coverage_fixture/external.go"
        lines.append(f"{path}:{position} {stmts} {covered}")
Path(profile).write_text("\\n".join(lines) + "\\n")
sys.exit(int(os.environ.get("FAKE_EXIT_CODE", "0")))
'''


@pytest.fixture
def worker_command(tmp_path: Path) -> str:
    """``--command`` value running a Python stand-in for ``go test``.

    Every block's total hits equal SINGLE_WORKER_HITS / EXTERNAL_HITS whatever
    the worker count, so merged output must not depend on it.
    """
    script = tmp_path / "fake_go_test.py"
    script.write_text(
        f"FIXTURE_BLOCKS = {FIXTURE_BLOCKS!r}\n"
        f"EXTERNAL_BLOCKS = {EXTERNAL_BLOCKS!r}\n"
        f"HITS = {SINGLE_WORKER_HITS!r}\n"
        f"EXTERNAL_HITS = {EXTERNAL_HITS!r}\n" + _WORKER_BODY
    )
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))} {{profile}} {{coverpkg}}"


@pytest.fixture
def go_suite(tmp_path: Path) -> Path:
    """Suite tree shaped like a Go module with three test packages.

    combined_coverage/{first_package,second_package}, and coverage_fixture
    with a non-test external_coverage_fixture package below it.
    """
    root = tmp_path / "suite"
    for rel in (
        "combined_coverage/first_package",
        "combined_coverage/second_package",
        "coverage_fixture",
    ):
        pkg = root / rel
        pkg.mkdir(parents=True)
        (pkg / f"{pkg.name}.go").write_text(f"package {pkg.name}\n")
        (pkg / f"{pkg.name}_test.go").write_text(f"package {pkg.name}\n")
    external = root / "coverage_fixture" / "external_coverage_fixture"
    external.mkdir()
    (external / "external.go").write_text("package external_coverage_fixture\n")
    return root


@pytest.fixture
def isolated_config(tmp_path: Path):
    """Keep the user's global config and PARCOV__ env vars out of CLI runs."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("PARCOV")}
    with (
        patch("parcov.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml"),
        patch.dict(os.environ, env, clear=True),
    ):
        yield
