"""Tests for PackageCoverageRouter."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FIXTURE_PKG, make_profile

from parcov.core.errors import InconsistentBlockDefinition, OutputPlacementError
from parcov.coverage import parse_profile_file
from parcov.routing import OutputPlacement, PackageCoverageRouter, PlacementRule


@pytest.fixture
def packages(tmp_path: Path) -> Path:
    root = tmp_path / "combined_coverage"
    (root / "first_package").mkdir(parents=True)
    (root / "second_package").mkdir()
    return root


def _leftovers(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir() if p.name.startswith(".parcov-"))


class TestRouteDefault:
    """Default and custom-name rules."""

    def test_writes_default_name(self, packages: Path) -> None:
        pkg = packages / "first_package"
        routed = PackageCoverageRouter(["first_package"]).route(
            make_profile([1] * 6), OutputPlacement(pkg, package_path="first_package")
        )

        assert routed.rule is PlacementRule.DEFAULT
        assert routed.destination == pkg.resolve() / "first_package.coverprofile"
        assert routed.destination.read_text() == make_profile([1] * 6)
        assert _leftovers(pkg) == []

    def test_custom_name_overwrites(self, packages: Path) -> None:
        pkg = packages / "first_package"
        (pkg / "coverage.txt").write_text(make_profile([9] * 6))
        router = PackageCoverageRouter(["first_package"])

        routed = router.route(
            make_profile([1] * 6), OutputPlacement(pkg, requested_file_name="coverage.txt")
        )

        assert routed.rule is PlacementRule.CUSTOM_NAME
        assert not routed.appended
        assert (pkg / "coverage.txt").read_text() == make_profile([1] * 6)
        assert not (pkg / "first_package.coverprofile").exists()


class TestRouteOutputDir:
    """Output-dir rule: move and append."""

    def test_moves_default_named_profile(self, packages: Path) -> None:
        router = PackageCoverageRouter(["first_package", "second_package"])

        for name in ("first_package", "second_package"):
            routed = router.route(
                make_profile([1] * 6),
                OutputPlacement(packages / name, requested_output_dir=packages, package_path=name),
            )
            assert routed.moved_from == (packages / name).resolve() / f"{name}.coverprofile"

        assert (packages / "first_package.coverprofile").is_file()
        assert (packages / "second_package.coverprofile").is_file()
        assert not (packages / "first_package" / "first_package.coverprofile").exists()
        assert not (packages / "second_package" / "second_package.coverprofile").exists()

    def test_creates_nested_output_dir(self, packages: Path) -> None:
        out = packages / "reports" / "coverage" / "go"
        routed = PackageCoverageRouter(["first_package"]).route(
            make_profile([1] * 6),
            OutputPlacement(packages / "first_package", requested_output_dir=out),
        )

        assert out.is_dir()
        assert routed.destination.parent == out.resolve()
        assert routed.destination.is_file()

    def test_append_merges_blocks(self, packages: Path) -> None:
        router = PackageCoverageRouter(["first_package", "second_package"])
        placement = OutputPlacement(
            packages / "first_package",
            requested_file_name="coverage.txt",
            requested_output_dir=packages,
            append_if_exists=True,
        )

        first = router.route(make_profile([1, 0, 0, 0, 0, 0]), placement)
        second = router.route(make_profile([1, 2, 0, 0, 0, 0]), placement)

        assert not first.appended
        assert second.appended
        content = (packages / "coverage.txt").read_text()
        assert content.count("mode:") == 1
        assert content == make_profile([2, 2, 0, 0, 0, 0])

    def test_append_with_move_semantics(self, packages: Path) -> None:
        router = PackageCoverageRouter(["first_package"])
        placement = OutputPlacement(
            packages / "first_package",
            requested_output_dir=packages / "out",
            append_if_exists=True,
        )

        router.route(make_profile([1] * 6), placement)
        routed = router.route(make_profile([1] * 6), placement)

        assert routed.appended
        profile = parse_profile_file(routed.destination, FIXTURE_PKG)
        assert [b.hit_count for b in profile.blocks] == [2] * 6
        assert not (packages / "first_package" / "first_package.coverprofile").exists()

    def test_append_to_different_build_raises(self, packages: Path) -> None:
        out = packages / "out"
        out.mkdir()
        mismatched = make_profile([1] * 6).replace(" 2 1\n", " 5 1\n", 1)
        (out / "coverage.txt").write_text(mismatched)
        placement = OutputPlacement(
            packages / "first_package",
            requested_file_name="coverage.txt",
            requested_output_dir=out,
            append_if_exists=True,
        )

        with pytest.raises(OutputPlacementError, match="another build") as exc_info:
            PackageCoverageRouter().route(make_profile([1] * 6), placement)
        assert isinstance(exc_info.value.__cause__, InconsistentBlockDefinition)
        assert (out / "coverage.txt").read_text() == mismatched

    def test_append_to_malformed_file_raises(self, packages: Path) -> None:
        out = packages / "out"
        out.mkdir()
        (out / "coverage.txt").write_text("not a profile\n")
        placement = OutputPlacement(
            packages / "first_package",
            requested_file_name="coverage.txt",
            requested_output_dir=out,
            append_if_exists=True,
        )

        with pytest.raises(OutputPlacementError, match="malformed profile"):
            PackageCoverageRouter().route(make_profile([1] * 6), placement)
        assert (out / "coverage.txt").read_text() == "not a profile\n"

    def test_concurrent_appends_are_serialized(self, packages: Path) -> None:
        router = PackageCoverageRouter([f"p{i}" for i in range(8)])
        placement = OutputPlacement(
            packages / "first_package",
            requested_file_name="coverage.txt",
            requested_output_dir=packages / "out",
            append_if_exists=True,
        )

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: router.route(make_profile([1] * 6), placement), range(8)))

        profile = parse_profile_file(packages / "out" / "coverage.txt")
        assert [b.hit_count for b in profile.blocks] == [8] * 6
        assert _leftovers(packages / "out") == []


class TestRouteFailures:
    """Write failures surface as OutputPlacementError."""

    def test_mkdir_failure(self, packages: Path) -> None:
        blocker = packages / "blocker"
        blocker.write_text("a file, not a directory")

        with pytest.raises(OutputPlacementError, match="Failed to create output directory"):
            PackageCoverageRouter().route(
                make_profile([1] * 6),
                OutputPlacement(packages / "first_package", requested_output_dir=blocker / "sub"),
            )

    def test_write_failure_leaves_no_partial_file(self, packages: Path) -> None:
        pkg = packages / "first_package"
        with (
            patch("parcov.routing.router.os.replace", side_effect=OSError(28, "No space left")),
            pytest.raises(OutputPlacementError, match="No space left"),
        ):
            PackageCoverageRouter().route(make_profile([1] * 6), OutputPlacement(pkg))

        assert list(pkg.iterdir()) == []


class TestRootPackageNames:
    """The suite root sharing a name with one of its subpackages."""

    def test_moves_do_not_overwrite_each_other(self, tmp_path: Path) -> None:
        root = tmp_path / "util"
        sub = root / "lib" / "util"
        sub.mkdir(parents=True)
        out = tmp_path / "out"
        router = PackageCoverageRouter(["", "lib/util"])

        top = router.route(make_profile([1] * 6), OutputPlacement(root, requested_output_dir=out))
        nested = router.route(
            make_profile([2] * 6),
            OutputPlacement(sub, requested_output_dir=out, package_path="lib/util"),
        )

        assert top.destination == out.resolve() / "util.coverprofile"
        assert nested.destination == out.resolve() / "lib_util.coverprofile"
        assert top.destination.read_text() == make_profile([1] * 6)
        assert nested.destination.read_text() == make_profile([2] * 6)
