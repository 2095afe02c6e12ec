"""Tests for raw profile parsing."""

from pathlib import Path

import pytest
from conftest import FIXTURE_PKG, make_profile

from parcov.core.errors import ErrorCode, MalformedProfile
from parcov.coverage import ProfileParser, is_profile, parse_profile, parse_profile_file

SAMPLE = """\
mode: count
github.com/user/pkg/main.go:10.2,12.16 3 1
github.com/user/pkg/main.go:15.2,20.16 5 0
"""


class TestParseProfile:
    """Tests for parse_profile."""

    def test_parses_mode_and_blocks(self) -> None:
        profile = parse_profile(SAMPLE, "github.com/user/pkg")

        assert profile.mode == "count"
        assert profile.package_id == "github.com/user/pkg"
        assert len(profile.blocks) == 2

        first = profile.blocks[0]
        assert first.file == "github.com/user/pkg/main.go"
        assert (first.start_line, first.start_col, first.end_line, first.end_col) == (
            10,
            2,
            12,
            16,
        )
        assert first.num_statements == 3
        assert first.hit_count == 1

    def test_statement_totals(self) -> None:
        profile = parse_profile(SAMPLE)
        assert profile.statements_total == 8
        assert profile.statements_covered == 3

    @pytest.mark.parametrize("mode", ["set", "count", "atomic"])
    def test_accepts_all_modes(self, mode: str) -> None:
        assert parse_profile(f"mode: {mode}\n").mode == mode

    def test_header_only_profile_is_valid(self) -> None:
        profile = parse_profile("mode: set\n")
        assert profile.blocks == []
        assert profile.statements_total == 0

    def test_skips_blank_lines(self) -> None:
        content = "\nmode: count\n\na/b.go:1.1,2.2 1 1\n\n"
        assert len(parse_profile(content).blocks) == 1

    def test_repeated_header_is_allowed(self) -> None:
        """Concatenated worker outputs repeat the header."""
        content = "mode: count\na/b.go:1.1,2.2 1 1\nmode: count\na/b.go:3.1,4.2 1 0\n"
        assert len(parse_profile(content).blocks) == 2

    def test_file_path_with_spaces(self) -> None:
        profile = parse_profile("mode: set\nsome dir/my file.go:1.1,2.2 1 1\n")
        assert profile.blocks[0].file == "some dir/my file.go"

    def test_round_trips_through_to_line(self) -> None:
        profile = parse_profile(SAMPLE)
        assert [b.to_line() for b in profile.blocks] == SAMPLE.splitlines()[1:]

    def test_block_package_is_file_directory(self) -> None:
        profile = parse_profile(make_profile([1] * 6))
        assert {b.package_id for b in profile.blocks} == {FIXTURE_PKG}


class TestMalformedProfiles:
    """A malformed profile is an error, never a partial result."""

    def test_empty_content_has_no_mode(self) -> None:
        with pytest.raises(MalformedProfile) as exc_info:
            parse_profile("")
        assert exc_info.value.code == ErrorCode.MALFORMED_PROFILE
        assert "Missing mode header" in exc_info.value.message

    def test_record_before_header(self) -> None:
        with pytest.raises(MalformedProfile, match="Missing mode header"):
            parse_profile("a/b.go:1.1,2.2 1 1\nmode: set\n")

    def test_unknown_mode(self) -> None:
        with pytest.raises(MalformedProfile) as exc_info:
            parse_profile("mode: bogus\n")
        assert exc_info.value.details["mode"] == "bogus"

    def test_conflicting_modes(self) -> None:
        with pytest.raises(MalformedProfile, match="conflicting mode"):
            parse_profile("mode: set\nmode: count\n")

    @pytest.mark.parametrize(
        ("line", "reason"),
        [
            ("a/b.go:1.1,2.2 1", "wrong field count"),
            ("a/b.go:1.1,2.2", "wrong field count"),
            ("a/b.go:1.1-2.2 1 1", "bad block position"),
            ("a/b.go 1 1", "bad block position"),
            ("a/b.go:1.1,2.2 x 1", "non-numeric counter"),
            ("a/b.go:1.1,2.2 1 -1", "non-numeric counter"),
        ],
    )
    def test_bad_records(self, line: str, reason: str) -> None:
        with pytest.raises(MalformedProfile) as exc_info:
            parse_profile(f"mode: count\n{line}\n", source="worker.out")
        err = exc_info.value
        assert err.details["reason"] == reason
        assert err.details["line_number"] == 2
        assert err.message.startswith("worker.out:2:")

    def test_truncated_last_line(self) -> None:
        """A worker killed mid-write leaves a half record behind."""
        content = make_profile([1] * 6) + "example.com/coverage_fixture/coverage_fixture.go:30"
        with pytest.raises(MalformedProfile):
            parse_profile(content)


class TestParserFiles:
    """Tests for file-based parsing."""

    def test_parse_profile_file(self, tmp_path: Path) -> None:
        path = tmp_path / "c.out"
        path.write_text(SAMPLE)
        profile = parse_profile_file(path, "pkg")
        assert profile.package_id == "pkg"
        assert len(profile.blocks) == 2

    def test_unreadable_file(self, tmp_path: Path) -> None:
        with pytest.raises(MalformedProfile, match="Failed to read"):
            parse_profile_file(tmp_path / "missing.out")

    def test_is_profile(self, tmp_path: Path) -> None:
        good = tmp_path / "good.out"
        good.write_text(SAMPLE)
        bad = tmp_path / "bad.out"
        bad.write_text("<?xml version='1.0'?>")

        assert is_profile(good)
        assert not is_profile(bad)
        assert not is_profile(tmp_path / "missing.out")
        assert not is_profile(tmp_path)

    def test_format_id(self) -> None:
        assert ProfileParser().format_id == "gocov"
