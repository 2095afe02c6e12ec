"""Coverage profile parser.

Profiles use the line-oriented Go cover format:
mode: set|count|atomic
<package>/<file>:<startline>.<startcol>,<endline>.<endcol> <numstmt> <count>

Example:
mode: count
github.com/user/pkg/main.go:10.2,12.16 3 1
github.com/user/pkg/main.go:15.2,20.16 5 0

- mode: set (0/1), count (hit count), atomic (thread-safe count)
- numstmt: number of statements in block, fixed at build time
- count: execution count (0 = not covered)

Unlike a lenient report reader, a malformed record is an error here: a
profile missing lines would silently lower the merged figures.
"""

import re
from pathlib import Path

from parcov.config.constants import MODE_PREFIX, PROFILE_MODES
from parcov.core.errors import MalformedProfile
from parcov.coverage.models import BlockRecord, CoverageProfile

_POSITION_RE = re.compile(r"^(?P<file>.+):([0-9]+)\.([0-9]+),([0-9]+)\.([0-9]+)$")
_COUNTER_RE = re.compile(r"[0-9]+")


class ProfileParser:
    """Parser for raw coverage profiles."""

    @property
    def format_id(self) -> str:
        return "gocov"

    def can_parse(self, path: Path) -> bool:
        """Check if file looks like a coverage profile (``mode:`` first line)."""
        if not path.is_file():
            return False
        try:
            with path.open() as f:
                return f.readline().strip().startswith(MODE_PREFIX)
        except (OSError, UnicodeDecodeError):
            return False

    def parse(self, path: Path, *, package_id: str = "") -> CoverageProfile:
        """Parse a profile file into a CoverageProfile."""
        try:
            content = path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedProfile.unreadable(str(path), str(e)) from e
        return self.parse_text(content, package_id=package_id, source=str(path))

    def parse_text(
        self, content: str, *, package_id: str = "", source: str = "<profile>"
    ) -> CoverageProfile:
        """Parse raw profile text into a CoverageProfile.

        Raises:
            MalformedProfile: missing/unknown mode header or undecodable record.
        """
        mode: str | None = None
        blocks: list[BlockRecord] = []

        for line_number, raw in enumerate(content.splitlines(), start=1):
            line = raw.strip()
            if not line:
                continue

            if line.startswith(MODE_PREFIX):
                line_mode = line[len(MODE_PREFIX) :].strip()
                if line_mode not in PROFILE_MODES:
                    raise MalformedProfile.unknown_mode(source, line_mode)
                if mode is None:
                    mode = line_mode
                elif line_mode != mode:
                    # Concatenated profiles repeat the header; differing modes cannot mix
                    raise MalformedProfile.bad_record(
                        source, line_number, line, f"conflicting mode (expected {mode})"
                    )
                continue

            if mode is None:
                raise MalformedProfile.missing_mode(source)

            blocks.append(_parse_record(line, line_number, source))

        if mode is None:
            raise MalformedProfile.missing_mode(source)

        return CoverageProfile(package_id=package_id, mode=mode, blocks=blocks)


def _parse_record(line: str, line_number: int, source: str) -> BlockRecord:
    # File paths may contain spaces; the two counters never do
    parts = line.rsplit(" ", 2)
    if len(parts) != 3:
        raise MalformedProfile.bad_record(source, line_number, line, "wrong field count")

    position, num_stmt, count = parts
    match = _POSITION_RE.match(position)
    if not match:
        raise MalformedProfile.bad_record(source, line_number, line, "bad block position")
    if not (_COUNTER_RE.fullmatch(num_stmt) and _COUNTER_RE.fullmatch(count)):
        raise MalformedProfile.bad_record(source, line_number, line, "non-numeric counter")

    start_line, start_col, end_line, end_col = (int(g) for g in match.groups()[1:])
    return BlockRecord(
        file=match.group("file"),
        start_line=start_line,
        start_col=start_col,
        end_line=end_line,
        end_col=end_col,
        num_statements=int(num_stmt),
        hit_count=int(count),
    )


_DEFAULT_PARSER = ProfileParser()


def parse_profile(
    content: str, package_id: str = "", *, source: str = "<profile>"
) -> CoverageProfile:
    """Parse raw profile text. See ProfileParser.parse_text."""
    return _DEFAULT_PARSER.parse_text(content, package_id=package_id, source=source)


def parse_profile_file(path: Path, package_id: str = "") -> CoverageProfile:
    """Parse a profile file. See ProfileParser.parse."""
    return _DEFAULT_PARSER.parse(path, package_id=package_id)


def is_profile(path: Path) -> bool:
    return _DEFAULT_PARSER.can_parse(path)
