"""Line-level access to a RAMAS Metapop .mp file."""

from dataclasses import dataclass
from pathlib import Path

from mptools.errors import UsageError

# Preamble lines discarded before each view of the file
METADATA_VIEW_HEADER_LINES = 6
RESULTS_VIEW_HEADER_LINES = 1


@dataclass(frozen=True)
class RawDocument:
    """The lines of one .mp file after its preamble has been dropped."""
    filepath: Path
    lines: tuple[str, ...]
    header_lines: int = 0

    def __len__(self) -> int:
        return len(self.lines)

    def line_number(self, index: int) -> int:
        """1-based line number in the file for a view index."""
        return index + self.header_lines + 1


def read_document(filepath: Path | str, header_lines: int = 0) -> RawDocument:
    filepath = Path(filepath)
    if not filepath.exists():
        raise UsageError(f"{filepath} doesn't exist.", filepath)

    with open(filepath, "r", encoding="latin-1", newline="") as f:
        lines = f.read().splitlines()

    return RawDocument(
        filepath=filepath,
        lines=tuple(lines[header_lines:]),
        header_lines=header_lines,
    )
