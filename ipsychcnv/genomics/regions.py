"""Genomic region definitions and position string utilities."""

from dataclasses import dataclass
from typing import Optional
import re


POSITION_PATTERN = re.compile(r"^(?:chr)?(\w+):([\d,]+)-([\d,]+)$", re.IGNORECASE)


def normalize_chromosome(chromosome) -> str:
    """Return chromosome name as a string without the 'chr' prefix."""
    name = str(chromosome).strip()
    if name.lower().startswith("chr"):
        name = name[3:]
    # numeric chromosomes read from tables may arrive as floats (1.0)
    if name.endswith(".0") and name[:-2].isdigit():
        name = name[:-2]
    return name


@dataclass(frozen=True)
class GenomicRegion:
    """Represents a genomic region with inclusive coordinates."""

    chromosome: str
    start: int
    end: int
    name: Optional[str] = None

    @property
    def length(self) -> int:
        """Return the length of the region."""
        return self.end - self.start

    def covers(self, start: int, end: int) -> bool:
        """Check if [start, end] lies within this region."""
        return self.start <= start and end <= self.end

    def to_string(self) -> str:
        """Return position string, e.g. chr21:1050000-1350000."""
        return f"chr{self.chromosome}:{self.start}-{self.end}"


def parse_position(position: str) -> GenomicRegion:
    """Parse a position string of the form chr21:1050000-1350000.

    A leading ``--highlight`` flag, as copied from command lines, is ignored.

    Args:
        position: Position string.

    Returns:
        GenomicRegion for the position.

    Raises:
        ValueError: If the string is malformed or start is after stop.
    """
    text = str(position).replace("--highlight", "").strip()
    match = POSITION_PATTERN.match(text)
    if not match:
        raise ValueError(
            f"Invalid position: {position}. Use the form chr21:1050000-1350000"
        )

    chromosome, start, end = match.groups()
    start = int(start.replace(",", ""))
    end = int(end.replace(",", ""))
    if start > end:
        raise ValueError(f"Invalid position: {position}. Start is after stop")

    return GenomicRegion(normalize_chromosome(chromosome), start, end)
