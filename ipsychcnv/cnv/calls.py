"""CNV call records and table loading."""

from dataclasses import dataclass
from typing import List, Optional, Any, Iterable, Union
from pathlib import Path
import pandas as pd

from ..genomics.regions import normalize_chromosome


NORMAL_COPY_NUMBER = 2

REQUIRED_COLUMNS = ["Chr", "Start", "Stop", "ID", "Length", "NumSNPs", "CN"]
LABEL_COLUMN = "CNVID"


class MissingColumnError(ValueError):
    """Raised when a CNV table lacks required columns."""

    def __init__(self, missing: List[str], table: str = "table"):
        self.missing = list(missing)
        self.table = table
        super().__init__(f"Missing required column(s) in {table}: {', '.join(self.missing)}")


def check_columns(
    df: pd.DataFrame,
    required: Iterable[str],
    table: str = "table"
) -> None:
    """Raise MissingColumnError listing every required column absent from df."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise MissingColumnError(missing, table)


@dataclass(frozen=True)
class CNVRecord:
    """A CNV call for one sample, from ground truth or a detection algorithm."""

    sample_id: str
    chromosome: str
    start: int
    stop: int
    length: int
    num_snps: float
    copy_number: int
    label: Optional[str] = None

    def overlaps(self, other: "CNVRecord") -> bool:
        """Check if two records on the same sample and chromosome overlap."""
        if self.sample_id != other.sample_id or self.chromosome != other.chromosome:
            return False
        return other.start <= self.stop and other.stop >= self.start

    def contains(self, other: "CNVRecord") -> bool:
        """Check if other lies strictly inside this record."""
        if self.sample_id != other.sample_id or self.chromosome != other.chromosome:
            return False
        return other.start > self.start and other.stop < self.stop

    def overlap_length(self, other: "CNVRecord") -> int:
        """Return the length of the intersection with another record."""
        return min(self.stop, other.stop) - max(self.start, other.start)


def _clean_label(value: Any) -> Optional[str]:
    """Return a label with spaces removed, or None if missing."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value).replace(" ", "")


def records_from_dataframe(
    df: pd.DataFrame,
    require_label: bool = False,
    table: str = "CNV table"
) -> List[CNVRecord]:
    """Convert a CNV table to records, preserving row order.

    Args:
        df: Table with Chr, Start, Stop, ID, Length, NumSNPs and CN columns.
        require_label: Also require a CNVID column.
        table: Table name used in error messages.

    Returns:
        List of CNV records.

    Raises:
        MissingColumnError: If required columns are absent.
        ValueError: If a record has a non-positive length.
    """
    required = REQUIRED_COLUMNS + ([LABEL_COLUMN] if require_label else [])
    check_columns(df, required, table)

    has_label = LABEL_COLUMN in df.columns
    columns = REQUIRED_COLUMNS + ([LABEL_COLUMN] if has_label else [])
    records = []
    for idx, values in enumerate(df[columns].to_dict("records")):
        length = int(values["Length"])
        if length <= 0:
            raise ValueError(f"Row {idx} of {table} has non-positive Length: {length}")

        records.append(CNVRecord(
            sample_id=str(values["ID"]),
            chromosome=normalize_chromosome(values["Chr"]),
            start=int(values["Start"]),
            stop=int(values["Stop"]),
            length=length,
            num_snps=float(values["NumSNPs"]),
            copy_number=int(values["CN"]),
            label=_clean_label(values[LABEL_COLUMN]) if has_label else None,
        ))
    return records


def load_cnv_table(path: Union[str, Path]) -> pd.DataFrame:
    """Load a tab-separated CNV table, keeping sample IDs as text."""
    return pd.read_csv(path, sep="\t", dtype={"ID": str})
