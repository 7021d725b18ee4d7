"""SNP-array intensity file loading and signal utilities."""

from typing import List, Optional, Iterable, Union
from pathlib import Path
import logging
import re
import numpy as np
import pandas as pd

from .regions import normalize_chromosome

logger = logging.getLogger(__name__)

LRR_COLUMN = "Log.R.Ratio"
BAF_COLUMN = "B.Allele.Freq"
INTENSITY_COLUMNS = ["Name", "Chr", "Position", LRR_COLUMN, BAF_COLUMN]

MIN_WINDOW = 5
MAX_WINDOW = 35

# Affymetrix copy-number probes carry BAF = 2, which is not a usable value
CN_MARKER_BAF = 2


def list_intensity_files(
    path: Union[str, Path],
    pattern: str = "",
    recursive: bool = False
) -> List[str]:
    """List intensity files under a directory whose name matches a pattern."""
    root = Path(path)
    candidates = root.rglob("*") if recursive else root.glob("*")
    regex = re.compile(pattern) if pattern else None
    files = [
        str(p) for p in candidates
        if p.is_file() and (regex is None or regex.search(p.name))
    ]
    return sorted(files)


def find_sample_file(
    sample_id: str,
    files: Iterable[str],
    pattern: str = ""
) -> str:
    """Find the intensity file belonging to a sample.

    The sample ID must start at a word boundary and be followed only by
    ``pattern`` at the end of the path, so sample ``10`` never picks up
    ``110``.

    Args:
        sample_id: Sample identifier.
        files: Candidate file paths.
        pattern: Regular expression expected after the ID.

    Returns:
        Path of the first matching file.

    Raises:
        FileNotFoundError: If no file matches.
    """
    regex = re.compile(rf"\b{re.escape(str(sample_id))}{pattern}$")
    matches = [f for f in files if regex.search(str(f))]
    if not matches:
        raise FileNotFoundError(f"No intensity file found for sample {sample_id}")
    if len(matches) > 1:
        logger.warning(
            f"{len(matches)} intensity files match sample {sample_id}, using {matches[0]}"
        )
    return matches[0]


def window_size(num_snps: float, window: Optional[int] = None) -> int:
    """Return the smoothing window for a CNV with ``num_snps`` probes.

    Without an explicit window the square root of the SNP count is used.
    The result is always clamped to [5, 35].
    """
    if window is None or pd.isna(window):
        size = int(round(np.sqrt(num_snps))) if num_snps and num_snps > 0 else MIN_WINDOW
    else:
        size = int(window)
    return min(max(size, MIN_WINDOW), MAX_WINDOW)


def sliding_window_mean(values: Iterable[float], window: int) -> np.ndarray:
    """Centered moving average of a signal, ignoring missing values."""
    series = pd.Series(values, dtype=float)
    return series.rolling(window=window, center=True, min_periods=1).mean().to_numpy()


class IntensityReader:
    """Read per-SNP LRR and BAF values from an intensity file."""

    def __init__(
        self,
        skip: int = 0,
        snp_list: Optional[Union[str, Path, pd.DataFrame]] = None,
        lcr: Optional[Iterable[str]] = None
    ):
        """Initialize reader.

        Args:
            skip: Number of lines to skip before the header.
            snp_list: File or DataFrame with Name, Chr and Position columns
                that replace the positions found in the intensity file.
            lcr: SNP names in low copy repeat regions to drop.
        """
        self.skip = skip
        self.snp_list = self._load_snp_list(snp_list) if snp_list is not None else None
        self.lcr = set(lcr) if lcr is not None else None

    @staticmethod
    def _load_snp_list(snp_list: Union[str, Path, pd.DataFrame]) -> pd.DataFrame:
        """Load SNP list used to override positions."""
        if isinstance(snp_list, pd.DataFrame):
            df = snp_list.copy()
        else:
            df = pd.read_csv(snp_list, sep="\t")

        for col in ["Name", "Chr", "Position"]:
            if col not in df.columns:
                raise ValueError(f"Missing required column in SNP list: {col}")
        return df[["Name", "Chr", "Position"]]

    @staticmethod
    def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
        """Rename columns such as 'Log R Ratio' to 'Log.R.Ratio'."""
        renamed = {}
        for col in df.columns:
            name = str(col).strip().replace(" ", ".")
            if "." in name:
                # Illumina exports prefix signal columns with the sample name
                for target in (LRR_COLUMN, BAF_COLUMN):
                    if name.endswith(target):
                        name = target
            renamed[col] = name
        return df.rename(columns=renamed)

    def read(
        self,
        path: Union[str, Path],
        chromosome: Optional[str] = None
    ) -> pd.DataFrame:
        """Read an intensity file.

        Args:
            path: Tab-separated intensity file.
            chromosome: Optional chromosome to restrict to.

        Returns:
            DataFrame with Name, Chr, Position, Log.R.Ratio and B.Allele.Freq.
        """
        df = pd.read_csv(path, sep="\t", skiprows=self.skip)
        df = self.normalize_columns(df)

        if self.snp_list is not None:
            if "Name" not in df.columns:
                raise ValueError(f"Missing required column: Name in {path}")
            df = df.drop(columns=[c for c in ["Chr", "Position"] if c in df.columns])
            df = df.merge(self.snp_list, on="Name", how="inner")

        for col in INTENSITY_COLUMNS:
            if col == "Name":
                continue
            if col not in df.columns:
                raise ValueError(f"Missing required column: {col} in {path}")

        if self.lcr is not None and "Name" in df.columns:
            df = df[~df["Name"].isin(self.lcr)]

        df = df.assign(Chr=df["Chr"].map(normalize_chromosome))
        if chromosome is not None:
            df = df[df["Chr"] == normalize_chromosome(chromosome)]

        df = df.assign(**{BAF_COLUMN: df[BAF_COLUMN].mask(df[BAF_COLUMN] == CN_MARKER_BAF)})

        logger.debug(f"Read {len(df)} SNPs from {path}")
        return df.reset_index(drop=True)

    def read_region(
        self,
        path: Union[str, Path],
        chromosome: str,
        start: float,
        end: float
    ) -> pd.DataFrame:
        """Read SNPs strictly inside (start, end), ordered by position."""
        df = self.read(path, chromosome=chromosome)
        df = df[(df["Position"] > start) & (df["Position"] < end)]
        return df.sort_values("Position", kind="mergesort").reset_index(drop=True)
