"""Genomic region and intensity data modules."""

from .regions import GenomicRegion, parse_position, normalize_chromosome
from .intensity import IntensityReader, find_sample_file, list_intensity_files

__all__ = [
    "GenomicRegion",
    "parse_position",
    "normalize_chromosome",
    "IntensityReader",
    "find_sample_file",
    "list_intensity_files",
]
