"""Evaluation and plotting tools for SNP-array CNV calls."""

__version__ = "0.1.0"
