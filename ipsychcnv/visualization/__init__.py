"""Visualization modules for CNV intensity data."""

from .plots import CNVPlotter
from .stack import StackPlotter

__all__ = ["CNVPlotter", "StackPlotter"]
