"""Tabular file loader implementations."""
from .csv_loader import CsvLoader

__all__ = ["CsvLoader"]
