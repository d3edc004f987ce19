"""Data module for dataset classes."""

from .dataset import Dataset, closest_header_name
from .split import split_csv


__all__ = ["Dataset", "closest_header_name", "split_csv"]
