"""Disk-backed B+ tree mapping string keys to integer values, with a script runner and generator."""

__version__ = "0.1.0"
__all__ = ["__version__"]