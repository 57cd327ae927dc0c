"""csvconv - convert a directory of CSV files to JSON using parallel worker processes."""

from csvconv.__version__ import __version__


__all__ = ['__version__']
