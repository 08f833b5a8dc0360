"""Overview, top-down tree and flamegraph views of heap memory traces."""

__version__ = "0.3.0"