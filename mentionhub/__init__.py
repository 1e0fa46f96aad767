"""Multi-source social mention aggregation: fetch, normalize, dedupe, store, serve."""

__version__ = "0.1.0"
