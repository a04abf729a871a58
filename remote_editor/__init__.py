"""Remote filesystem editing engine: transfers, tree cache and finder index."""

__version__ = "0.1.0"
