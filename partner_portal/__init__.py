"""Multi-tier B2B partner ordering portal backend."""

__version__ = "1.0.0"
