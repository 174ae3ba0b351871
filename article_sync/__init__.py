"""Article Sync - fetch, summarize and store news articles on a schedule."""

__version__ = "0.1.0"
