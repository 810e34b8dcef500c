"""Data models for queries, written documents and search results."""
