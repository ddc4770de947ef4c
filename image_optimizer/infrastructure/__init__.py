"""Infrastructure helpers for remote sources."""

from .network import FETCHER, SourceFetcher, filename_from_url

__all__ = [
    "FETCHER",
    "SourceFetcher",
    "filename_from_url",
]
