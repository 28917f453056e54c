"""Bulk crawl, caching and statistics over the OSDR repository."""

from __future__ import annotations

from .cache import CacheEntry, RepositoryCache, RepositoryUnavailableError
from .crawl import HIGH_YIELD_TERMS, BulkCrawler, CrawlConfig
from .stats import StatisticsSnapshot, build_dashboard_stats, compute_statistics

__all__ = [
    "BulkCrawler",
    "CacheEntry",
    "CrawlConfig",
    "HIGH_YIELD_TERMS",
    "RepositoryCache",
    "RepositoryUnavailableError",
    "StatisticsSnapshot",
    "build_dashboard_stats",
    "compute_statistics",
]
