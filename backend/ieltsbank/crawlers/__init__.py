"""Crawler package for fetching IELTS tests from the source site."""

from .client import Credentials, FetchClient, RetryPolicy
from .models import CrawledTest, CrawlResult, ListingItem, SaveOutcome
from .orchestrator import CrawlOrchestrator, run_crawl

__all__ = [
    # Fetching
    "Credentials",
    "FetchClient",
    "RetryPolicy",
    # Records
    "CrawledTest",
    "CrawlResult",
    "ListingItem",
    "SaveOutcome",
    # Orchestration
    "CrawlOrchestrator",
    "run_crawl",
]
