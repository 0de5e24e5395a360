"""Crawl, store and grade IELTS practice tests."""

__version__ = "0.1.0"
