"""
Link checker core components.
"""

from .urls import resolve, is_similar_host
from .url_frontier import URLFrontier, URLTask
from .fetcher import WebFetcher, FetchResult, RobotsChecker
from .parser import LinkExtractor
from .scheduler import CrawlerScheduler, CrawlStats

__all__ = [
    'resolve', 'is_similar_host',
    'URLFrontier', 'URLTask',
    'WebFetcher', 'FetchResult', 'RobotsChecker',
    'LinkExtractor',
    'CrawlerScheduler', 'CrawlStats'
]
