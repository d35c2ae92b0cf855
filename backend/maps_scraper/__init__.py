"""
Google Maps place scraper.

Searches Google Maps, collects the listed places and optionally enriches each
record with reviews, photos and contact details from the place's website.

Usage:
    from maps_scraper import RunContext, ScrapeOrchestrator, load_input
"""

from .base import (
    ScraperError,
    ConfigurationError,
    InvalidInputError,
    InvalidProxyCountryError,
    ItemError,
    CaptchaBlockedError,
    CaptchaSolveExhaustedError,
    NetworkTimeoutError,
    ExtractionPartialFailure,
    PhotoFetchFailure,
    SearchRequest,
    ListingItem,
    PlaceRecord,
    Review,
    PhotoRef,
    ContactInfo,
    WorkItem,
    WorkLabel,
    RunResult,
)
from .config import ScrapeInput, ProxyConfig, CaptchaConfig, load_input
from .context import RunContext
from .manager import ScrapeOrchestrator

__all__ = [
    'ScraperError',
    'ConfigurationError',
    'InvalidInputError',
    'InvalidProxyCountryError',
    'ItemError',
    'CaptchaBlockedError',
    'CaptchaSolveExhaustedError',
    'NetworkTimeoutError',
    'ExtractionPartialFailure',
    'PhotoFetchFailure',
    'SearchRequest',
    'ListingItem',
    'PlaceRecord',
    'Review',
    'PhotoRef',
    'ContactInfo',
    'WorkItem',
    'WorkLabel',
    'RunResult',
    'ScrapeInput',
    'ProxyConfig',
    'CaptchaConfig',
    'load_input',
    'RunContext',
    'ScrapeOrchestrator',
]
