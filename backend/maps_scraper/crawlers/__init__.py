"""Browser and HTTP clients used by the scraper."""

from .static import PhotoFetcher
from .browser import BrowserSession, navigate

__all__ = ['PhotoFetcher', 'BrowserSession', 'navigate']
