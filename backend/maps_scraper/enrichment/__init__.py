"""Optional per-place enrichment: reviews, photos, contact info."""

from .reviews import ReviewCollector
from .photos import PhotoCollector
from .contact import ContactCollector

__all__ = ['ReviewCollector', 'PhotoCollector', 'ContactCollector']
