"""Site handlers."""

from .google_maps import ListingDiscoverer, DetailExtractor

__all__ = ['ListingDiscoverer', 'DetailExtractor']
