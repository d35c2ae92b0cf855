"""
Photo collection for a loaded place page.

Thumbnails on the page point at googleusercontent URLs carrying a size
token; each is upgraded to the high resolution variant, deduplicated on that
URL, downloaded and stored as photo-<placeId>-<index>.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from bs4 import BeautifulSoup

from ..base import PhotoRef, PhotoFetchFailure
from ..config import PHOTO_HOST_MARKER, PHOTO_SELECTOR
from ..crawlers.static import PhotoFetcher
from ..storage import BlobStore
from ..utils.extractors import parse_html
from ..utils.normalizers import upgrade_photo_url

logger = logging.getLogger(__name__)


@dataclass
class PhotoCandidate:
    url: str
    thumbnail: str
    alt: str = ''


def extract_photo_candidates(soup: BeautifulSoup) -> List[PhotoCandidate]:
    """
    Photo descriptors in page order, unique by upgraded URL.

    On collision the first-seen thumbnail and alt are kept.
    """
    candidates: Dict[str, PhotoCandidate] = {}
    for img in soup.select(PHOTO_SELECTOR):
        src = img.get('src') or img.get('data-src')
        if not src or PHOTO_HOST_MARKER not in src:
            continue
        url = upgrade_photo_url(src)
        if url not in candidates:
            candidates[url] = PhotoCandidate(url=url, thumbnail=src, alt=img.get('alt') or '')
    return list(candidates.values())


def photo_key(place_id: str, index: int) -> str:
    return f"photo-{place_id}-{index}"


class PhotoCollector:
    """Downloads a place's photos into the blob store."""

    def __init__(self, fetcher: PhotoFetcher, store: BlobStore):
        self.fetcher = fetcher
        self.store = store

    async def collect(self, page, place_id: str) -> List[PhotoRef]:
        """
        Returns:
            Only the photos that were fetched and stored
        """
        candidates = extract_photo_candidates(parse_html(await page.content()))
        logger.debug(f"Found {len(candidates)} unique photos for {place_id}")

        stored = []
        for index, candidate in enumerate(candidates):
            try:
                data, content_type = await self.fetcher.fetch(candidate.url)
            except PhotoFetchFailure as e:
                logger.warning(f"Skipping photo {index}: {e}")
                continue

            key = photo_key(place_id, index)
            try:
                await self.store.put(key, data, content_type)
            except Exception as e:
                logger.warning(f"Skipping photo {index}: could not store {key}: {e}")
                continue
            stored.append(PhotoRef(key=key, url=candidate.url, thumbnail=candidate.thumbnail, alt=candidate.alt))

        logger.info(f"Stored {len(stored)}/{len(candidates)} photos")
        return stored
