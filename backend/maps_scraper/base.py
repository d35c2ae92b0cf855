"""
Base data structures for the Google Maps scraper.

This module defines the records produced by the crawl (listing references,
place records and their enrichment payloads), the work items that flow
through the orchestrator queue, the run result, and the error taxonomy
shared by every component.
"""

from typing import List, Dict, Optional, Any, Tuple
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def blue(text):
        return f"{Colors.BLUE}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def gray(text):
        return f"{Colors.GRAY}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


# ============================================================
# ERRORS
# ============================================================

class ScraperError(Exception):
    """Base class for all scraper errors."""


class ConfigurationError(ScraperError):
    """Bad input or environment. Run-fatal, raised before any navigation."""


class InvalidInputError(ConfigurationError):
    """The run input failed validation."""


class InvalidProxyCountryError(ConfigurationError):
    """Proxy country is not a valid ISO-3166-1 alpha-2 code."""

    def __init__(self, country_code: str):
        self.country_code = country_code
        super().__init__(
            f"Invalid country code: {country_code}. Must be a valid ISO 3166-1 alpha-2 code."
        )


class ItemError(ScraperError):
    """Fatal for the current work item only."""


class CaptchaBlockedError(ItemError):
    """Challenge detected but no solver is configured."""


class CaptchaSolveExhaustedError(ItemError):
    """The solver failed on every allowed attempt."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) if last_error else 'Unknown error'
        super().__init__(f"Failed to solve CAPTCHA after {attempts} attempts: {reason}")


class NetworkTimeoutError(ItemError):
    """A navigation or the whole item handler exceeded its timeout."""


class ExtractionPartialFailure(ScraperError):
    """An enrichment pipeline failed; its output degrades to the empty default."""

    def __init__(self, pipeline: str, cause: BaseException):
        self.pipeline = pipeline
        self.cause = cause
        super().__init__(f"{pipeline} extraction failed: {cause}")


class PhotoFetchFailure(ScraperError):
    """A single photo could not be downloaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Photo fetch failed for {url}: {reason}")


# ============================================================
# DATA MODEL
# ============================================================

class WorkLabel(Enum):
    """Phases of the crawl."""
    SEARCH = "SEARCH"   # Results feed, discovers listings
    DETAIL = "DETAIL"   # Single place page, produces a record


@dataclass(frozen=True)
class SearchRequest:
    """One configured search."""
    query: str
    location: Optional[str] = None

    @property
    def search_term(self) -> str:
        if self.location:
            return f"{self.query} {self.location}"
        return self.query


@dataclass(frozen=True)
class ListingItem:
    """A place reference discovered on the results feed."""
    title: str
    url: str


@dataclass
class GpsPoint:
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {'lat': self.lat, 'lng': self.lng}


@dataclass
class ReviewResponse:
    """Owner reply attached to a review."""
    owner: Optional[str] = None
    text: Optional[str] = None
    date: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {'owner': self.owner, 'text': self.text, 'date': self.date}


@dataclass
class Review:
    author: Optional[str] = None
    rating: Optional[int] = None
    text: Optional[str] = None
    date: Optional[str] = None
    response: Optional[ReviewResponse] = None

    @property
    def dedup_key(self) -> Tuple[str, str]:
        return (self.author or '', (self.text or '')[:50])

    @property
    def is_empty(self) -> bool:
        return not self.author and not self.text

    def to_dict(self) -> Dict[str, Any]:
        return {
            'author': self.author,
            'rating': self.rating,
            'text': self.text,
            'date': self.date,
            'response': self.response.to_dict() if self.response else None,
        }


@dataclass
class PhotoRef:
    """A photo persisted to the blob store."""
    key: str
    url: str
    thumbnail: str
    alt: str = ''

    def to_dict(self) -> Dict[str, str]:
        return {'key': self.key, 'url': self.url, 'thumbnail': self.thumbnail, 'alt': self.alt}


@dataclass
class ContactInfo:
    """
    Contact details scraped from a place's own website.

    Emails and phone numbers are de-duplicated but keep discovery order,
    social_media holds at most one URL per platform.
    """
    emails: List[str] = field(default_factory=list)
    social_media: Dict[str, str] = field(default_factory=dict)
    phone_numbers: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'emails': list(self.emails),
            'socialMedia': dict(self.social_media),
            'phoneNumbers': list(self.phone_numbers),
        }


@dataclass
class PlaceRecord:
    """Standardized place data after scraping."""
    title: Optional[str]
    url: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    gps: Optional[GpsPoint] = None
    scraped_at: Optional[datetime] = None

    # Enrichment (empty until the pipeline runs, stays empty on failure)
    reviews: List[Review] = field(default_factory=list)
    photos: List[PhotoRef] = field(default_factory=list)
    contact_info: Optional[ContactInfo] = None

    @property
    def place_id(self) -> str:
        """Identifier used for photo keys: the /place/<id>/ URL segment."""
        from .utils.extractors import extract_place_id
        return extract_place_id(self.url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'address': self.address,
            'phone': self.phone,
            'website': self.website,
            'rating': self.rating,
            'reviewCount': self.review_count,
            'gps': self.gps.to_dict() if self.gps else None,
            'url': self.url,
            'scrapedAt': self.scraped_at.isoformat() if self.scraped_at else None,
            'reviews': [r.to_dict() for r in self.reviews],
            'photos': [p.to_dict() for p in self.photos],
            'contactInfo': self.contact_info.to_dict() if self.contact_info else None,
        }


@dataclass
class WorkItem:
    """Entry of the orchestrator queue."""
    label: WorkLabel
    url: str
    search: Optional[SearchRequest] = None
    listing: Optional[ListingItem] = None

    @classmethod
    def for_search(cls, search: SearchRequest, url: str) -> 'WorkItem':
        return cls(label=WorkLabel.SEARCH, url=url, search=search)

    @classmethod
    def for_listing(cls, listing: ListingItem) -> 'WorkItem':
        return cls(label=WorkLabel.DETAIL, url=listing.url, listing=listing)

    @property
    def name(self) -> str:
        if self.label == WorkLabel.SEARCH and self.search:
            return self.search.search_term
        if self.listing and self.listing.title:
            return self.listing.title
        return self.url


@dataclass
class RunResult:
    """Result of a scraping run."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    searches: int = 0
    listings_found: int = 0
    details_enqueued: int = 0
    records: int = 0
    errors: int = 0
    enrichment_failures: int = 0
    error_details: List[Dict] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def record_error(self, item: WorkItem, error: BaseException):
        self.errors += 1
        self.error_details.append({
            'label': item.label.value,
            'url': item.url,
            'error_type': type(error).__name__,
            'error': str(error),
        })

    def finish(self):
        self.completed_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict:
        return {
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_seconds': self.duration_seconds,
            'searches': self.searches,
            'listings_found': self.listings_found,
            'details_enqueued': self.details_enqueued,
            'records': self.records,
            'errors': self.errors,
            'enrichment_failures': self.enrichment_failures,
            'error_details': self.error_details[:10],  # Limit error details
        }
