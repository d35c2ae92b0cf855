"""
Site configuration and run input for the Google Maps scraper.

Defines:
- URLs and fixed crawl constants (scroll increments, attempt limits)
- Ordered extraction rules per field (selector strings are volatile)
- Proxy / CAPTCHA configuration values and the run input model
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .base import SearchRequest, InvalidInputError, InvalidProxyCountryError
from .utils.extractors import SelectorText, SelectorAttr


# ============================================================
# URLS & CRAWL CONSTANTS
# ============================================================
GOOGLE_MAPS_URL = 'https://www.google.com/maps'
SEARCH_URL_TEMPLATE = 'https://www.google.com/maps/search/{query}?hl=en'

# Search phase
LISTING_SCROLL_INCREMENT = 2000     # px per results-feed scroll
MAX_SCROLL_ATTEMPTS = 30            # hard bound on feed scroll rounds

# Reviews
REVIEW_SCROLL_INCREMENT = 1000
REVIEW_IDLE_THRESHOLD = 3           # consecutive rounds with no new rendered reviews
REVIEW_STALL_LIMIT = 15             # idle rounds tolerated while the panel still scrolls
REVIEW_MAX_ROUNDS = 200
MORE_BUTTON_DELAY = 0.5

DEFAULT_SOLVER_ID = 'apify/anti-captcha-recaptcha'


def build_search_url(search_term: str) -> str:
    """Maps search URL for a free text query."""
    return SEARCH_URL_TEMPLATE.format(query=quote_plus(search_term.strip()))


# ============================================================
# EXTRACTION RULES
# Ordered: the first rule producing a non-empty value wins
# ============================================================

# Results feed
FEED_SELECTOR = 'div[role="feed"]'
FEED_END_SELECTOR = 'span.HlvSq'
LISTING_ANCHOR_SELECTOR = 'a[href^="https://www.google.com/maps/place"]'
LISTING_TITLE_SELECTORS = ['.qBF1Pd', '.fontHeadlineSmall', 'span']

# Place page
DETAIL_RULES = {
    'title': [
        SelectorText('h1.DUwDvf'),
        SelectorText('h1'),
    ],
    'address': [
        SelectorText('button[data-item-id="address"] .Io6YTe'),
        SelectorText('[data-item-id="address"]'),
        SelectorAttr('[data-item-id="address"]', 'aria-label', r'Address:\s*(.+)'),
    ],
    'phone': [
        SelectorText('button[data-item-id^="phone"] .Io6YTe'),
        SelectorText('[data-item-id^="phone"]'),
        SelectorAttr('[data-item-id^="phone"]', 'aria-label', r'Phone:\s*(.+)'),
    ],
    'website': [
        SelectorAttr('a[data-item-id="authority"]', 'href'),
    ],
    'rating': [
        SelectorText('div.F7nice span[aria-hidden="true"]'),
        SelectorAttr('[role="img"][aria-label*="star"]', 'aria-label', r'(\d+[.,]?\d*)'),
    ],
    'review_count': [
        SelectorAttr('div.F7nice span[aria-label*="review"]', 'aria-label'),
        SelectorText('button[jsaction*="reviewChart"]'),
    ],
}

# Reviews panel
REVIEWS_TAB_SELECTORS = [
    'button[role="tab"][aria-label*="Reviews"]',
    'button[jsaction*="moreReviews"]',
]
MORE_BUTTON_SELECTORS = ['button.w8nwRe', 'button:has-text("More")']
REVIEWS_PANEL_SELECTOR = '[role="main"]'
REVIEW_CONTAINER_SELECTORS = ['div.jftiEf[data-review-id]', '[data-review-id]']
REVIEW_RESPONSE_SELECTOR = '[class*="CDe7pd"]'
# Owner replies reuse the review classes, review fields skip the reply block
OUTSIDE_RESPONSE = f':not({REVIEW_RESPONSE_SELECTOR} *)'
REVIEW_RULES = {
    'author': [SelectorText('[class*="d4r55"]' + OUTSIDE_RESPONSE)],
    'rating': [SelectorAttr('[role="img"][aria-label*="star"]', 'aria-label')],
    'text': [
        SelectorText('[class*="MyEned"]'),
        SelectorText('[class*="wiI7pd"]' + OUTSIDE_RESPONSE),
    ],
    'date': [SelectorText('[class*="rsqaWe"]' + OUTSIDE_RESPONSE)],
}
REVIEW_RESPONSE_RULES = {
    'owner': [SelectorText('[class*="d4r55"]')],
    'text': [SelectorText('[class*="wiI7pd"]')],
    'date': [SelectorText('[class*="rsqaWe"]')],
}

# Photos
PHOTO_HOST_MARKER = 'googleusercontent'
PHOTO_SELECTOR = 'img[src*="googleusercontent"], img[data-src*="googleusercontent"]'

# Contact pages: (platform, hostnames, link-text keyword)
SOCIAL_PLATFORMS = (
    ('facebook', ('facebook.com', 'fb.com'), 'facebook'),
    ('twitter', ('twitter.com', 'x.com'), 'twitter'),
    ('instagram', ('instagram.com',), 'instagram'),
    ('linkedin', ('linkedin.com',), 'linkedin'),
    ('youtube', ('youtube.com', 'youtu.be'), 'youtube'),
    ('tiktok', ('tiktok.com',), 'tiktok'),
    ('pinterest', ('pinterest.com',), 'pinterest'),
)

# CAPTCHA markers
CAPTCHA_WIDGET_SELECTORS = [
    '.g-recaptcha',
    'iframe[src*="recaptcha"]',
    'script[src*="recaptcha"]',
    '[data-sitekey]',
    'form#captcha-form',
]


# ============================================================
# ISO-3166-1 ALPHA-2 COUNTRY CODES
# ============================================================
ISO_COUNTRY_CODES = frozenset("""
AD AE AF AG AI AL AM AO AQ AR AS AT AU AW AX AZ
BA BB BD BE BF BG BH BI BJ BL BM BN BO BQ BR BS BT BV BW BY BZ
CA CC CD CF CG CH CI CK CL CM CN CO CR CU CV CW CX CY CZ
DE DJ DK DM DO DZ
EC EE EG EH ER ES ET
FI FJ FK FM FO FR
GA GB GD GE GF GG GH GI GL GM GN GP GQ GR GS GT GU GW GY
HK HM HN HR HT HU
ID IE IL IM IN IO IQ IR IS IT
JE JM JO JP
KE KG KH KI KM KN KP KR KW KY KZ
LA LB LC LI LK LR LS LT LU LV LY
MA MC MD ME MF MG MH MK ML MM MN MO MP MQ MR MS MT MU MV MW MX MY MZ
NA NC NE NF NG NI NL NO NP NR NU NZ
OM
PA PE PF PG PH PK PL PM PN PR PS PT PW PY
QA
RE RO RS RU RW
SA SB SC SD SE SG SH SI SJ SK SL SM SN SO SR SS ST SV SX SY SZ
TC TD TF TG TH TJ TK TL TM TN TO TR TT TV TW TZ
UA UG UM US UY UZ
VA VC VE VG VI VN VU
WF WS
YE YT
ZA ZM ZW
""".split())


# ============================================================
# PROXY / CAPTCHA CONFIGURATION
# ============================================================

@dataclass
class ProxyConfig:
    """
    Validated proxy settings.

    The country code is checked on construction, before any network
    activity, and normalized to upper case.
    """
    use_proxy: bool = True
    groups: List[str] = field(default_factory=lambda: ['RESIDENTIAL'])
    country_code: Optional[str] = None

    def __post_init__(self):
        code = (self.country_code or '').strip()
        if not code:
            self.country_code = None
            return
        if code.upper() not in ISO_COUNTRY_CODES:
            raise InvalidProxyCountryError(code)
        self.country_code = code.upper()


@dataclass
class CaptchaConfig:
    api_key: Optional[str] = None
    max_retries: int = 3
    solver_id: str = DEFAULT_SOLVER_ID

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


# ============================================================
# RUN INPUT
# ============================================================

class SearchInput(BaseModel):
    query: str = Field(min_length=1)
    location: Optional[str] = None


class ProxyConfigurationInput(BaseModel):
    use_apify_proxy: bool = Field(True, alias='useApifyProxy')
    apify_proxy_groups: List[str] = Field(default_factory=lambda: ['RESIDENTIAL'], alias='apifyProxyGroups')
    apify_proxy_country: Optional[str] = Field(None, alias='apifyProxyCountry')

    model_config = ConfigDict(populate_by_name=True)


class CaptchaConfigurationInput(BaseModel):
    anti_captcha_api_key: Optional[str] = Field(None, alias='antiCaptchaApiKey')
    max_retries: int = Field(3, ge=1, alias='maxRetries')
    anti_captcha_actor_id: str = Field(DEFAULT_SOLVER_ID, alias='antiCaptchaActorId')

    model_config = ConfigDict(populate_by_name=True)


class ScrapeInput(BaseModel):
    """Run input, same shape as the actor's INPUT.json."""

    searches: List[SearchInput] = Field(min_length=1)
    max_places: int = Field(100, ge=1, alias='maxPlaces')
    include_reviews: bool = Field(False, alias='includeReviews')
    max_reviews: int = Field(50, ge=0, alias='maxReviews')
    download_photos: bool = Field(False, alias='downloadPhotos')
    extract_contact_info: bool = Field(False, alias='extractContactInfo')
    proxy_configuration: ProxyConfigurationInput = Field(
        default_factory=ProxyConfigurationInput, alias='proxyConfiguration'
    )
    captcha_configuration: CaptchaConfigurationInput = Field(
        default_factory=CaptchaConfigurationInput, alias='captchaConfiguration'
    )
    max_concurrency: int = Field(5, ge=1, alias='maxConcurrency')
    navigation_timeout_secs: float = Field(120, gt=0, alias='navigationTimeoutSecs')
    request_handler_timeout_secs: float = Field(300, gt=0, alias='requestHandlerTimeoutSecs')

    model_config = ConfigDict(populate_by_name=True)

    def search_requests(self) -> List[SearchRequest]:
        return [SearchRequest(query=s.query.strip(), location=s.location) for s in self.searches]

    def proxy_config(self) -> ProxyConfig:
        """Raises InvalidProxyCountryError for an unknown country code."""
        proxy = self.proxy_configuration
        return ProxyConfig(
            use_proxy=proxy.use_apify_proxy,
            groups=list(proxy.apify_proxy_groups),
            country_code=proxy.apify_proxy_country,
        )

    def captcha_config(self) -> CaptchaConfig:
        captcha = self.captcha_configuration
        return CaptchaConfig(
            api_key=captcha.anti_captcha_api_key,
            max_retries=captcha.max_retries,
            solver_id=captcha.anti_captcha_actor_id,
        )


def load_input(data: Dict[str, Any]) -> ScrapeInput:
    """
    Validate raw run input.

    Args:
        data: Parsed INPUT.json

    Returns:
        ScrapeInput

    Raises:
        InvalidInputError: If the input does not validate
    """
    try:
        return ScrapeInput.model_validate(data or {})
    except ValidationError as e:
        raise InvalidInputError(f"Invalid run input: {e}") from e
