"""
Contact extraction from a place's own website.

Runs on a secondary page opened on the website URL. Emails and phone
numbers come from the body text, social profiles from outbound links.
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ..base import ContactInfo
from ..config import SOCIAL_PLATFORMS
from ..utils.extractors import extract_emails, extract_phone_numbers, parse_html
from ..utils.normalizers import absolute_url, ordered_unique

logger = logging.getLogger(__name__)


def classify_social_link(href: str, link_text: str) -> Optional[str]:
    """
    Platform for a link, matched on hostname first, then on link text keyword.

    Examples:
        ("https://www.facebook.com/joes", "") -> "facebook"
        ("https://x.com/joes", "") -> "twitter"
        ("/follow", "Follow us on Instagram") -> "instagram"
    """
    host = (urlparse(href).hostname or '').lower()
    for platform, hosts, _ in SOCIAL_PLATFORMS:
        if any(host == h or host.endswith('.' + h) for h in hosts):
            return platform
    text = (link_text or '').lower()
    for platform, _, keyword in SOCIAL_PLATFORMS:
        if keyword in text:
            return platform
    return None


def extract_social_links(soup: BeautifulSoup, base_url: str) -> Dict[str, str]:
    """One URL per platform; the first link found for a platform is kept."""
    social: Dict[str, str] = {}
    for anchor in soup.select('a[href]'):
        href = anchor.get('href', '').strip()
        if not href or href.startswith(('mailto:', 'tel:', 'javascript:', '#')):
            continue
        platform = classify_social_link(href, anchor.get_text(' ', strip=True))
        if platform and platform not in social:
            social[platform] = absolute_url(href, base_url)
    return social


def extract_mailto_emails(soup: BeautifulSoup) -> List[str]:
    emails = []
    for anchor in soup.select('a[href^="mailto:"]'):
        address = anchor['href'][len('mailto:'):].split('?')[0].strip()
        emails.extend(extract_emails(address))
    return emails


def extract_contact_info(html: str, base_url: str = '') -> ContactInfo:
    """Contact details found in one page of HTML."""
    soup = parse_html(html)
    body = soup.body or soup
    text = body.get_text(' ')
    return ContactInfo(
        emails=ordered_unique(extract_emails(text) + extract_mailto_emails(soup)),
        social_media=extract_social_links(soup, base_url),
        phone_numbers=extract_phone_numbers(text),
    )


class ContactCollector:
    async def collect(self, page) -> ContactInfo:
        info = extract_contact_info(await page.content(), page.url or '')
        logger.info(
            f"Contact info: {len(info.emails)} emails, {len(info.social_media)} social, "
            f"{len(info.phone_numbers)} phones"
        )
        return info
