"""
Proxy provisioning.

The run's proxy settings are validated up front (ProxyConfig rejects unknown
country codes on construction). Only then is a rotating egress handle
requested from the issuer; the handle is shared read-only by all pages.
"""

import logging
from typing import List, Optional, Protocol
from urllib.parse import quote

from crawlee.proxy_configuration import ProxyConfiguration

from .base import ConfigurationError
from .config import ProxyConfig
from .settings import Settings

logger = logging.getLogger(__name__)


class ProxyIssuer(Protocol):
    async def issue(self, groups: List[str], country_code: Optional[str] = None) -> ProxyConfiguration:
        """Return a rotating proxy handle for the given groups/country."""
        ...


class ApifyProxyIssuer:
    """
    Issues Apify Proxy handles.

    Apify Proxy selects groups and country through the proxy username,
    e.g. http://groups-RESIDENTIAL,country-US:<password>@proxy.apify.com:8000
    and rotates the egress IP on its side.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def build_proxy_url(self, groups: List[str], country_code: Optional[str] = None) -> str:
        password = self.settings.apify_proxy_password
        if not password:
            raise ConfigurationError("APIFY_PROXY_PASSWORD must be set to use Apify Proxy")

        parts = []
        if groups:
            parts.append(f"groups-{'+'.join(groups)}")
        if country_code:
            parts.append(f"country-{country_code}")
        username = ','.join(parts) or 'auto'

        return (
            f"http://{username}:{quote(password, safe='')}"
            f"@{self.settings.apify_proxy_hostname}:{self.settings.apify_proxy_port}"
        )

    async def issue(self, groups: List[str], country_code: Optional[str] = None) -> ProxyConfiguration:
        proxy_url = self.build_proxy_url(groups, country_code)
        logger.info(f"Using Apify Proxy groups={groups or ['auto']} country={country_code or 'any'}")
        return ProxyConfiguration(proxy_urls=[proxy_url])


class ProxyProvisioner:
    """Validates proxy configuration and requests the egress handle."""

    def __init__(self, config: ProxyConfig, issuer: ProxyIssuer):
        self.config = config
        self.issuer = issuer

    async def provision(self) -> Optional[ProxyConfiguration]:
        """
        Returns:
            Proxy handle, or None when proxying is disabled
        """
        if not self.config.use_proxy:
            logger.info("Proxy disabled - connecting directly")
            return None
        return await self.issuer.issue(list(self.config.groups), self.config.country_code)
