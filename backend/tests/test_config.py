"""
Tests for settings and run input configuration.
"""

import pytest


class TestSettings:
    """Test the Settings configuration class."""

    def test_settings_defaults(self):
        """Test that settings have sensible defaults."""
        from maps_scraper.settings import Settings

        settings = Settings()
        assert settings.apify_proxy_hostname == "proxy.apify.com"
        assert settings.apify_proxy_port == 8000
        assert settings.max_concurrency_ceiling == 20
        assert settings.captcha_retry_base_delay == 2.0
        assert settings.log_level == "INFO"

    def test_settings_log_paths(self):
        """Test that log paths are valid."""
        from maps_scraper.settings import get_settings

        settings = get_settings()
        assert settings.log_dir is not None
        assert settings.log_file.name == "scraper.log"

    def test_no_module_level_instance(self):
        """Test that settings are only built on request."""
        from maps_scraper import settings as settings_module

        assert not hasattr(settings_module, 'settings')
        assert settings_module.get_settings() is not settings_module.get_settings()

    def test_unknown_environment_variables_ignored(self, monkeypatch):
        from maps_scraper.settings import Settings

        monkeypatch.setenv("SOME_UNRELATED_VARIABLE", "x")

        assert Settings.model_config['extra'] == 'ignore'
        assert Settings().headless is True

    def test_settings_from_environment(self, monkeypatch):
        """Test that environment variables override defaults."""
        from maps_scraper.settings import get_settings

        monkeypatch.setenv("APIFY_PROXY_PASSWORD", "secret")
        monkeypatch.setenv("HEADLESS", "false")
        settings = get_settings()
        assert settings.apify_proxy_password == "secret"
        assert settings.headless is False


class TestScrapeInput:
    """Test run input validation."""

    def test_input_defaults(self):
        """Test that omitted fields take the documented defaults."""
        from maps_scraper.config import load_input

        scrape_input = load_input({'searches': [{'query': 'pizza'}]})
        assert scrape_input.max_places == 100
        assert scrape_input.include_reviews is False
        assert scrape_input.max_reviews == 50
        assert scrape_input.download_photos is False
        assert scrape_input.extract_contact_info is False
        assert scrape_input.max_concurrency == 5
        assert scrape_input.navigation_timeout_secs == 120
        assert scrape_input.request_handler_timeout_secs == 300
        assert scrape_input.proxy_configuration.use_apify_proxy is True
        assert scrape_input.proxy_configuration.apify_proxy_groups == ['RESIDENTIAL']
        assert scrape_input.captcha_configuration.max_retries == 3

    def test_camel_case_aliases(self):
        """Test that the actor input shape is accepted."""
        from maps_scraper.config import load_input

        scrape_input = load_input({
            'searches': [{'query': 'coffee', 'location': 'Berlin'}],
            'maxPlaces': 7,
            'includeReviews': True,
            'maxReviews': 12,
            'proxyConfiguration': {'useApifyProxy': False},
            'captchaConfiguration': {'antiCaptchaApiKey': 'key', 'maxRetries': 5},
        })
        assert scrape_input.max_places == 7
        assert scrape_input.include_reviews is True
        assert scrape_input.max_reviews == 12
        assert scrape_input.proxy_config().use_proxy is False
        captcha = scrape_input.captcha_config()
        assert captcha.api_key == 'key'
        assert captcha.max_retries == 5
        assert captcha.enabled is True

    def test_field_names_accepted(self):
        """Test that snake_case field names populate the same fields as the aliases."""
        from maps_scraper.config import ScrapeInput

        scrape_input = ScrapeInput(
            searches=[{'query': 'tea'}],
            max_places=3,
            proxy_configuration={'use_apify_proxy': False},
            captcha_configuration={'anti_captcha_api_key': 'key'},
        )
        assert scrape_input.max_places == 3
        assert scrape_input.proxy_config().use_proxy is False
        assert scrape_input.captcha_config().enabled is True

    def test_search_requests(self):
        """Test that searches become SearchRequests with a combined term."""
        from maps_scraper.config import load_input

        scrape_input = load_input({'searches': [{'query': ' coffee ', 'location': 'Berlin'}, {'query': 'tea'}]})
        requests = scrape_input.search_requests()
        assert [r.search_term for r in requests] == ['coffee Berlin', 'tea']

    @pytest.mark.parametrize("data", [
        {},
        {'searches': []},
        {'searches': [{'query': ''}]},
        {'searches': [{'query': 'pizza'}], 'maxPlaces': 0},
    ])
    def test_invalid_input(self, data):
        """Test that invalid input raises InvalidInputError."""
        from maps_scraper.base import InvalidInputError, ConfigurationError
        from maps_scraper.config import load_input

        with pytest.raises(InvalidInputError) as exc_info:
            load_input(data)
        assert isinstance(exc_info.value, ConfigurationError)

    def test_invalid_country_in_input(self):
        """Test that a bad proxy country fails when the proxy config is built."""
        from maps_scraper.base import InvalidProxyCountryError
        from maps_scraper.config import load_input

        scrape_input = load_input({
            'searches': [{'query': 'pizza'}],
            'proxyConfiguration': {'apifyProxyCountry': 'ZZ'},
        })
        with pytest.raises(InvalidProxyCountryError):
            scrape_input.proxy_config()


class TestSearchUrl:
    def test_build_search_url(self):
        from maps_scraper.config import build_search_url

        url = build_search_url('pizza New York')
        assert url == 'https://www.google.com/maps/search/pizza+New+York?hl=en'
