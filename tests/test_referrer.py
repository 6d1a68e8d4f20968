"""
Tests for referrer domain extraction and categorization.
"""

import pytest

from ingest_service.referrer import categorize, classify_referrer, extract_domain


class TestExtractDomain:
    @pytest.mark.parametrize("url, expected", [
        ("https://www.google.com/search?q=x", "google.com"),
        ("https://news.ycombinator.com/item?id=1", "news.ycombinator.com"),
        ("http://example.org:8080/path", "example.org"),
        ("https://WWW.Example.COM/", "example.com"),
    ])
    def test_extracts_hostname(self, url, expected):
        assert extract_domain(url) == expected

    @pytest.mark.parametrize("url", [None, "", "   ", "not a url", "/relative/path", "example.com"])
    def test_malformed_returns_none(self, url):
        assert extract_domain(url) is None


class TestCategorize:
    @pytest.mark.parametrize("domain, expected", [
        (None, "Direct"),
        ("", "Direct"),
        ("google.com", "Search"),
        ("duckduckgo.com", "Search"),
        ("m.facebook.com", "Social"),
        ("linkedin.com", "Social"),
        ("news.ycombinator.com", "External"),
    ])
    def test_categories(self, domain, expected):
        assert categorize(domain) == expected

    def test_classify_referrer_combines_both(self):
        assert classify_referrer("https://www.reddit.com/r/python") == ("reddit.com", "Social")
        assert classify_referrer(None) == (None, "Direct")
