"""Tests for the HTTP fetcher."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from auction_watcher.services.fetcher import FetchError, HttpFetcher

URL = "https://www.mesto-bohumin.cz/cz/radnice/byty-nebyty-nemovitosti/licitace-bytu"


def _response(text="<html></html>", encoding="utf-8", status_error=None):
    response = MagicMock()
    response.text = text
    response.encoding = encoding
    response.apparent_encoding = "utf-8"
    if status_error:
        response.raise_for_status.side_effect = status_error
    return response


class TestHttpFetcher:
    """Tests for HttpFetcher."""

    def test_returns_text(self):
        with patch("auction_watcher.services.fetcher.requests.get") as get:
            get.return_value = _response("<p>Byt 3+1</p>")
            assert HttpFetcher(timeout=5).fetch(URL) == "<p>Byt 3+1</p>"

        _, kwargs = get.call_args
        assert kwargs["timeout"] == 5
        assert "User-Agent" in kwargs["headers"]

    def test_custom_headers_merged(self):
        fetcher = HttpFetcher(headers={"Accept-Language": "en"})
        assert fetcher.headers["Accept-Language"] == "en"
        assert "User-Agent" in fetcher.headers

    def test_http_error_raises_fetch_error(self):
        error = requests.HTTPError("503 Server Error")
        with patch("auction_watcher.services.fetcher.requests.get") as get:
            get.return_value = _response(status_error=error)
            with pytest.raises(FetchError, match="503"):
                HttpFetcher().fetch(URL)

    def test_network_error_raises_fetch_error(self):
        with patch("auction_watcher.services.fetcher.requests.get") as get:
            get.side_effect = requests.ConnectionError("Name or service not known")
            with pytest.raises(FetchError):
                HttpFetcher().fetch(URL)

    def test_fallback_encoding_detected(self):
        response = _response(encoding="ISO-8859-1")
        with patch("auction_watcher.services.fetcher.requests.get", return_value=response):
            HttpFetcher().fetch(URL)
        assert response.encoding == "utf-8"
