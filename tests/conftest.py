"""Shared fixtures for auction-watcher tests."""

import logging

import pytest

from auction_watcher.config import load_config
from auction_watcher.models.listing import ListingRecord
from auction_watcher.services.email_sender import BaseNotifier, NotifyError
from auction_watcher.services.fetcher import BaseFetcher, FetchError
from auction_watcher.services.snapshot_store import SnapshotStore, StoreError

BASE_URL = "https://www.mesto-bohumin.cz"

LISTING_PAGE = """
<html>
<head>
    <title>Licitace bytů</title>
    <script>var updated = "01.01.2025";</script>
</head>
<body>
<div class="content">
    <p>Stránka aktualizována 03.02.2025</p>
    <h2>Byt 3+1, Okružní 1185</h2>
    <p>Podrobnosti k bytu <a href="/cz/licitace/okruzni-1185">zde</a></p>
    <p>Licitace se koná 17.02.2025 v 10:00 hodin</p>
    <h2>Byt 2+1, Nerudova 380</h2>
    <p><a href="https://www.mesto-bohumin.cz/cz/licitace/nerudova-380">Detail bytu</a></p>
    <p>Licitace se koná 24.02.2025 v 9:00 hodin</p>
</div>
</body>
</html>
"""


@pytest.fixture
def listing_page():
    """Auction page with a 3+1 and a 2+1 listing."""
    return LISTING_PAGE


@pytest.fixture
def make_record():
    """Factory for creating test records."""
    def _make(size: str = "3+1", date: str = "17.02.2025", description: str = None, link: str = None) -> ListingRecord:
        return ListingRecord(
            size=size,
            description=description or f"Licitace bytu {size} se koná {date}",
            date=date,
            link=link or f"{BASE_URL}/cz/licitace/{size.replace('+', '-')}-{date}",
        )
    return _make


@pytest.fixture
def config():
    """Default configuration, no file."""
    return load_config(None)


class FakeFetcher(BaseFetcher):
    def __init__(self, html: str = "", error: bool = False):
        self.html = html
        self.error = error
        self.urls = []

    def fetch(self, url: str) -> str:
        self.urls.append(url)
        if self.error:
            raise FetchError(f"Failed to fetch {url}: 503 Server Error")
        return self.html


class MemoryStore(SnapshotStore):
    def __init__(self, previous=None, load_error: bool = False, save_error: bool = False):
        self.previous = previous
        self.load_error = load_error
        self.save_error = save_error
        self.saved = None

    def load(self):
        if self.load_error:
            raise StoreError("storage unreachable")
        return self.previous

    def save(self, records):
        if self.save_error:
            raise StoreError("storage not writable")
        self.saved = list(records)
        self.previous = self.saved


class FakeNotifier(BaseNotifier):
    def __init__(self, error: bool = False):
        self.error = error
        self.calls = []

    def notify(self, entries):
        self.calls.append(list(entries))
        if self.error:
            raise NotifyError("SMTP connection refused")


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def memory_store():
    return MemoryStore


@pytest.fixture
def fake_notifier():
    return FakeNotifier


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo handlers and level changes made by setup_logging()."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
