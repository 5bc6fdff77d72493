import pytest
import sys
import os
import logging

# Ensure the project root is in the Python path for imports in tests
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from models import FetchedDocument # noqa: E402


@pytest.fixture(autouse=True)
def configure_logging(caplog):
    """Ensure logging is configured to capture DEBUG level messages for all tests."""
    caplog.set_level(logging.DEBUG, logger="root")


@pytest.fixture
def test_config():
    """Configuration with fast retries for tests."""
    import config_loader
    config = config_loader.load_config()
    config['request_delay_seconds'] = 0
    config['max_retries'] = 2
    return config


def make_document(url, body, content_type="text/html; charset=utf-8"):
    if isinstance(body, str):
        body = body.encode('utf-8')
    return FetchedDocument(url=url, content=body, content_type=content_type, requested_url=url)


class FakeWeb:
    """
    Stand-in for fetcher.http_client.fetch_document.

    `pages` maps URL -> (body, content_type) or an exception instance to raise.
    Unknown URLs raise HttpStatusError(404).
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def __call__(self, url, config=None):
        from errors import HttpStatusError
        self.calls.append(url)
        entry = self.pages.get(url)
        if entry is None:
            raise HttpStatusError(404, url=url)
        if isinstance(entry, Exception):
            raise entry
        body, content_type = entry
        return make_document(url, body, content_type)


@pytest.fixture
def fake_web():
    return FakeWeb()


def interrupt_after_first(futures, timeout=None):
    """
    Stand-in for concurrent.futures.as_completed that hands back the first
    submitted download and then raises KeyboardInterrupt, like Ctrl-C while
    the main thread waits on the pool.
    """
    first = next(iter(futures))
    first.result()
    yield first
    raise KeyboardInterrupt
