# Module for fetching pages and assets over HTTP

import logging
from datetime import datetime, timezone
from urllib.parse import urlparse

import requests

import constants
from errors import UnsupportedSchemeError
from models import FetchedDocument
from .decorators import retry_request

logger = logging.getLogger(__name__)


def _build_headers(config):
    return {
        'User-Agent': config.get('user_agent', constants.DEFAULT_USER_AGENT),
        'Accept': '*/*',
    }


def fetch_document(url, config):
    """
    Fetches a URL and returns a FetchedDocument with the raw body bytes.

    Raises UnsupportedSchemeError for non-http(s) URLs without touching the
    network; otherwise see `retry_request` for the error translation.
    """
    scheme = urlparse(url).scheme.lower()
    if scheme not in constants.SUPPORTED_SCHEMES:
        raise UnsupportedSchemeError(f"Unsupported URL scheme '{scheme}' for {url}", url=url)
    return _fetch_with_retries(url, config=config)


@retry_request()
def _fetch_with_retries(url, config):
    request_timeout = config.get('request_timeout_seconds', constants.DEFAULT_TIMEOUT)
    logger.debug(f"Attempting to fetch: {url}")

    response = requests.get(url, headers=_build_headers(config), timeout=request_timeout)
    try:
        # Non-2xx raises HTTPError for the decorator to classify
        response.raise_for_status()
        if not 200 <= response.status_code < 300:
            raise requests.exceptions.HTTPError(f"Unexpected status {response.status_code}", response=response)
        content = response.content
        content_type = response.headers.get('Content-Type', '')
        logger.debug(f"Fetched {len(content)} bytes ({content_type or 'no content-type'}) from {url}")
        return FetchedDocument(
            url=response.url or url,
            content=content,
            content_type=content_type,
            fetched_at=datetime.now(timezone.utc),
            requested_url=url,
        )
    finally:
        # Ensure the response is always closed
        response.close()
