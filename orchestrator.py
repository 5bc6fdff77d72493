# Wires fetching, localization, conversion and writing into the two run flows

import logging
import threading
import time
from enum import Enum
from urllib.parse import urlparse

import constants
from converter import get_converter
from errors import (
    ConversionError,
    ConversionFailedError,
    FetchError,
    InvalidUrlError,
    OutputError,
    ScraperError,
    describe_failure,
)
from fetcher.http_client import fetch_document
from file_handler import default_output_dir, default_pdf_filename, write_bundle, write_pdf
from html_processor import extract_title, localize, parse_html
from models import PageBundle, PageMetadata

logger = logging.getLogger(__name__)


class RunState(Enum):
    FETCHING = "fetching"
    LOCALIZING = "localizing"
    CONVERTING = "converting"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


def exit_code_for(error):
    """Maps a fatal error to the process exit status."""
    if isinstance(error, InvalidUrlError):
        return constants.EXIT_INVALID_URL
    if isinstance(error, FetchError):
        return constants.EXIT_NETWORK
    if isinstance(error, ConversionError):
        return constants.EXIT_CONVERSION
    if isinstance(error, OutputError):
        return constants.EXIT_FILESYSTEM
    return constants.EXIT_UNEXPECTED


def validate_url(url):
    """Returns the stripped URL or raises InvalidUrlError unless it is absolute http(s) with a host."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError("URL must be a non-empty string")
    url = url.strip()
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError as e:
        raise InvalidUrlError(f"Malformed URL '{url}': {e}") from e
    if parsed.scheme.lower() not in constants.SUPPORTED_SCHEMES:
        raise InvalidUrlError(f"URL must use http or https: '{url}'")
    if not host:
        raise InvalidUrlError(f"URL has no host: '{url}'")
    return url


def _deadline(config, started):
    run_timeout = config.get('run_timeout_seconds')
    return None if run_timeout is None else started + run_timeout


class _Run:
    """State bookkeeping shared by both flows."""

    flow = "run"

    def __init__(self, config, fetch=fetch_document, converter=None):
        self.config = config
        self.fetch = fetch
        self.converter = converter
        self.state = None
        self.history = []
        self.error = None
        self.stop_event = threading.Event()

    def _transition(self, state):
        logger.debug(f"[{self.flow}] {self.state.value if self.state else 'start'} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _fail(self, error, message=None):
        failed_in = self.state.value if self.state else "start"
        self.error = error
        self._transition(RunState.FAILED)
        logger.error(message or f"{self.flow} failed while {failed_in}: {describe_failure(error)}")
        return exit_code_for(error)


class ScrapeRun(_Run):
    """
    Scrape-bundle flow:

        FETCHING -> LOCALIZING -> CONVERTING -> WRITING -> DONE

    Any fatal error moves the run to FAILED. Image download failures are
    recorded in the report and never fail the run.
    """

    flow = "scrape"

    def __init__(self, request, config, fetch=fetch_document, converter=None):
        super().__init__(config, fetch=fetch, converter=converter)
        self.request = request
        self.output_dir = None
        self.bundle = None
        self.write_report = None

    def run(self):
        started = time.monotonic()
        try:
            url = validate_url(self.request.url)
            self.output_dir = self.request.output_dir or default_output_dir(url)

            self._transition(RunState.FETCHING)
            logger.info(f"Fetching {url}")
            document = self.fetch(url, config=self.config)
            if document.content_type and 'html' not in document.content_type.lower():
                logger.warning(f"{url} was served as '{document.content_type}', treating it as HTML anyway")

            self._transition(RunState.LOCALIZING)
            # The page is always remote, so `images/...` refs are fetched like any other
            localized = localize(
                document, self.config, fetch=self.fetch,
                stop_event=self.stop_event, deadline=_deadline(self.config, started),
            )

            self._transition(RunState.CONVERTING)
            markdown = self._convert_markdown(localized.html)

            metadata = PageMetadata.from_results(document, localized.title, localized.report, markdown)
            self.bundle = PageBundle(
                html_localized=localized.html,
                markdown=markdown,
                metadata=metadata,
                assets=localized.report,
            )

            self._transition(RunState.WRITING)
            self.write_report = write_bundle(self.output_dir, self.bundle)
            self._transition(RunState.DONE)
        except ScraperError as e:
            return self._fail(e)
        except KeyboardInterrupt as e:
            self._fail(e, message="Interrupted before the bundle could be written.")
            return constants.EXIT_INTERRUPTED

        self._log_summary()
        return constants.EXIT_INTERRUPTED if localized.interrupted else constants.EXIT_OK

    def _convert_markdown(self, html):
        converter = self.converter or get_converter(self.config, purpose="markdown")
        try:
            return converter.to_markdown(html)
        except ConversionFailedError as e:
            # Unavailable engines are fatal; a failed conversion only loses page.md
            logger.warning(f"Markdown conversion failed, {constants.PAGE_MARKDOWN_FILENAME} will be skipped: {e}")
            return None

    def _log_summary(self):
        metadata = self.bundle.metadata
        saved = metadata.asset_count - metadata.failed_asset_count
        logger.info(
            f"Scrape finished: {self.output_dir} (title: {metadata.title!r}, "
            f"images saved {saved}/{metadata.asset_count})"
        )
        if metadata.failed_asset_count:
            logger.warning(f"{metadata.failed_asset_count} image(s) failed and kept their remote URL:")
            for failed in metadata.failed_assets:
                logger.warning(f"  {failed['url']} ({failed['reason']})")


class PdfRun(_Run):
    """
    Webpage-to-PDF flow:

        FETCHING -> CONVERTING -> WRITING -> DONE
    """

    flow = "webpage2pdf"

    def __init__(self, url, config, output_path=None, fetch=fetch_document, converter=None):
        super().__init__(config, fetch=fetch, converter=converter)
        self.url = url
        self.output_path = output_path

    def run(self):
        try:
            url = validate_url(self.url)

            self._transition(RunState.FETCHING)
            logger.info(f"Fetching {url}")
            document = self.fetch(url, config=self.config)

            self._transition(RunState.CONVERTING)
            soup = parse_html(document.content, document.charset)
            if not soup.find('base'):
                # Lets the renderer resolve relative image and stylesheet URLs
                head = soup.head or soup
                head.insert(0, soup.new_tag('base', href=document.url))
            converter = self.converter or get_converter(self.config, purpose="pdf")
            pdf_bytes = converter.to_pdf(soup.encode('utf-8'))

            self._transition(RunState.WRITING)
            self.output_path = self.output_path or default_pdf_filename(document.url, extract_title(soup))
            write_pdf(self.output_path, pdf_bytes)
            self._transition(RunState.DONE)
        except ScraperError as e:
            return self._fail(e)
        except KeyboardInterrupt as e:
            self._fail(e, message="Interrupted before the PDF could be written.")
            return constants.EXIT_INTERRUPTED

        logger.info(f"PDF written to {self.output_path} ({len(pdf_bytes)} bytes)")
        return constants.EXIT_OK


def run_scrape(request, config, fetch=fetch_document, converter=None):
    return ScrapeRun(request, config, fetch=fetch, converter=converter).run()


def run_webpage2pdf(url, config, output_path=None, fetch=fetch_document, converter=None):
    return PdfRun(url, config, output_path=output_path, fetch=fetch, converter=converter).run()
