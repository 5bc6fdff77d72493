# Exception hierarchy shared by the fetch, conversion and output stages


class ScraperError(Exception):
    """Base class for every error raised by the scraper pipeline."""


class InvalidUrlError(ScraperError):
    """The requested URL is not an absolute http(s) URL."""


# --- Fetch errors (recovered for assets, fatal for the root page) ---
class FetchError(ScraperError):
    def __init__(self, message, url=None):
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    """DNS resolution, connection or other transport failure."""


class HttpStatusError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code, url=None):
        super().__init__(f"HTTP {status_code} for {url}", url=url)
        self.status_code = status_code


class RequestTimeoutError(FetchError):
    """Connect or read timeout."""


class UnsupportedSchemeError(FetchError):
    """The URL uses a scheme other than http or https."""


# --- Conversion errors ---
class ConversionError(ScraperError):
    pass


class ConversionUnavailableError(ConversionError):
    """The conversion engine could not be located or started."""


class ConversionFailedError(ConversionError):
    """The conversion engine ran and reported a failure."""

    def __init__(self, message, diagnostics=""):
        super().__init__(message)
        self.diagnostics = diagnostics

    def __str__(self):
        base = super().__str__()
        if self.diagnostics:
            return f"{base}: {self.diagnostics.strip()}"
        return base


# --- Output errors ---
class OutputError(ScraperError):
    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class BundleExistsError(OutputError):
    """A non-directory file occupies the output directory path."""


class BundleWriteError(OutputError):
    """A filesystem write failed while emitting the bundle."""


def describe_failure(error):
    """Short reason string recorded in reports and info.json."""
    return f"{type(error).__name__}: {error}"
