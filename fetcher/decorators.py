# Decorators for HTTP fetch functions
import time
import logging
import requests
import functools

from errors import HttpStatusError, NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)


def _is_retryable_status(status_code):
    return status_code is not None and status_code >= 500


def _url_for_log(args, kwargs):
    url_to_log = kwargs.get('url') # Prioritize 'url' kwarg
    if not url_to_log:
        # Find first string arg starting with http
        for arg in args:
            if isinstance(arg, str) and arg.startswith('http'):
                url_to_log = arg
                break
    return url_to_log


def retry_request(max_retries_key="max_retries", delay_key="request_delay_seconds"):
    """
    Decorator to add retry logic with exponential backoff to functions making HTTP requests.
    Assumes the wrapped function:
    - Accepts a 'config' dictionary keyword argument (`config=...`) containing keys
      specified by `max_retries_key` and `delay_key`.
    - Returns the successful result or raises a `requests.exceptions.RequestException`
      (HTTPError with the response attached for non-2xx statuses).

    Timeouts, connection errors and 5xx responses are retried up to max_retries times,
    waiting `delay * 2 ** (attempt - 1)` seconds before each retry. Any other failure,
    including every 4xx status, is raised immediately. Once retries are exhausted, or for
    non-retryable failures, the requests exception is translated into HttpStatusError,
    RequestTimeoutError or NetworkError.

    Args:
        max_retries_key (str): Key in the config dict for max retries.
        delay_key (str): Key in the config dict for base delay in seconds.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            config = kwargs.get('config') or {}
            max_retries = config.get(max_retries_key, 3)
            delay = config.get(delay_key, 1)
            url = _url_for_log(args, kwargs)
            log_url_snippet = f"for {url[:80]}" if url else f"in {func.__name__}"

            retries = 0
            while True:
                if retries > 0:
                    wait_time = (2 ** (retries - 1)) * delay
                    logger.warning(f"Retrying request {log_url_snippet} ({retries}/{max_retries}) after delay of {wait_time:.2f} seconds...")
                    time.sleep(wait_time)

                try:
                    return func(*args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    status_code = e.response.status_code if e.response is not None else None
                    if _is_retryable_status(status_code) and retries < max_retries:
                        logger.warning(f"Retryable HTTP error {status_code} {log_url_snippet}.")
                        retries += 1
                        continue
                    if status_code is None:
                        raise NetworkError(f"HTTP error without a response {log_url_snippet}: {e}", url=url) from e
                    raise HttpStatusError(status_code, url=url) from e

                except requests.exceptions.Timeout as e:
                    if retries < max_retries:
                        logger.warning(f"Timeout occurred {log_url_snippet}.")
                        retries += 1
                        continue
                    raise RequestTimeoutError(f"Timed out {log_url_snippet} after {retries + 1} attempt(s): {e}", url=url) from e

                except requests.exceptions.ConnectionError as e:
                    if retries < max_retries:
                        logger.warning(f"ConnectionError occurred {log_url_snippet}.")
                        retries += 1
                        continue
                    raise NetworkError(f"Could not connect {log_url_snippet} after {retries + 1} attempt(s): {e}", url=url) from e

                except requests.exceptions.RequestException as e:
                    # Invalid URLs, too many redirects, etc. are never retried
                    raise NetworkError(f"Request failed {log_url_snippet}: {e}", url=url) from e

        return wrapper
    return decorator
