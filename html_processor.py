# Module for HTML parsing, image discovery, download and link rewriting

import logging
import os
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote, urlparse, unquote

from bs4 import BeautifulSoup

import constants
from asset_resolver import AssetResolver
from errors import FetchError, describe_failure
from fetcher.http_client import fetch_document
from models import AssetResult

# Set up a specific logger for this module
logger = logging.getLogger(__name__)

CSS_URL_RE = re.compile(r"url\(\s*(['\"]?)(.*?)\1\s*\)", re.I)
CANCELLED_REASON = "Cancelled: run stopped before the download started"

# (tag, attribute, kind) pairs that can carry image URLs
IMAGE_ATTRIBUTES = (
    ('img', 'src', 'url'),
    ('img', 'data-src', 'url'),
    ('img', 'srcset', 'srcset'),
    ('img', 'data-srcset', 'srcset'),
    ('source', 'srcset', 'srcset'),
    ('source', 'data-srcset', 'srcset'),
    ('input', 'src', 'url'),
)


@dataclass
class LocalizationResult:
    html: bytes
    report: List[AssetResult] = field(default_factory=list)
    title: Optional[str] = None
    interrupted: bool = False


# --- Parsing Helpers ---
def parse_html(content, encoding=None):
    return BeautifulSoup(content, 'html.parser', from_encoding=encoding if isinstance(content, bytes) else None)


def extract_title(soup):
    """Text of the first <title>, whitespace-collapsed; None when absent or empty."""
    title_tag = soup.find('title')
    if not title_tag:
        return None
    title = ' '.join(title_tag.get_text().split())
    return title or None


def parse_srcset(srcset):
    """
    Splits a srcset into (url, descriptor) candidates.

    A candidate URL runs up to the next whitespace, so commas inside it
    (common in CDN transform paths) are kept. A candidate ends at a comma
    trailing the URL or at the first comma after its descriptor.
    """
    candidates = []
    position, length = 0, len(srcset)
    while position < length:
        while position < length and (srcset[position].isspace() or srcset[position] == ','):
            position += 1
        if position >= length:
            break

        start = position
        while position < length and not srcset[position].isspace():
            position += 1
        url = srcset[start:position]
        if url.endswith(','):
            candidates.append((url.rstrip(','), ''))
            continue

        # Descriptor: up to the next comma outside parentheses
        start = position
        depth = 0
        while position < length:
            char = srcset[position]
            if char == '(':
                depth += 1
            elif char == ')' and depth:
                depth -= 1
            elif char == ',' and not depth:
                break
            position += 1
        candidates.append((url, ' '.join(srcset[start:position].split())))
        position += 1
    return candidates


def _image_slots(soup):
    """Yields (tag, attribute, kind) for every image-bearing attribute in document order."""
    for tag in soup.find_all(True):
        for tag_name, attr, kind in IMAGE_ATTRIBUTES:
            if tag.name != tag_name or not tag.get(attr):
                continue
            if tag_name == 'input' and (tag.get('type') or '').lower() != 'image':
                continue
            yield tag, attr, kind
        if tag.get('style') and 'url(' in tag['style'].lower():
            yield tag, 'style', 'css'


def _refs_in_slot(tag, attr, kind):
    value = tag[attr]
    if kind == 'url':
        return [value]
    if kind == 'srcset':
        return [url for url, _descriptor in parse_srcset(value)]
    return [match.group(2) for match in CSS_URL_RE.finditer(value)]


def find_image_refs(soup):
    """Raw image references in document order (duplicates kept)."""
    refs = []
    for tag, attr, kind in _image_slots(soup):
        refs.extend(_refs_in_slot(tag, attr, kind))
    return refs


def _local_image_path(raw_ref, local_root):
    """
    Returns the relative path when raw_ref already points at a file in
    local_root/images, otherwise None.
    """
    if not local_root or not raw_ref:
        return None
    ref = raw_ref.strip()
    parsed = urlparse(ref)
    if parsed.scheme or parsed.netloc or ref.startswith('/'):
        return None
    rel_path = unquote(parsed.path)
    if rel_path.startswith('./'):
        rel_path = rel_path[2:]
    if not rel_path.startswith(constants.IMAGES_DIR_NAME + '/'):
        return None
    return rel_path if os.path.isfile(os.path.join(local_root, *rel_path.split('/'))) else None


# --- Downloading ---
def _download_one(reference, config, fetch, stop_event):
    if stop_event.is_set():
        return AssetResult.failure(reference, CANCELLED_REASON)
    try:
        document = fetch(reference.resolved_url, config=config)
    except FetchError as e:
        logger.warning(f"Failed to fetch asset {reference.resolved_url}: {describe_failure(e)}")
        return AssetResult.failure(reference, e)
    logger.debug(f"Downloaded asset {reference.resolved_url} ({len(document.content)} bytes)")
    return AssetResult.success(reference, document.content, document.content_type)


def _collect(future, reference):
    try:
        return future.result()
    except Exception as e:
        # A bug in one download must not take the others down with it
        logger.error(f"Unexpected error downloading {reference.resolved_url}: {e}", exc_info=True)
        return AssetResult.failure(reference, e)


def download_assets(references, config, fetch=fetch_document, stop_event=None, deadline=None):
    """
    Downloads references concurrently (at most max_concurrent_downloads at once).

    Returns one AssetResult per reference in the same order as `references`,
    whatever order the downloads finish in. Once `deadline` (time.monotonic)
    passes or `stop_event` is set, downloads that have not started are reported
    as cancelled while in-flight ones are allowed to finish.
    Returns (results, interrupted).
    """
    stop_event = stop_event or threading.Event()
    results = [None] * len(references)
    interrupted = False
    if not references:
        return results, interrupted

    max_workers = min(config.get('max_concurrent_downloads', constants.DEFAULT_MAX_CONCURRENT_DOWNLOADS), len(references))
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="asset") as executor:
        futures = {
            executor.submit(_download_one, reference, config, fetch, stop_event): index
            for index, reference in enumerate(references)
        }
        timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            for future in as_completed(futures, timeout=timeout):
                index = futures[future]
                results[index] = _collect(future, references[index])
        except FuturesTimeoutError:
            logger.warning("Run timeout reached; no further asset downloads will be started.")
            stop_event.set()
        except KeyboardInterrupt:
            logger.warning("Interrupted; waiting for in-flight asset downloads to finish.")
            stop_event.set()
            interrupted = True

        # Cancel everything still queued before waiting on the in-flight downloads
        for future, index in futures.items():
            if results[index] is None and future.cancel():
                results[index] = AssetResult.failure(references[index], CANCELLED_REASON)
        for future, index in futures.items():
            if results[index] is None:
                results[index] = _collect(future, references[index])

    return results, interrupted


# --- Rewriting ---
def _rewrite_links(soup, page_url, resolver, replacements):
    """Rewrites every image reference whose resolved URL has a replacement. Returns the count."""
    rewrite_count = 0

    def replace(raw_ref):
        nonlocal rewrite_count
        target = replacements.get(resolver.absolute_url(page_url, raw_ref))
        if target is None or target == raw_ref:
            return raw_ref
        rewrite_count += 1
        return target

    for tag, attr, kind in list(_image_slots(soup)):
        value = tag[attr]
        if kind == 'url':
            new_value = replace(value)
        elif kind == 'srcset':
            candidates = parse_srcset(value)
            new_urls = [replace(url) for url, _descriptor in candidates]
            new_value = value
            # Untouched srcsets keep their original spacing
            if any(new_url != url for new_url, (url, _descriptor) in zip(new_urls, candidates)):
                new_value = ', '.join(
                    f"{new_url} {descriptor}".strip()
                    for new_url, (_url, descriptor) in zip(new_urls, candidates)
                )
        else:
            new_value = CSS_URL_RE.sub(
                lambda m: f"url({m.group(1)}{replace(m.group(2))}{m.group(1)})", value
            )
        if new_value != value:
            tag[attr] = new_value
    return rewrite_count


# --- Main Localization ---
def localize(document, config, fetch=fetch_document, local_root=None, stop_event=None, deadline=None):
    """
    Downloads every image referenced by `document` and rewrites the HTML to
    point at `images/<local_name>`. Failed images are rewritten to their
    absolute URL instead. References that already point at files inside
    `local_root/images` are left alone.

    Returns a LocalizationResult with the serialized HTML (UTF-8), the
    per-asset report in document order and the page title.
    """
    soup = parse_html(document.content, document.charset)
    title = extract_title(soup)
    resolver = AssetResolver()

    raw_refs = []
    for raw_ref in find_image_refs(soup):
        local_path = _local_image_path(raw_ref, local_root)
        if local_path:
            resolver.reserve(local_path.split('/', 1)[1])
            continue
        raw_refs.append(raw_ref)

    references = resolver.resolve(document.url, raw_refs)
    logger.info(f"Found {len(references)} distinct image(s) on {document.url}")

    results, interrupted = download_assets(references, config, fetch=fetch, stop_event=stop_event, deadline=deadline)

    # Sequential and in document order, so finalized names are deterministic
    replacements = {}
    for result in results:
        reference = result.reference
        if result.ok:
            resolver.finalize_name(reference, result.content_type)
            replacements[reference.resolved_url] = f"{constants.IMAGES_DIR_NAME}/{quote(reference.local_name)}"
        else:
            replacements[reference.resolved_url] = reference.resolved_url

    rewrite_count = _rewrite_links(soup, document.url, resolver, replacements)
    logger.debug(f"Rewrote {rewrite_count} image reference(s) for {document.url}")

    failed = sum(1 for r in results if not r.ok)
    if failed:
        logger.warning(f"{failed} of {len(results)} image(s) could not be downloaded for {document.url}")

    return LocalizationResult(
        html=soup.encode('utf-8'),
        report=results,
        title=title,
        interrupted=interrupted,
    )
