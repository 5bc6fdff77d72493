# Module for file system operations (sanitizing names, writing bundles and PDFs)

import os
import json
import logging
import re
from urllib.parse import urlparse, unquote

import constants # Import constants
from errors import BundleExistsError, BundleWriteError
from models import WriteReport

logger = logging.getLogger(__name__)


# --- Names ---
def sanitize_filename(name):
    """Sanitizes a string to be used as a valid filename."""
    # Remove invalid characters
    name = re.sub(r'[\\/*?:\'"<>|\x00-\x1f]', '', name)
    # Remove leading/trailing whitespace/periods FIRST
    name = name.strip(' .')
    # Replace remaining whitespace runs with underscores
    name = re.sub(r'\s+', '_', name)
    # Limit length using constant
    name = name[:constants.FILENAME_MAX_LENGTH]
    # Strip again in case limiting length left trailing dots/spaces
    name = name.strip(' .')
    # Ensure filename is not empty after sanitization
    if not name:
        name = constants.UNTITLED_FILENAME
    return name


def default_output_dir(url):
    """Derives the bundle directory name from the URL host, e.g. 'test.org'."""
    parsed = urlparse(url)
    host = (parsed.hostname or '').lower()
    if parsed.port:
        host = f"{host}_{parsed.port}"
    host = sanitize_filename(host.replace(':', '_'))
    if host == constants.UNTITLED_FILENAME:
        return constants.DEFAULT_OUTPUT_DIR
    return host


def default_pdf_filename(url, title=None):
    """Uses the page title when present, else host and path of the URL."""
    if title and title.strip():
        base = sanitize_filename(title)
    else:
        parsed = urlparse(url)
        path = unquote(parsed.path).strip('/').replace('/', '_')
        base = sanitize_filename(f"{parsed.hostname or ''}_{path}" if path else (parsed.hostname or ''))
    return f"{base}{constants.PDF_EXTENSION}"


# --- Internal Utilities ---
def _ensure_output_directory(output_dir):
    """Creates output_dir and its images/ subdirectory; refuses a non-directory path."""
    if os.path.exists(output_dir) and not os.path.isdir(output_dir):
        raise BundleExistsError(f"Output path exists and is not a directory: {output_dir}", path=output_dir)
    images_dir = os.path.join(output_dir, constants.IMAGES_DIR_NAME)
    if os.path.exists(images_dir) and not os.path.isdir(images_dir):
        raise BundleExistsError(f"Images path exists and is not a directory: {images_dir}", path=images_dir)
    try:
        os.makedirs(images_dir, exist_ok=True)
    except OSError as e:
        raise BundleWriteError(f"Error creating directory structure in {output_dir}: {e}", path=output_dir) from e
    return images_dir


def _write_file(full_path, data, report):
    try:
        with open(full_path, 'wb') as f:
            f.write(data)
    except OSError as e:
        raise BundleWriteError(f"Error writing file {full_path}: {e}", path=full_path) from e
    report.files_written.append(full_path)
    logger.debug(f"Wrote {len(data)} bytes to {full_path}")


# --- Bundle Saving ---
def write_bundle(output_dir, bundle):
    """
    Writes a PageBundle to output_dir:

        page.html, page.md (when markdown is present), info.json, images/<local_name>

    Existing files are overwritten. Raises BundleExistsError when a non-directory
    occupies output_dir and BundleWriteError on any write failure; files written
    before the failure are left in place.
    """
    images_dir = _ensure_output_directory(output_dir)
    report = WriteReport(output_dir=output_dir)

    _write_file(os.path.join(output_dir, constants.PAGE_HTML_FILENAME), bundle.html_localized, report)

    if bundle.markdown is not None:
        _write_file(os.path.join(output_dir, constants.PAGE_MARKDOWN_FILENAME), bundle.markdown, report)
    else:
        logger.warning(f"No Markdown available; skipping {constants.PAGE_MARKDOWN_FILENAME}.")

    info = json.dumps(bundle.metadata.to_json_dict(), indent=2, ensure_ascii=False)
    _write_file(os.path.join(output_dir, constants.INFO_JSON_FILENAME), (info + "\n").encode('utf-8'), report)

    for result in bundle.assets:
        if not result.ok:
            continue
        _write_file(os.path.join(images_dir, result.reference.local_name), result.content, report)

    logger.info(f"Successfully saved bundle to {output_dir} ({len(report.files_written)} files)")
    return report


def read_info_json(output_dir):
    """Loads info.json back from a written bundle."""
    with open(os.path.join(output_dir, constants.INFO_JSON_FILENAME), 'r', encoding='utf-8') as f:
        return json.load(f)


# --- PDF Saving ---
def write_pdf(full_path, pdf_bytes):
    """Writes PDF bytes to full_path, creating parent directories as needed."""
    parent = os.path.dirname(full_path)
    try:
        if parent:
            os.makedirs(parent, exist_ok=True)
        if os.path.isdir(full_path):
            raise BundleExistsError(f"PDF output path is a directory: {full_path}", path=full_path)
        with open(full_path, 'wb') as f:
            f.write(pdf_bytes)
    except OSError as e:
        raise BundleWriteError(f"Error writing PDF file {full_path}: {e}", path=full_path) from e
    logger.info(f"Successfully saved PDF: {full_path}")
    return full_path
