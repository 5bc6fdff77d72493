"""
Resolution of raw HTML asset references to absolute URLs and local file names.

An AssetResolver instance holds the names it has handed out during one run,
so two different URLs never share a local name and the same URL always maps
to the same AssetReference. Create one resolver per run.
"""

import hashlib
import logging
import mimetypes
import os
import re
from urllib.parse import urldefrag, urljoin, urlparse, unquote

import constants
from file_handler import sanitize_filename
from models import AssetReference

logger = logging.getLogger(__name__)

# mimetypes misses or varies on some image types across platforms
IMAGE_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/jpg': '.jpg',
    'image/pjpeg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
    'image/avif': '.avif',
    'image/svg+xml': '.svg',
    'image/bmp': '.bmp',
    'image/tiff': '.tiff',
    'image/x-icon': '.ico',
    'image/vnd.microsoft.icon': '.ico',
}


def extension_for_content_type(content_type):
    """Best-guess file extension (with dot) for a Content-Type header, or None."""
    if not content_type:
        return None
    mime = content_type.split(';', 1)[0].strip().lower()
    if mime in IMAGE_EXTENSIONS:
        return IMAGE_EXTENSIONS[mime]
    return mimetypes.guess_extension(mime)


def is_skippable_ref(raw_ref):
    """Data URIs, empty and fragment-only references are not downloadable."""
    if raw_ref is None:
        return True
    ref = raw_ref.strip()
    return not ref or ref.startswith('#') or ref.lower().startswith('data:')


class AssetResolver:
    def __init__(self):
        self._references = {} # resolved_url -> AssetReference
        self._assigned_names = set() # lower-cased names already handed out

    def absolute_url(self, base_url, raw_ref):
        """
        Applies standard URL resolution to raw_ref against base_url.
        The fragment is dropped, the query kept. Returns None for skippable refs.
        """
        if is_skippable_ref(raw_ref):
            return None
        resolved, _fragment = urldefrag(urljoin(base_url, raw_ref.strip()))
        return resolved or None

    def resolve(self, base_url, raw_refs):
        """
        Returns one AssetReference per distinct resolved URL, in first-encounter order.
        """
        references = []
        seen = set()
        for raw_ref in raw_refs:
            resolved_url = self.absolute_url(base_url, raw_ref)
            if resolved_url is None or resolved_url in seen:
                continue
            seen.add(resolved_url)

            reference = self._references.get(resolved_url)
            if reference is None:
                base, ext = self._candidate_name(resolved_url)
                reference = AssetReference(
                    original_ref=raw_ref.strip(),
                    resolved_url=resolved_url,
                    local_name=self._claim(base, ext),
                    extension_pending=not ext,
                )
                self._references[resolved_url] = reference
                logger.debug(f"Resolved {raw_ref!r} -> {resolved_url} as {reference.local_name}")
            references.append(reference)
        return references

    def reserve(self, local_name):
        """Marks a name as taken, e.g. by an image already present in the bundle."""
        self._assigned_names.add(local_name.lower())

    def finalize_name(self, reference, content_type):
        """
        Gives a reference whose URL had no usable extension one derived from the
        downloaded Content-Type, keeping the name unique. Returns the final name.
        """
        if not reference.extension_pending:
            return reference.local_name
        ext = extension_for_content_type(content_type) or constants.FALLBACK_ASSET_EXTENSION
        self._assigned_names.discard(reference.local_name.lower())
        reference.local_name = self._claim(reference.local_name, ext)
        reference.extension_pending = False
        return reference.local_name

    def _candidate_name(self, resolved_url):
        """Returns (base, ext) where ext is '' when it must wait for the Content-Type."""
        segment = unquote(urlparse(resolved_url).path).rsplit('/', 1)[-1]
        base, ext = os.path.splitext(segment)
        ext = re.sub(r'[^A-Za-z0-9]', '', ext).lower()[:10]

        if not base.strip(' .'):
            digest = hashlib.sha1(resolved_url.encode('utf-8')).hexdigest()
            base = f"{constants.SYNTHETIC_ASSET_PREFIX}-{digest[:constants.SYNTHETIC_HASH_LENGTH]}"
        else:
            base = sanitize_filename(base)
        return base, f".{ext}" if ext else ""

    def _claim(self, base, ext):
        name = f"{base}{ext}"
        counter = 1
        while name.lower() in self._assigned_names:
            name = f"{base}-{counter}{ext}"
            counter += 1
            if counter > constants.FILENAME_COLLISION_LIMIT:
                # Hash suffix cannot collide with the counter sequence
                digest = hashlib.sha1(f"{base}{ext}{counter}".encode('utf-8')).hexdigest()[:8]
                name = f"{base}-{digest}{ext}"
                if name.lower() not in self._assigned_names:
                    break
        self._assigned_names.add(name.lower())
        return name
