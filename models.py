# Data model for a single scrape run
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from errors import describe_failure


_CHARSET_RE = re.compile(r'charset=["\']?([\w\-]+)', re.I)


@dataclass
class PageRequest:
    url: str
    output_dir: Optional[str] = None


@dataclass(frozen=True)
class FetchedDocument:
    url: str # Final URL after redirects
    content: bytes
    content_type: str = ""
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    requested_url: Optional[str] = None

    @property
    def charset(self) -> Optional[str]:
        match = _CHARSET_RE.search(self.content_type or "")
        return match.group(1) if match else None

    @property
    def text(self) -> str:
        """Decoded body: declared charset, else UTF-8 with replacement."""
        encoding = self.charset or "utf-8"
        try:
            return self.content.decode(encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")


@dataclass
class AssetReference:
    original_ref: str
    resolved_url: str
    local_name: str
    extension_pending: bool = False # Extension decided from Content-Type after download


@dataclass
class AssetResult:
    reference: AssetReference
    content: Optional[bytes] = None
    content_type: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.content is not None

    @classmethod
    def success(cls, reference, content, content_type=""):
        return cls(reference=reference, content=content, content_type=content_type)

    @classmethod
    def failure(cls, reference, reason):
        if isinstance(reason, BaseException):
            reason = describe_failure(reason)
        return cls(reference=reference, error=reason)


@dataclass
class PageMetadata:
    source_url: str
    title: Optional[str]
    fetched_at: datetime
    asset_count: int = 0
    failed_assets: List[dict] = field(default_factory=list)
    saved_assets: List[dict] = field(default_factory=list)
    markdown_word_count: Optional[int] = None

    @property
    def failed_asset_count(self) -> int:
        return len(self.failed_assets)

    @classmethod
    def from_results(cls, document, title, results, markdown=None):
        failed = [
            {"url": r.reference.resolved_url, "reason": r.error}
            for r in results if not r.ok
        ]
        saved = [
            {"url": r.reference.resolved_url, "file": f"images/{r.reference.local_name}"}
            for r in results if r.ok
        ]
        word_count = None
        if markdown is not None:
            word_count = len(markdown.decode("utf-8", errors="replace").split())
        return cls(
            source_url=document.url,
            title=title,
            fetched_at=document.fetched_at,
            asset_count=len(results),
            failed_assets=failed,
            saved_assets=saved,
            markdown_word_count=word_count,
        )

    def to_json_dict(self):
        return {
            "source_url": self.source_url,
            "title": self.title,
            "fetched_at": self.fetched_at.isoformat(),
            "asset_count": self.asset_count,
            "failed_assets": list(self.failed_assets),
            "saved_assets": list(self.saved_assets),
            "markdown_word_count": self.markdown_word_count,
        }


@dataclass
class PageBundle:
    html_localized: bytes
    metadata: PageMetadata
    markdown: Optional[bytes] = None
    assets: List[AssetResult] = field(default_factory=list)


@dataclass
class WriteReport:
    output_dir: str
    files_written: List[str] = field(default_factory=list)
