import pytest
import json
import os
from datetime import datetime, timezone

import file_handler
import constants
from errors import BundleExistsError, BundleWriteError
from models import AssetReference, AssetResult, PageBundle, PageMetadata
from conftest import make_document

FETCHED_AT = datetime(2026, 10, 18, 12, 30, 0, tzinfo=timezone.utc)


def _reference(name, url=None):
    return AssetReference(original_ref=name, resolved_url=url or f"https://example.com/{name}", local_name=name)


def _bundle(results=None, markdown=b"# Hello\n\nWorld words here\n", title="Hello"):
    results = results if results is not None else [
        AssetResult.success(_reference("a.png"), b"png-a", "image/png"),
        AssetResult.failure(_reference("b.png"), "HttpStatusError: HTTP 404 for https://example.com/b.png"),
        AssetResult.success(_reference("c.gif"), b"gif-c", "image/gif"),
    ]
    document = make_document("https://example.com/page", b"<html></html>")
    document = type(document)(url=document.url, content=document.content,
                              content_type=document.content_type, fetched_at=FETCHED_AT)
    metadata = PageMetadata.from_results(document, title, results, markdown)
    return PageBundle(html_localized=b"<html><img src=\"images/a.png\"></html>",
                      markdown=markdown, metadata=metadata, assets=results)


# --- Tests for sanitize_filename ---

@pytest.mark.parametrize("input_name, expected_name", [
    ("Valid Filename", "Valid_Filename"),
    ("File with  spaces", "File_with_spaces"),
    ("File/with\\invalid*chars?:<>|\"", "Filewithinvalidchars"),
    ("  Leading and trailing spaces  ", "Leading_and_trailing_spaces"),
    (".Leading and trailing dots.", "Leading_and_trailing_dots"),
    ("", constants.UNTITLED_FILENAME), # Empty input
    ("..", constants.UNTITLED_FILENAME), # Input becomes empty after stripping dots
    ("///", constants.UNTITLED_FILENAME), # Input becomes empty after removing invalid chars
    ("a" * (constants.FILENAME_MAX_LENGTH + 50), "a" * constants.FILENAME_MAX_LENGTH), # Too long
    ("Valid_Name-123.txt", "Valid_Name-123.txt"), # With extension and hyphen
    ("你好世界", "你好世界"), # Unicode characters (should be preserved)
])
def test_sanitize_filename(input_name, expected_name):
    """Tests the sanitize_filename function with various inputs."""
    assert file_handler.sanitize_filename(input_name) == expected_name


# --- Tests for default names ---

@pytest.mark.parametrize("url, expected_dir", [
    ("https://test.org/page", "test.org"),
    ("https://Example.COM/", "example.com"),
    ("http://localhost:8000/docs/", "localhost_8000"),
    ("https://user:pw@www.example.co.uk/a?b=c", "www.example.co.uk"),
])
def test_default_output_dir(url, expected_dir):
    assert file_handler.default_output_dir(url) == expected_dir


@pytest.mark.parametrize("url, title, expected", [
    ("https://example.com/blog/post", "My Page: Title", "My_Page_Title.pdf"),
    ("https://example.com/blog/post", None, "example.com_blog_post.pdf"),
    ("https://example.com/", "   ", "example.com.pdf"),
])
def test_default_pdf_filename(url, title, expected):
    assert file_handler.default_pdf_filename(url, title) == expected


# --- Tests for write_bundle ---

def test_write_bundle_layout_and_info_json(tmp_path):
    output_dir = str(tmp_path / "example.com")
    report = file_handler.write_bundle(output_dir, _bundle())

    assert sorted(os.listdir(output_dir)) == ["images", "info.json", "page.html", "page.md"]
    assert sorted(os.listdir(os.path.join(output_dir, "images"))) == ["a.png", "c.gif"]
    assert (tmp_path / "example.com" / "images" / "a.png").read_bytes() == b"png-a"
    assert (tmp_path / "example.com" / "page.md").read_bytes() == b"# Hello\n\nWorld words here\n"
    # Written in order: html, markdown, metadata, images
    assert [os.path.basename(p) for p in report.files_written] == [
        "page.html", "page.md", "info.json", "a.png", "c.gif"
    ]

    info = file_handler.read_info_json(output_dir)
    assert info == {
        "source_url": "https://example.com/page",
        "title": "Hello",
        "fetched_at": "2026-10-18T12:30:00+00:00",
        "asset_count": 3,
        "failed_assets": [
            {"url": "https://example.com/b.png", "reason": "HttpStatusError: HTTP 404 for https://example.com/b.png"}
        ],
        "saved_assets": [
            {"url": "https://example.com/a.png", "file": "images/a.png"},
            {"url": "https://example.com/c.gif", "file": "images/c.gif"},
        ],
        "markdown_word_count": 5,
    }


def test_info_json_is_pretty_printed_utf8(tmp_path):
    file_handler.write_bundle(str(tmp_path), _bundle(title="Café ☕"))
    raw = (tmp_path / "info.json").read_text(encoding='utf-8')
    assert raw.startswith("{\n  ")
    assert "Café ☕" in raw


def test_write_bundle_without_markdown_skips_page_md(tmp_path):
    bundle = _bundle(markdown=None, title=None)
    file_handler.write_bundle(str(tmp_path), bundle)

    assert not (tmp_path / "page.md").exists()
    info = json.loads((tmp_path / "info.json").read_text(encoding='utf-8'))
    assert info["title"] is None
    assert info["markdown_word_count"] is None


def test_write_bundle_with_no_assets_still_creates_images_dir(tmp_path):
    file_handler.write_bundle(str(tmp_path / "out"), _bundle(results=[]))
    assert (tmp_path / "out" / "images").is_dir()
    assert file_handler.read_info_json(str(tmp_path / "out"))["asset_count"] == 0


def test_write_bundle_overwrites_existing_bundle(tmp_path):
    output_dir = str(tmp_path / "site")
    file_handler.write_bundle(output_dir, _bundle())
    (tmp_path / "site" / "page.html").write_bytes(b"stale")

    file_handler.write_bundle(output_dir, _bundle())

    assert (tmp_path / "site" / "page.html").read_bytes() == b"<html><img src=\"images/a.png\"></html>"


def test_write_bundle_refuses_file_at_output_path(tmp_path):
    blocker = tmp_path / "site"
    blocker.write_text("I am a file")

    with pytest.raises(BundleExistsError):
        file_handler.write_bundle(str(blocker), _bundle())
    assert blocker.read_text() == "I am a file"


def test_write_bundle_refuses_file_at_images_path(tmp_path):
    (tmp_path / "images").write_text("not a directory")
    with pytest.raises(BundleExistsError):
        file_handler.write_bundle(str(tmp_path), _bundle())


def test_write_failure_keeps_files_already_written(tmp_path):
    # A directory where an image file should go makes that single write fail
    (tmp_path / "images" / "c.gif").mkdir(parents=True)

    with pytest.raises(BundleWriteError) as excinfo:
        file_handler.write_bundle(str(tmp_path), _bundle())

    assert excinfo.value.path.endswith("c.gif")
    assert (tmp_path / "page.html").exists()
    assert (tmp_path / "page.md").exists()
    assert (tmp_path / "info.json").exists()
    assert (tmp_path / "images" / "a.png").read_bytes() == b"png-a"


# --- Tests for write_pdf ---

def test_write_pdf(tmp_path):
    target = tmp_path / "nested" / "page.pdf"
    assert file_handler.write_pdf(str(target), b"%PDF-1.7") == str(target)
    assert target.read_bytes() == b"%PDF-1.7"


def test_write_pdf_to_directory_fails(tmp_path):
    with pytest.raises(BundleExistsError):
        file_handler.write_pdf(str(tmp_path), b"%PDF-1.7")
