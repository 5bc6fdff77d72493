"""
Document conversion backends.

Every backend implements ConversionAdapter: HTML bytes in, Markdown or PDF
bytes out. PandocConverter runs the external pandoc binary (one process per
call) and is the default; Html2TextConverter converts to Markdown in-process
and has no PDF support.
"""

import logging
import os
import shutil
import tempfile

import html2text
import pypandoc

import constants
from errors import ConversionFailedError, ConversionUnavailableError

logger = logging.getLogger(__name__)


def _decode(html):
    if isinstance(html, bytes):
        return html.decode('utf-8', errors='replace')
    return html


class ConversionAdapter:
    name = "base"

    def to_markdown(self, html):
        raise NotImplementedError

    def to_pdf(self, html):
        raise NotImplementedError


class PandocConverter(ConversionAdapter):
    name = "pandoc"

    def __init__(self, markdown_format=constants.DEFAULT_PANDOC_MARKDOWN_FORMAT,
                 pdf_engine=constants.DEFAULT_PDF_ENGINE):
        self.markdown_format = markdown_format
        self.pdf_engine = pdf_engine

    def _ensure_available(self):
        try:
            path = pypandoc.get_pandoc_path()
        except OSError as e:
            raise ConversionUnavailableError(f"pandoc could not be found: {e}") from e
        logger.debug(f"Using pandoc at {path}")

    def to_markdown(self, html):
        self._ensure_available()
        try:
            markdown = pypandoc.convert_text(
                _decode(html), self.markdown_format, format='html', extra_args=['--wrap=none']
            )
        except OSError as e:
            raise ConversionUnavailableError(f"pandoc could not be started: {e}") from e
        except RuntimeError as e:
            raise ConversionFailedError("pandoc failed to convert HTML to Markdown", diagnostics=str(e)) from e
        return markdown.encode('utf-8')

    def to_pdf(self, html):
        self._ensure_available()
        if shutil.which(self.pdf_engine) is None:
            raise ConversionUnavailableError(f"PDF engine '{self.pdf_engine}' could not be found on PATH")

        # The scratch directory goes away on success, failure and interruption alike
        with tempfile.TemporaryDirectory(prefix="webpage2pdf-") as workdir:
            output_path = os.path.join(workdir, "page.pdf")
            try:
                pypandoc.convert_text(
                    _decode(html), 'pdf', format='html', outputfile=output_path,
                    extra_args=[f'--pdf-engine={self.pdf_engine}'],
                )
            except OSError as e:
                raise ConversionUnavailableError(f"pandoc could not be started: {e}") from e
            except RuntimeError as e:
                raise ConversionFailedError("pandoc failed to render the PDF", diagnostics=str(e)) from e

            if not os.path.isfile(output_path):
                raise ConversionFailedError("pandoc finished without producing a PDF")
            with open(output_path, 'rb') as f:
                return f.read()


class Html2TextConverter(ConversionAdapter):
    name = "html2text"

    def to_markdown(self, html):
        try:
            h = html2text.HTML2Text()
            h.ignore_links = False
            h.ignore_images = False
            h.body_width = 0 # Prevent line wrapping
            markdown_content = h.handle(_decode(html))
        except Exception as e:
            raise ConversionFailedError("html2text failed to convert HTML to Markdown", diagnostics=str(e)) from e
        return markdown_content.encode('utf-8')

    def to_pdf(self, html):
        raise ConversionUnavailableError("The html2text engine cannot render PDF; use pandoc")


def get_converter(config, purpose="markdown"):
    """Builds the backend for `purpose` ('markdown' or 'pdf') from the configuration."""
    engine = config.get('markdown_engine', constants.DEFAULT_MARKDOWN_ENGINE) if purpose == "markdown" else "pandoc"
    if engine == "html2text":
        return Html2TextConverter()
    return PandocConverter(
        markdown_format=config.get('pandoc_markdown_format', constants.DEFAULT_PANDOC_MARKDOWN_FORMAT),
        pdf_engine=config.get('pdf_engine', constants.DEFAULT_PDF_ENGINE),
    )
