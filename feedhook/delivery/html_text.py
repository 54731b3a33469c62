"""
HTML to Text
============

Strips markup from entry content so it can be used as an embed description.

- Script, style and other non-content elements are dropped with their content
- Comments, CDATA and processing instructions are removed
- Inline markup collapses into running text, block elements become paragraphs
- ``<br>`` becomes a line break and ``<pre>`` keeps its whitespace
"""

import html
import re

from bs4 import BeautifulSoup, Comment, NavigableString
from bs4.element import CData, Doctype, ProcessingInstruction

from ..utils.logging import get_logger_for_component


class HtmlTextConverter:
    """Plain-text extraction for embed descriptions."""

    # Elements removed together with their content
    NON_CONTENT_ELEMENTS = {
        "script",
        "style",
        "iframe",
        "embed",
        "object",
        "applet",
        "form",
        "input",
        "button",
        "select",
        "textarea",
        "meta",
        "link",
        "base",
        "noscript",
        "canvas",
        "template",
    }

    # Elements rendered as separate paragraphs
    BLOCK_ELEMENTS = {
        "p",
        "div",
        "section",
        "article",
        "header",
        "footer",
        "aside",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "pre",
        "blockquote",
        "ul",
        "ol",
        "li",
        "dl",
        "dt",
        "dd",
        "table",
        "tr",
        "figure",
        "figcaption",
        "hr",
    }

    WHITESPACE_PATTERN = re.compile(r"\s+")
    MULTIPLE_NEWLINES_PATTERN = re.compile(r"\n{3,}")

    def __init__(self):
        self.logger = get_logger_for_component("html_text")
        self.parser = "html.parser"

    def to_text(self, html_content: str) -> str:
        """Convert an HTML fragment into plain text.

        Args:
            html_content: Raw HTML from the entry

        Returns:
            Plain text with paragraphs separated by blank lines
        """
        if not html_content or not html_content.strip():
            return ""

        try:
            soup = BeautifulSoup(html_content, self.parser)

            self._remove_non_content_elements(soup)
            self._collapse_whitespace(soup)
            self._mark_line_breaks(soup)

            return self._normalize_text(soup.get_text())

        except Exception as e:
            self.logger.error(f"Failed to convert HTML content: {e}")
            return self._extract_text_fallback(html_content)

    def _remove_non_content_elements(self, soup: BeautifulSoup) -> None:
        for element_name in self.NON_CONTENT_ELEMENTS:
            for element in soup.find_all(element_name):
                element.decompose()

        for element in soup.find_all(
            string=lambda text: isinstance(
                text, (Comment, CData, ProcessingInstruction, Doctype)
            )
        ):
            element.extract()

    def _collapse_whitespace(self, soup: BeautifulSoup) -> None:
        """Collapse runs of whitespace inside text nodes, outside ``<pre>``."""
        for node in list(soup.find_all(string=True)):
            if node.find_parent("pre") is not None:
                continue
            collapsed = self.WHITESPACE_PATTERN.sub(" ", str(node))
            if collapsed != str(node):
                node.replace_with(NavigableString(collapsed))

    def _mark_line_breaks(self, soup: BeautifulSoup) -> None:
        for br in soup.find_all("br"):
            br.replace_with(NavigableString("\n"))

        for element in soup.find_all(list(self.BLOCK_ELEMENTS)):
            element.insert_before(NavigableString("\n\n"))
            element.insert_after(NavigableString("\n\n"))

    def _normalize_text(self, text: str) -> str:
        lines = [line.strip() for line in text.split("\n")]
        text = "\n".join(lines)
        text = self.MULTIPLE_NEWLINES_PATTERN.sub("\n\n", text)
        return text.strip()

    def _extract_text_fallback(self, html_content: str) -> str:
        """Regex-based extraction for markup BeautifulSoup cannot handle."""
        content = re.sub(
            r"<(script|style)[^>]*>.*?</\1>",
            "",
            html_content,
            flags=re.IGNORECASE | re.DOTALL,
        )
        content = re.sub(r"<[^>]+>", "", content)
        content = html.unescape(content)
        return self.WHITESPACE_PATTERN.sub(" ", content).strip()
