"""Best-effort formatting of file content before it is written."""

import os
import json
import logging
from typing import Dict, Optional
from xml.dom import minidom

import jsbeautifier
import cssbeautifier
import mdformat

# Configure logging
logger = logging.getLogger(__name__)

PARSER_HINTS: Dict[str, str] = {
    ".js": "babel",
    ".jsx": "babel",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".css": "css",
    ".json": "json",
    ".html": "html",
    ".xml": "xml",
    ".md": "markdown",
}

INDENT_SIZE = 2


def get_parser_hint(file_path: str) -> Optional[str]:
    """Return the formatter hint for a path, or None when it is not formatted."""
    _, ext = os.path.splitext(file_path)
    return PARSER_HINTS.get(ext.lower())


class Formatter:
    """Interface of the content formatter used by the change applier.

    ``format`` may raise anything; the applier logs the failure and writes
    the unformatted content instead.
    """

    def format(self, content: str, parser_hint: str) -> str:
        raise NotImplementedError


class NullFormatter(Formatter):
    """Formatter that leaves content untouched."""

    def format(self, content: str, parser_hint: str) -> str:
        return content


class DefaultFormatter(Formatter):
    """Formatter backed by jsbeautifier, cssbeautifier, json, minidom and mdformat."""

    def __init__(self, indent_size: int = INDENT_SIZE):
        self.indent_size = indent_size

    def format(self, content: str, parser_hint: str) -> str:
        if parser_hint in ("babel", "typescript"):
            return self._format_script(content)
        if parser_hint == "css":
            return self._format_css(content)
        if parser_hint == "json":
            return json.dumps(json.loads(content), indent=self.indent_size, ensure_ascii=False) + "\n"
        if parser_hint == "xml":
            return self._format_xml(content)
        if parser_hint == "markdown":
            return mdformat.text(content)
        logger.debug(f"No formatter backend for parser hint {parser_hint!r}")
        return content

    def _format_script(self, content: str) -> str:
        options = jsbeautifier.default_options()
        options.indent_size = self.indent_size
        options.end_with_newline = True
        options.e4x = True
        return jsbeautifier.beautify(content, options)

    def _format_css(self, content: str) -> str:
        options = cssbeautifier.default_options()
        options.indent_size = self.indent_size
        options.end_with_newline = True
        return cssbeautifier.beautify(content, options)

    def _format_xml(self, content: str) -> str:
        document = minidom.parseString(content)
        pretty = document.toprettyxml(indent=" " * self.indent_size)
        # toprettyxml pads existing whitespace nodes with blank lines
        lines = [line for line in pretty.splitlines() if line.strip()]
        if not content.lstrip().startswith("<?xml"):
            lines = lines[1:]
        return "\n".join(lines) + "\n"
