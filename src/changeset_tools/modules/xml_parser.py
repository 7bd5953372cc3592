#!/usr/bin/env python3
"""XML parser module for change-set documents."""

import re
import logging
from typing import List, Optional, Tuple, Iterable
from xml.dom import minidom
from xml.dom.minidom import Document, Element, Node
from xml.parsers.expat import ExpatError, ErrorString

from changeset_tools.modules.changes import (
    FileChange,
    FileOperation,
    EmptyInputError,
    XMLStructureError,
)
from changeset_tools.modules.cdata import CDATA_OPEN, CDATA_CLOSE, wrap_file_code_in_cdata
from changeset_tools.modules.diagnostics import find_problem_area
from changeset_tools.modules.repair import preprocess_xml

# Configure logging
logger = logging.getLogger(__name__)

ROOT_TAG = "changed_files"
REFORMAT_HINT = "Try the format-xml command to repair the document."

FILE_BLOCK_PATTERN = re.compile(r'<file>[\s\S]*?</file>')
ROOT_START_PATTERN = re.compile(r'<(?:changed_files|code_changes|file)[\s>]')

# Parser messages that point at source code colliding with XML rules
FOREIGN_SYNTAX_SIGNATURES = (
    "unclosed token",
    "not well-formed",
    "xml or text declaration not at start of entity",
)


def extract_xml_from_markdown(text: str) -> str:
    """Extract XML content from a markdown code block if present.

    Args:
        text: The text that may contain markdown-formatted XML

    Returns:
        The extracted XML content or the original text if no code block found
    """
    # Don't process text that already has XML tags at the beginning
    if text.lstrip().startswith('<'):
        return text

    # Greedy up to the last fence; payloads may carry fences of their own
    match = re.search(r"```(?:xml)?[ \t]*\n(.*)```", text, re.DOTALL)
    if match:
        return match.group(1)

    return text


def _strip_envelope(text: str) -> str:
    """Drop prose around the document and give bare <file> lists a root."""
    text = extract_xml_from_markdown(text).strip()

    if not text.startswith('<'):
        start = ROOT_START_PATTERN.search(text)
        if start:
            logger.debug("Dropping text before the first change-set tag")
            text = text[start.start():]

    if not text.endswith('>'):
        end = max(text.rfind(tag) for tag in (f'</{ROOT_TAG}>', '</code_changes>', '</file>'))
        if end != -1:
            logger.debug("Dropping text after the change-set root")
            text = text[:text.index('>', end) + 1]

    if text.startswith('<file>') and text.endswith('</file>'):
        logger.debug(f"Wrapped orphaned file elements in <{ROOT_TAG}>")
        text = f"<{ROOT_TAG}>{text}</{ROOT_TAG}>"

    return text


def prepare_xml(xml_string: str) -> str:
    """Repair the document and CDATA-protect every file_code payload."""
    return wrap_file_code_in_cdata(preprocess_xml(xml_string))


def _describe_parse_error(error: ExpatError) -> str:
    # Expat columns are 0-based; report them 1-based like the line numbers
    return f"{ErrorString(error.code)} at line {error.lineno}, column {error.offset + 1}"


def _text_content(node: Node) -> str:
    """Concatenate all text and CDATA below ``node``."""
    parts = []
    for child in node.childNodes:
        if child.nodeType in (Node.TEXT_NODE, Node.CDATA_SECTION_NODE):
            parts.append(child.data)
        elif child.nodeType == Node.ELEMENT_NODE:
            parts.append(_text_content(child))
    return ''.join(parts)


def _first_element(parent: Element, tag_name: str) -> Optional[Element]:
    elements = parent.getElementsByTagName(tag_name)
    return elements[0] if elements else None


def read_file_code(code_element: Element) -> str:
    """Read a file_code payload, preferring its CDATA sections.

    CDATA content is verbatim. Without CDATA the parser's text content is used,
    which has had entities decoded.
    """
    sections = [child.data for child in code_element.childNodes
                if child.nodeType == Node.CDATA_SECTION_NODE]
    if sections:
        return ''.join(sections)
    return _text_content(code_element)


def parse_file_node(file_node: Element) -> Optional[FileChange]:
    """Build a FileChange from a <file> element.

    Args:
        file_node: A minidom Element representing a file node

    Returns:
        FileChange object, or None when a required child element is missing
    """
    path_node = _first_element(file_node, "file_path")
    operation_node = _first_element(file_node, "file_operation")
    code_node = _first_element(file_node, "file_code")

    missing = [name for name, node in (("file_path", path_node),
                                       ("file_operation", operation_node),
                                       ("file_code", code_node)) if node is None]
    if missing:
        logger.warning(f"Skipping file element without {', '.join(missing)}")
        return None

    path = _text_content(path_node).strip()
    operation = FileOperation.parse(_text_content(operation_node))

    code = read_file_code(code_node)
    has_cdata = any(child.nodeType == Node.CDATA_SECTION_NODE for child in code_node.childNodes)
    if code and not has_cdata:
        logger.warning(f"No CDATA found for {path}, using text content, length: {len(code)}")

    summary_node = _first_element(file_node, "file_summary")
    summary = _text_content(summary_node).strip() if summary_node is not None else ""

    logger.debug(f"Extracted {operation.value} for {path}, code excerpt: {code[:100]!r}")
    return FileChange(file_path=path, file_operation=operation, file_code=code, file_summary=summary)


def extract_changes(document: Document) -> List[FileChange]:
    """Extract the ordered change-set from a parsed document."""
    changes = []
    for file_node in document.getElementsByTagName("file"):
        change = parse_file_node(file_node)
        if change is not None:
            changes.append(change)

    logger.info(f"Found {len(changes)} file changes to apply")
    return changes


def _field(block: str, tag_name: str) -> Optional[str]:
    match = re.search(rf'<{tag_name}>([\s\S]*?)</{tag_name}>', block)
    return match.group(1) if match else None


def parse_with_regex(xml_string: str) -> List[FileChange]:
    """Extract changes with per-field regexes, without an XML parser.

    This is the degraded path for documents the parser rejects because of
    source code that collides with XML syntax. Blocks without a path or code
    are skipped.

    Args:
        xml_string: The document text

    Returns:
        List of FileChange objects
    """
    changes = []

    for block in FILE_BLOCK_PATTERN.findall(xml_string):
        path = _field(block, "file_path")
        code_match = re.search(
            r'<file_code>(?:<!\[CDATA\[)?([\s\S]*?)(?:\]\]>)?</file_code>', block)
        if path is None or code_match is None:
            logger.warning("Skipping file block without file_path or file_code")
            continue

        summary = _field(block, "file_summary")
        changes.append(FileChange(
            file_path=path.strip(),
            file_operation=FileOperation.parse(_field(block, "file_operation")),
            file_code=code_match.group(1).strip(),
            file_summary=summary.strip() if summary is not None else "",
        ))

    return changes


def _is_foreign_syntax_failure(xml_string: str, error_message: str) -> bool:
    message = error_message.lower()
    return '<?php' in xml_string and any(sig in message for sig in FOREIGN_SYNTAX_SIGNATURES)


def parse_xml_string(xml_string: str) -> List[FileChange]:
    """Parse a change-set document into an ordered list of FileChange objects.

    The text is repaired and its file_code payloads CDATA-protected before it
    is parsed. Entries missing a required element are skipped. When parsing
    still fails because of foreign source syntax, changes are extracted with
    regexes as a last resort.

    Args:
        xml_string: The XML string to parse

    Returns:
        A list of FileChange objects representing the changes

    Raises:
        EmptyInputError: If the input is None, empty or whitespace only
        XMLStructureError: If the document cannot be parsed
    """
    if xml_string is None or not xml_string.strip():
        raise EmptyInputError("Empty or null XML input")

    text = _strip_envelope(xml_string.strip())
    protected = prepare_xml(text)

    try:
        document = minidom.parseString(protected)
    except ExpatError as e:
        message = _describe_parse_error(e)
        logger.error(f"XML parse error: {message}")

        if _is_foreign_syntax_failure(text, message) and FILE_BLOCK_PATTERN.search(text):
            logger.warning("Source code is colliding with XML syntax, extracting changes with regexes")
            changes = parse_with_regex(text)
            if changes:
                logger.warning(f"Extracted {len(changes)} file changes using fallback method")
                return changes

        problem_area = find_problem_area(protected, message)
        raise XMLStructureError(
            f"XML parsing failed: {message}\n\nProblem area:\n{problem_area}\n\n{REFORMAT_HINT}",
            parser_message=message,
            excerpt=problem_area,
        ) from e

    try:
        return extract_changes(document)
    finally:
        document.unlink()


def validate_xml_structure(xml_string: str) -> Tuple[bool, Optional[str]]:
    """Check that a document parses, without extracting changes.

    Args:
        xml_string: The XML string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if xml_string is None or not xml_string.strip():
        return False, "Empty XML string"

    protected = prepare_xml(_strip_envelope(xml_string.strip()))
    try:
        minidom.parseString(protected).unlink()
    except ExpatError as e:
        message = _describe_parse_error(e)
        return False, f"{message}\n{find_problem_area(protected, message)}"
    return True, None


def _cdata(text: str) -> str:
    # A literal "]]>" has to be split across two sections
    return CDATA_OPEN + text.replace(CDATA_CLOSE, ']]' + CDATA_CLOSE + CDATA_OPEN + '>') + CDATA_CLOSE


def _escape_text(text: str) -> str:
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def generate_xml_from_changes(changes: Iterable[FileChange]) -> str:
    """Render FileChange objects as a <changed_files> document.

    Args:
        changes: The changes to serialize

    Returns:
        XML string that parse_xml_string reads back into the same changes
    """
    xml_parts = [f'<{ROOT_TAG}>']

    for change in changes:
        xml_parts.append('  <file>')
        if change.file_summary:
            xml_parts.append(f'    <file_summary>{_escape_text(change.file_summary)}</file_summary>')
        xml_parts.append(f'    <file_operation>{change.operation_name}</file_operation>')
        xml_parts.append(f'    <file_path>{_escape_text(change.file_path)}</file_path>')
        xml_parts.append(f'    <file_code>{_cdata(change.file_code)}</file_code>')
        xml_parts.append('  </file>')

    xml_parts.append(f'</{ROOT_TAG}>')
    return '\n'.join(xml_parts)
