"""Locate the part of a change-set document a parser error refers to.

``find_problem_area`` turns a terse parser message into an excerpt of the
document a person can act on. It tries a fixed list of strategies and uses
the first one that produces something; the last one always does.
"""

import re
import logging
from typing import List, Optional, Tuple

from changeset_tools.modules.cdata import CDATA_OPEN, CDATA_CLOSE

# Configure logging
logger = logging.getLogger(__name__)

CONTEXT_SIZE = 100
CONTEXT_LINES = 3
HEAD_SIZE = 200
PREVIEW_SIZE = 500

UNCLOSED_TAG_SUGGESTION = "Add a matching </{tag}> closing tag."
UNCLOSED_TAG_LABEL = "Unclosed tag"
TAG_NAME_PATTERN = r"([A-Za-z][\w:-]*)"

PHP_INSTRUCTION_SIGNATURES = (
    "Invalid processing instruction",
    "processing instruction starting at",
    # expat wording
    "unclosed token",
    "not well-formed (invalid token)",
)

MISSING_END_TAG_PATTERNS = [
    (re.compile(UNCLOSED_TAG_LABEL + r":?\s+" + TAG_NAME_PATTERN), UNCLOSED_TAG_LABEL),
    (re.compile(r"[Ee]nd tag\s+for\s+[\"']?([A-Za-z][\w:-]*)[\"']?"), "Missing end tag for"),
    (re.compile(r"[Mm]ust be terminated by.+?</([A-Za-z][\w:-]*)>"), "Tag requires closing"),
    (re.compile(r"[Tt]ag is not closed:?\s+" + TAG_NAME_PATTERN), UNCLOSED_TAG_LABEL),
    (re.compile(r"[Oo]pening and ending tag mismatch:?\s+([A-Za-z][\w:-]*)"), "Mismatched opening/ending tags"),
]

LINE_COLUMN_PATTERNS = [
    re.compile(r"@#\[line:(\d+),col:(\d+)\]"),
    re.compile(r"[Ll]ine\s+(\d+)(?:\s*,\s*|[,:]|\s+at\s+)[Cc]ol(?:umn)?\s*(\d+)"),
    re.compile(r"[Aa]t\s+line\s+(\d+)(?:\s*,\s*|[,:]|\s+)[Cc]ol(?:umn)?\s*(\d+)"),
    re.compile(r"[Ee]rror\s+on\s+line\s+(\d+)(?:\s*at\s+position\s+|\s+pos\s+|:)(\d+)"),
]

TAG_ERROR_PATTERNS = [
    (re.compile(r"\bend tag.+?\b([a-z][\w:-]*)", re.IGNORECASE), "Unmatched end tag"),
    (re.compile(r"\bstart tag.+?\b([a-z][\w:-]*)", re.IGNORECASE), "Problematic start tag"),
    (re.compile(r"\bmissing.+?attribute.+?\b([a-z][\w:-]*)", re.IGNORECASE), "Missing attribute"),
    (re.compile(r"\bcannot contain.+?\b([a-z][\w:-]*)", re.IGNORECASE), "Invalid content"),
]

OPENING_TAG_LINE = re.compile(r"<([A-Za-z][\w:.-]*)(?:\s[^<>]*)?(?<!/)>")


def _mask_cdata(xml_string: str) -> str:
    """Blank out CDATA sections so tags inside payloads are not counted.

    Newlines are kept so offsets and line numbers stay valid.
    """
    def blank(match):
        return re.sub(r"[^\n]", " ", match.group(0))

    return re.sub(r"<!\[CDATA\[.*?(?:\]\]>|\Z)", blank, xml_string, flags=re.DOTALL)


def _window(xml_string: str, position: int, length: int = 0) -> str:
    start = max(0, position - CONTEXT_SIZE)
    end = min(len(xml_string), position + length + CONTEXT_SIZE)
    return xml_string[start:end]


def _line_number(xml_string: str, position: int) -> int:
    return xml_string.count("\n", 0, position) + 1


def render_excerpt(lines: List[str], line_number: int, column: Optional[int] = None,
                   context: int = CONTEXT_LINES) -> List[str]:
    """Render numbered lines around ``line_number`` (1-based).

    The offending line is marked with ``>``; when ``column`` is given a caret
    is placed under that column on the following line.
    """
    rendered = []
    start = max(0, line_number - 1 - context)
    end = min(len(lines), line_number + context)

    for index in range(start, end):
        number = index + 1
        indicator = "> " if number == line_number else "  "
        content = lines[index]
        rendered.append(f"{indicator}{number}: {content}")

        if number == line_number and column is not None:
            indent = len(indicator) + len(str(number)) + 2
            safe_column = max(1, min(column, len(content) + 1))
            rendered.append(" " * (indent + safe_column - 1) + "^")

    return rendered


def _php_instruction_area(xml_string: str, error_message: str) -> Optional[str]:
    if not any(signature in error_message for signature in PHP_INSTRUCTION_SIGNATURES):
        return None

    # PHP already inside a CDATA section is not the culprit
    match = re.search(r"<file_code>[\s\S]*?(<\?php)[\s\S]*?</file_code>", _mask_cdata(xml_string))
    if not match:
        return None

    position = match.start(1)
    return (
        f"PHP processing instruction detected at position {position}:\n...\n"
        f"{_window(xml_string, position)}\n...\n"
        "PHP code needs to be properly wrapped in CDATA sections."
    )


def _unterminated_cdata_area(xml_string: str) -> Optional[str]:
    if CDATA_OPEN in xml_string and CDATA_CLOSE not in xml_string:
        return f"Unclosed CDATA section detected:\n{xml_string[:HEAD_SIZE]}"
    return None


def _unterminated_file_code_area(xml_string: str) -> Optional[str]:
    if "<file_code>" in xml_string and "</file_code>" not in xml_string:
        return f"Unclosed file_code tag detected:\n{xml_string[:HEAD_SIZE]}"
    return None


def _first_unmatched_opening(masked: str, tag_name: str) -> Optional[int]:
    """Offset of the first opening tag that never gets closed."""
    tags = re.compile(rf"<(/?){re.escape(tag_name)}(?=[\s/>])[^>]*?(/?)>")
    stack = []
    for match in tags.finditer(masked):
        closing, self_closing = match.group(1), match.group(2)
        if self_closing:
            continue
        if closing:
            if stack:
                stack.pop()
        else:
            stack.append(match.start())
    return stack[0] if stack else None


def _unclosed_tag_area(xml_string: str, error_message: str) -> Optional[str]:
    masked = _mask_cdata(xml_string)
    lines = xml_string.split("\n")

    for pattern, label in MISSING_END_TAG_PATTERNS:
        match = pattern.search(error_message)
        if not match:
            continue

        tag_name = match.group(1)
        suggestion = UNCLOSED_TAG_SUGGESTION.format(tag=tag_name)
        openings = len(re.findall(rf"<{re.escape(tag_name)}(?=[\s>])[^>]*(?<!/)>", masked))
        closings = len(re.findall(rf"</{re.escape(tag_name)}\s*>", masked))

        position = None
        if openings > closings:
            position = _first_unmatched_opening(masked, tag_name)
        if position is None:
            position = masked.find(f"<{tag_name}")
        if position == -1:
            continue

        line_number = _line_number(xml_string, position)
        excerpt = "\n".join(render_excerpt(lines, line_number))
        return f"{label} '{tag_name}' at line {line_number}:\n{excerpt}\n{suggestion}"

    return None


def _extract_line_column(error_message: str) -> Optional[Tuple[int, int]]:
    for pattern in LINE_COLUMN_PATTERNS:
        match = pattern.search(error_message)
        if match:
            return int(match.group(1)), int(match.group(2))
    return None


def _line_column_area(xml_string: str, error_message: str) -> Optional[str]:
    coordinates = _extract_line_column(error_message)
    if coordinates is None:
        return None

    line_number, column = coordinates
    lines = xml_string.split("\n")
    if line_number > len(lines):
        return f"Line number {line_number} exceeds document length ({len(lines)} lines)"
    line_number = max(1, line_number)

    context = [f"Error at line {line_number}, column {column}:", ""]
    context.extend(render_excerpt(lines, line_number, column))

    opening = OPENING_TAG_LINE.search(lines[line_number - 1])
    if opening and f"</{opening.group(1)}" not in lines[line_number - 1]:
        tag_name = opening.group(1)
        context.append(f"Hint: Did you forget to close <{tag_name}> with </{tag_name}>?")

    return "\n".join(context)


def _tag_error_area(xml_string: str, error_message: str) -> Optional[str]:
    masked = _mask_cdata(xml_string)

    for pattern, label in TAG_ERROR_PATTERNS:
        match = pattern.search(error_message)
        if not match:
            continue

        tag_name = match.group(1)
        occurrence = re.search(rf"<{re.escape(tag_name)}[^>]*>|</{re.escape(tag_name)}>", masked)
        if occurrence:
            window = _window(xml_string, occurrence.start(), len(occurrence.group(0)))
            return f"{label} '{tag_name}':\n...\n{window}\n..."

    return None


def find_problem_area(xml_string: str, error_message: str) -> str:
    """Find the problematic area in the document based on a parser error.

    Args:
        xml_string: The document that failed to parse (after repair)
        error_message: The message reported by the parser

    Returns:
        A human-readable excerpt; never empty
    """
    xml_string = xml_string or ""
    error_message = error_message or ""

    strategies = (
        lambda: _php_instruction_area(xml_string, error_message),
        lambda: _unterminated_cdata_area(xml_string),
        lambda: _unterminated_file_code_area(xml_string),
        lambda: _unclosed_tag_area(xml_string, error_message),
        lambda: _line_column_area(xml_string, error_message),
        lambda: _tag_error_area(xml_string, error_message),
    )
    for strategy in strategies:
        area = strategy()
        if area:
            return area

    preview = xml_string[:PREVIEW_SIZE]
    ellipsis = "..." if len(xml_string) > PREVIEW_SIZE else ""
    logger.debug("No specific problem area found, falling back to document preview")
    return f"Error: {error_message}\n\nXML preview:\n{preview}{ellipsis}"
