"""CDATA protection for file_code payloads."""

import re
import logging

# Configure logging
logger = logging.getLogger(__name__)

CDATA_OPEN = '<![CDATA['
CDATA_CLOSE = ']]>'

FILE_CODE_PATTERN = re.compile(r'<file_code>(.*?)</file_code>', re.DOTALL)


def count_cdata_sections(xml_string: str) -> int:
    """Count CDATA opening markers in the document."""
    return xml_string.count(CDATA_OPEN)


def wrap_file_code_in_cdata(xml_string: str) -> str:
    """Make sure every ``<file_code>`` payload sits in a CDATA section.

    Each block is handled on its own:

    - content that already starts with ``<![CDATA[`` and ends with ``]]>``
      (ignoring surrounding whitespace) is left as it is;
    - content with stray CDATA markers has them removed and is wrapped again;
    - anything else is wrapped verbatim.

    Args:
        xml_string: The document text, usually already repaired

    Returns:
        The document with every file_code payload CDATA-protected

    Raises:
        TypeError: If ``xml_string`` is None
    """
    if xml_string is None:
        raise TypeError("Cannot wrap a None document")

    logger.debug(f"Original XML contains {count_cdata_sections(xml_string)} CDATA sections")
    wrapped_count = 0

    def wrap_block(match):
        nonlocal wrapped_count
        content = match.group(1)
        stripped = content.strip()

        if stripped.startswith(CDATA_OPEN) and stripped.endswith(CDATA_CLOSE):
            return match.group(0)

        if CDATA_OPEN in content or CDATA_CLOSE in content:
            logger.debug("Found malformed CDATA section, removing markers and re-wrapping")
            content = content.replace(CDATA_OPEN, '').replace(CDATA_CLOSE, '')

        wrapped_count += 1
        logger.debug(f"Wrapping file_code #{wrapped_count} in CDATA, excerpt: {content[:100]!r}")
        return f'<file_code>{CDATA_OPEN}{content}{CDATA_CLOSE}</file_code>'

    processed = FILE_CODE_PATTERN.sub(wrap_block, xml_string)

    logger.debug(
        f"Found {count_cdata_sections(processed)} CDATA sections after processing "
        f"(wrapped {wrapped_count} new sections)"
    )
    if wrapped_count and len(processed) < len(xml_string):
        logger.warning("Processed XML is shorter than the input after adding CDATA sections")

    return processed
