"""Repair rules for LLM-authored change-set XML.

The documents this tool receives are XML in name only: ``file_code`` payloads
are arbitrary source code and the surrounding markup is written by a model.
Each rule below fixes one known way such documents fail to parse. The rules
run in a fixed order and never touch code payloads beyond what the rule is
about, so a document that is already well-formed comes out unchanged.
"""

import re
import logging
from enum import Enum
from typing import Callable, List, Tuple

from changeset_tools.modules.cdata import CDATA_OPEN, CDATA_CLOSE

# Configure logging
logger = logging.getLogger(__name__)


class RepairRule(Enum):
    """The known failure modes the repair engine fixes."""

    UNQUOTED_ATTR = "UnquotedAttr"
    RAW_COMMENT = "RawComment"
    PHP_TAG = "PhpTag"
    UNTERMINATED_CDATA = "UnterminatedCdata"
    ORPHANED_CDATA = "OrphanedCdata"


# Order matters: the CDATA rules must see the payloads the PHP rule produced.
REPAIR_RULES = (
    RepairRule.UNQUOTED_ATTR,
    RepairRule.RAW_COMMENT,
    RepairRule.PHP_TAG,
    RepairRule.UNTERMINATED_CDATA,
    RepairRule.ORPHANED_CDATA,
)

# A file_code block that does not swallow the next file_code opening tag
FILE_CODE_BLOCK = re.compile(r'<file_code>((?:(?!<file_code>).)*?)</file_code>', re.DOTALL)

# Payloads, CDATA sections, XML comments and plain leaf element text are off
# limits for the markup rules. A payload whose closing tag is missing ends at
# the next </file>.
PROTECTED_REGION = re.compile(
    r'<file_code>(?:(?!<file_code>).)*?(?:</file_code>|(?=</file>)|\Z)'
    r'|<!\[CDATA\[.*?(?:\]\]>|\Z)'
    r'|<!--.*?-->'
    r'|<(file_summary|file_path|file_operation)>[^<]*</\1>',
    re.DOTALL
)

START_TAG = re.compile(
    r'<[A-Za-z][\w:.-]*'
    r'(?:\s+[^\s<>{}="\'/]+(?:\s*=\s*(?:"[^"]*"|\'[^\']*\'|\{[^{}]*\}|[^\s<>{}"\']+))?)*'
    r'\s*/?>'
)
BRACED_ATTRIBUTE = re.compile(r'(\s[A-Za-z_][\w:.-]*)\s*=\s*\{([^{}]*)\}')
RAW_COMMENT = re.compile(r'(\w+)[ \t]+//([^<\n]*)')
PHP_OPENING = re.compile(r'(\s*)<\?php')


def _map_unprotected(text: str, transform: Callable[[str], str]) -> str:
    """Apply ``transform`` to every stretch of text outside payloads and CDATA."""
    parts = []
    position = 0
    for match in PROTECTED_REGION.finditer(text):
        parts.append(transform(text[position:match.start()]))
        parts.append(match.group(0))
        position = match.end()
    parts.append(transform(text[position:]))
    return ''.join(parts)


def _escape_attribute(value: str) -> str:
    return value.replace('&', '&amp;').replace('<', '&lt;').replace('"', '&quot;')


def _quote_braced_attributes(segment: str) -> str:
    def fix_tag(tag_match):
        return BRACED_ATTRIBUTE.sub(
            lambda m: f'{m.group(1)}="{{{_escape_attribute(m.group(2))}}}"',
            tag_match.group(0)
        )

    return START_TAG.sub(fix_tag, segment)


def _comment_out_raw_comments(segment: str) -> str:
    def to_xml_comment(match):
        # "--" is not allowed inside an XML comment
        rest = match.group(2).replace('--', '- -').rstrip()
        if rest.endswith('-'):
            rest += ' '
        return f'{match.group(1)} <!-- //{rest} -->'

    return RAW_COMMENT.sub(to_xml_comment, segment)


def _protect_php_openings(text: str) -> str:
    def fix_block(match):
        content = match.group(1)
        if content.lstrip().startswith(CDATA_OPEN):
            return match.group(0)
        php = PHP_OPENING.match(content)
        if not php or php.group(1).endswith(' '):
            return match.group(0)
        logger.debug("Protecting <?php opening in file_code payload")
        content = content[:php.end(1)] + ' ' + content[php.end(1):]
        return f'<file_code>{content}</file_code>'

    return FILE_CODE_BLOCK.sub(fix_block, text)


def _close_unterminated_cdata(text: str) -> str:
    def fix_block(match):
        content = match.group(1)
        last_open = content.rfind(CDATA_OPEN)
        if last_open == -1 or CDATA_CLOSE in content[last_open:]:
            return match.group(0)
        logger.debug("Closing unterminated CDATA section before </file_code>")
        return f'<file_code>{content}{CDATA_CLOSE}</file_code>'

    return FILE_CODE_BLOCK.sub(fix_block, text)


def _close_orphaned_cdata(text: str) -> str:
    opening = re.compile(r'<file_code>\s*<!\[CDATA\[')
    parts = []
    position = 0

    for match in opening.finditer(text):
        if match.start() < position:
            continue
        body_start = match.end()
        close_tag = text.find('</file_code>', body_start)
        file_end = text.find('</file>', body_start)
        next_code = text.find('<file_code>', body_start)

        # Where this payload must end at the latest
        limits = [i for i in (file_end, next_code) if i != -1]
        limit = min(limits) if limits else len(text)
        if close_tag != -1 and close_tag < limit:
            continue

        logger.debug("Repairing orphaned CDATA section in <file_code>")
        segment = text[body_start:limit]
        content = segment.rstrip()
        # Whitespace between the payload and </file> belongs to the markup
        trailing = segment[len(content):]
        if content.endswith(CDATA_CLOSE):
            content = content[:-len(CDATA_CLOSE)]
        parts.append(text[position:match.start()])
        parts.append(f'<file_code>{CDATA_OPEN}{content}{CDATA_CLOSE}</file_code>{trailing}')
        position = limit

    parts.append(text[position:])
    return ''.join(parts)


_RULE_FUNCTIONS = {
    RepairRule.UNQUOTED_ATTR: lambda text: _map_unprotected(text, _quote_braced_attributes),
    RepairRule.RAW_COMMENT: lambda text: _map_unprotected(text, _comment_out_raw_comments),
    RepairRule.PHP_TAG: _protect_php_openings,
    RepairRule.UNTERMINATED_CDATA: _close_unterminated_cdata,
    RepairRule.ORPHANED_CDATA: _close_orphaned_cdata,
}


def apply_rule(rule: RepairRule, text: str) -> str:
    """Apply a single repair rule to ``text``.

    Args:
        rule: The rule to apply
        text: The document text

    Returns:
        The rewritten text, or ``text`` itself when the rule does not match
    """
    if text is None:
        raise TypeError("Cannot repair a None document")
    return _RULE_FUNCTIONS[rule](text)


def preprocess_xml(xml_string: str) -> str:
    """Run every repair rule over the document, in order.

    Never raises for string input, including the empty string. The result is
    not guaranteed to parse; callers still have to report parse failures.

    Args:
        xml_string: The raw document text

    Returns:
        The repaired document text

    Raises:
        TypeError: If ``xml_string`` is None
    """
    if xml_string is None:
        raise TypeError("Cannot preprocess a None document")

    processed = xml_string
    for rule in REPAIR_RULES:
        repaired = apply_rule(rule, processed)
        if repaired != processed:
            logger.debug(f"Repair rule {rule.value} rewrote the document")
        processed = repaired
    return processed


def applied_rules(xml_string: str) -> List[Tuple[RepairRule, bool]]:
    """Report which rules would change the document, in rule order."""
    results = []
    processed = xml_string
    for rule in REPAIR_RULES:
        repaired = apply_rule(rule, processed)
        results.append((rule, repaired != processed))
        processed = repaired
    return results
