"""Tests for CDATA protection of file_code payloads."""

import pytest

from changeset_tools.modules.cdata import wrap_file_code_in_cdata, count_cdata_sections


def test_plain_payload_is_wrapped_verbatim():
    text = '<file_code>  if (a < b && c) {}\n</file_code>'
    assert wrap_file_code_in_cdata(text) == '<file_code><![CDATA[  if (a < b && c) {}\n]]></file_code>'


def test_wrapping_is_idempotent():
    text = '<file><file_code><div className={x}>hi</div></file_code></file>'
    once = wrap_file_code_in_cdata(text)
    assert wrap_file_code_in_cdata(once) == once
    assert count_cdata_sections(once) == 1
    assert '<![CDATA[<![CDATA[' not in once


def test_clean_cdata_with_surrounding_whitespace_is_untouched():
    text = '<file_code>\n  <![CDATA[x]]>\n</file_code>'
    assert wrap_file_code_in_cdata(text) == text


def test_stray_markers_are_removed_and_rewrapped():
    text = '<file_code>abc]]>def</file_code>'
    assert wrap_file_code_in_cdata(text) == '<file_code><![CDATA[abcdef]]></file_code>'


def test_unbalanced_open_marker_is_rewrapped():
    text = '<file_code>x <![CDATA[y</file_code>'
    assert wrap_file_code_in_cdata(text) == '<file_code><![CDATA[x y]]></file_code>'


def test_multiple_blocks_are_wrapped_independently():
    text = ('<file><file_code>one</file_code></file>'
            '<file><file_code><![CDATA[two]]></file_code></file>'
            '<file><file_code>three</file_code></file>')
    assert wrap_file_code_in_cdata(text) == (
        '<file><file_code><![CDATA[one]]></file_code></file>'
        '<file><file_code><![CDATA[two]]></file_code></file>'
        '<file><file_code><![CDATA[three]]></file_code></file>'
    )


def test_document_without_payloads_is_unchanged():
    text = '<changed_files><file><file_path>a</file_path></file></changed_files>'
    assert wrap_file_code_in_cdata(text) == text


def test_none_is_rejected():
    with pytest.raises(TypeError):
        wrap_file_code_in_cdata(None)
