import pytest

from src.domain.sanitize import (
    PostHtmlConfig,
    absint,
    coerce_id_list,
    sanitize_post_html,
    sanitize_text_field,
    sanitize_textarea_field,
    strip_tags,
)


class TestPlainText:
    def test_strip_tags_drops_script_content(self):
        assert strip_tags("a<script>alert(1)</script>b") == "ab"

    def test_text_field_collapses_whitespace(self):
        assert sanitize_text_field("  Corner \n\t <b>Cafe</b>  ") == "Corner Cafe"

    def test_text_field_none(self):
        assert sanitize_text_field(None) == ""

    def test_text_field_coerces(self):
        assert sanitize_text_field(42) == "42"

    def test_textarea_keeps_lines(self):
        assert sanitize_textarea_field("one  two\r\n<i>three</i>\n") == "one two\nthree"


class TestPostHtml:
    def test_allowed_tags_kept(self):
        assert sanitize_post_html("<p>Hi <strong>there</strong></p>") == "<p>Hi <strong>there</strong></p>"

    def test_disallowed_tag_dropped_text_kept(self):
        assert sanitize_post_html("<div>Hello</div>") == "Hello"

    def test_script_removed_with_content(self):
        assert sanitize_post_html("<p>x</p><script>steal()</script>") == "<p>x</p>"

    def test_event_attributes_removed(self):
        assert sanitize_post_html('<p onclick="bad()">x</p>') == "<p>x</p>"

    def test_link_gets_rel(self):
        result = sanitize_post_html('<a href="https://example.com" target="_blank">x</a>')
        assert result == '<a href="https://example.com" rel="nofollow ugc">x</a>'

    @pytest.mark.parametrize(
        "href", ["javascript:alert(1)", "JavaScript:alert(1)", "java script:alert(1)", "data:text/html,x"]
    )
    def test_dangerous_href_removed(self, href):
        assert sanitize_post_html(f'<a href="{href}">x</a>') == "<a>x</a>"

    def test_attribute_values_escaped(self):
        result = sanitize_post_html("<a href='/x?a=1&b=2' title='\"hi\"'>x</a>")
        assert 'href="/x?a=1&amp;b=2"' in result
        assert 'title="&quot;hi&quot;"' in result

    def test_custom_config(self):
        config = PostHtmlConfig(allow_tags=frozenset(["em"]))
        assert sanitize_post_html("<p><em>x</em></p>", config) == "<em>x</em>"


class TestIds:
    @pytest.mark.parametrize(
        "raw,expected",
        [(5, 5), (-5, 5), ("7", 7), (" 8 ", 8), ("abc", 0), (None, 0), (True, 1), ("1.5", 0)],
    )
    def test_absint(self, raw, expected):
        assert absint(raw) == expected

    def test_coerce_id_list(self):
        assert coerce_id_list(["3", 3, "x", 0, "-4", 7]) == [3, 4, 7]

    def test_coerce_id_list_rejects_scalars(self):
        assert coerce_id_list("12") == []
        assert coerce_id_list(None) == []
