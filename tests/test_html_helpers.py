"""
Tests for HTML extraction, fencing and title helpers.
"""

import json

from sitegen.utils.html_helpers import (
    extract_html,
    wrap_in_fenced_block,
    generate_title,
    prompt_text,
    slugify_site_name,
    download_filename,
    safe_json_parse,
    DEFAULT_TITLE,
)


class TestExtractHtml:
    """Tests for pulling raw HTML out of model output."""

    def test_html_fence_preferred(self):
        text = "Here you go:\n```css\nbody {}\n```\n```html\n<html></html>\n```\nEnjoy"
        assert extract_html(text) == "<html></html>"

    def test_generic_fence(self):
        assert extract_html("```\n<p>Hi</p>\n```") == "<p>Hi</p>"

    def test_no_fence_returns_whole_string(self):
        assert extract_html("  <html><body>x</body></html>\n") == "<html><body>x</body></html>"

    def test_inline_fence_without_newline(self):
        assert extract_html("```html<div>inline</div>```") == "<div>inline</div>"

    def test_empty_input(self):
        assert extract_html("") == ""
        assert extract_html(None) == ""

    def test_multiline_document_kept_verbatim(self):
        html = "<html>\n  <body>\n    <h1>Title</h1>\n  </body>\n</html>"
        assert extract_html(f"```html\n{html}\n```") == html


class TestWrapInFencedBlock:
    """Tests for the fence wrapper used in edit prompts."""

    def test_uses_three_backticks_by_default(self):
        assert wrap_in_fenced_block("<p>x</p>") == "```html\n<p>x</p>\n```"

    def test_fence_longer_than_content_backticks(self):
        html = "<pre>\n```\ncode\n```\n</pre>"
        wrapped = wrap_in_fenced_block(html)

        assert wrapped.startswith("````html\n")
        assert extract_html(wrapped) == html

    def test_extract_reverses_wrap_for_awkward_content(self):
        samples = [
            "",
            "<html></html>",
            "<script>const s = `${a}`;</script>",
            "<pre>`````</pre>\n```html\n<b>nested</b>\n```",
            "  leading and trailing spaces  ",
            "<p>ends with newline</p>\n",
        ]
        for html in samples:
            assert extract_html(wrap_in_fenced_block(html)) == html


class TestGenerateTitle:
    """Tests for conversation titles."""

    def test_first_six_words(self):
        title = generate_title("Build me a website for my bakery in Paris please")
        assert title == "Build me a website for my"

    def test_punctuation_stripped(self):
        assert generate_title("Hello, world! It's *great*.") == "Hello world Its great"

    def test_empty_prompt_falls_back(self):
        assert generate_title("") == DEFAULT_TITLE
        assert generate_title("!!! ???") == DEFAULT_TITLE

    def test_message_array_uses_first_user_message(self):
        prompt = json.dumps([
            {"role": "system", "content": "ignored"},
            {"role": "user", "parts": [{"type": "text", "text": "Portfolio site"}, {"type": "text", "text": "for a photographer"}]},
            {"role": "user", "content": "second message"},
        ])
        assert generate_title(prompt) == "Portfolio site for a photographer"

    def test_message_array_without_user_falls_back(self):
        prompt = json.dumps([{"role": "assistant", "content": "Hi"}])
        assert generate_title(prompt) == DEFAULT_TITLE

    def test_deterministic(self):
        assert generate_title("Same prompt twice") == generate_title("Same prompt twice")


class TestSmallHelpers:
    """Tests for prompt parsing, slugs and filenames."""

    def test_prompt_text_plain(self):
        assert prompt_text("just text") == "just text"

    def test_prompt_text_json_non_list(self):
        assert prompt_text('{"role": "user"}') == '{"role": "user"}'

    def test_safe_json_parse_default(self):
        assert safe_json_parse("not json", default=[]) == []

    def test_slugify_site_name(self):
        assert slugify_site_name("My Bakery!! Site") == "my-bakery-site"
        assert slugify_site_name("---") == ""
        assert len(slugify_site_name("a" * 100)) == 63

    def test_download_filename(self):
        assert download_filename("abc") == "website-abc.html"
