"""
Unit tests for the error page and directory listing renderers.
"""

from buildserve.templates import render_directory_listing, render_error_page


class TestErrorPage:
    """Tests for render_error_page."""

    def test_contains_stack(self):
        """The stack text is shown."""
        html = render_error_page({"stack": "TypeError: x is undefined", "payload": None})

        assert "TypeError: x is undefined" in html
        assert "<title>Build Error</title>" in html

    def test_stack_is_escaped(self):
        """Compiler output can't inject markup."""
        html = render_error_page({"stack": "<script>alert(1)</script>"})

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html

    def test_payload_rendered_as_json(self):
        """A JSON-able payload is pretty-printed."""
        html = render_error_page({"stack": "", "payload": {"line": 3, "file": "a.ts"}})

        assert "Details" in html
        assert "&quot;file&quot;: &quot;a.ts&quot;" in html

    def test_unserializable_payload_uses_repr(self):
        """Payloads json can't encode are shown with repr()."""
        html = render_error_page({"stack": "", "payload": {1, 2}})

        assert "{1, 2}" in html

    def test_no_payload_section_without_payload(self):
        """No details heading when there is nothing to show."""
        assert "Details" not in render_error_page({"stack": "boom", "payload": None})

    def test_live_reload_script(self):
        """The live-reload script is injected only when configured."""
        with_script = render_error_page({"stack": "", "live_reload_path": "/livereload.js"})
        without = render_error_page({"stack": "", "live_reload_path": None})

        assert '<script src="/livereload.js"></script>' in with_script
        assert "<script" not in without


class TestDirectoryListing:
    """Tests for render_directory_listing."""

    def test_entries_in_given_order(self):
        """Entries are rendered in the order supplied."""
        html = render_directory_listing({
            "url": "/docs/",
            "files": [{"href": "a/", "type": "dir"}, {"href": "b.txt", "type": "txt"}],
        })

        assert "Index of /docs/" in html
        assert html.index('href="a/"') < html.index('href="b.txt"')

    def test_names_are_quoted_and_escaped(self):
        """Odd file names become safe links."""
        html = render_directory_listing({
            "url": "/",
            "files": [{"href": 'my "file".txt', "type": "txt"}],
        })

        assert 'href="my%20%22file%22.txt"' in html
        assert "my &quot;file&quot;.txt</a>" in html

    def test_url_is_escaped(self):
        """The request URL is escaped in the heading."""
        html = render_directory_listing({"url": "/<b>/", "files": []})

        assert "Index of /&lt;b&gt;/" in html

    def test_live_reload_script(self):
        """The live-reload script is added when configured."""
        html = render_directory_listing({"url": "/", "files": [], "live_reload_path": "/lr.js"})

        assert '<script src="/lr.js"></script>' in html

    def test_undecodable_name(self):
        """Surrogate-escaped names link to the original bytes."""
        html = render_directory_listing({
            "url": "/",
            "files": [{"href": "bad\udcff.txt", "type": "txt"}],
        })

        assert 'href="bad%FF.txt"' in html
        assert "bad\ufffd.txt</a>" in html
        assert html.encode("utf-8")
