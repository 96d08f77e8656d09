import pytest

from siteserve.blog import BlogEntry
from siteserve.errors import ConfigError
from siteserve.pages import PageContext, TemplateSet, assemble_page, build_blog_list


@pytest.fixture
def templates():
    return TemplateSet(
        {
            "page.html": "<title>{{title}}</title>{{markdown}}<i>{{uptime}}</i><b>{{cmd}}</b>",
            "blog.html": "{{blog_entries}}",
        }
    )


def test_markdown_is_trusted_and_title_escaped(templates):
    context = PageContext(uptime=42, cmd="./site<1>", html="<p>Hi <em>there</em></p>", title="A & B")
    page = assemble_page(templates, "page.html", context)
    assert page == "<title>A &amp; B</title><p>Hi <em>there</em></p><i>42</i><b>./site&lt;1&gt;</b>"


def test_absent_fields_render_empty(templates):
    page = assemble_page(templates, "page.html", PageContext(uptime=0, cmd="x"))
    assert page == "<title></title><i>0</i><b>x</b>"


def test_blog_entries_keep_order(templates):
    entries = [
        BlogEntry(slug="old", title="Old", display_date="01 Jan 2023"),
        BlogEntry(slug="new", title="New", display_date="01 Jan 2024"),
    ]
    page = assemble_page(templates, "blog.html", PageContext(uptime=0, cmd="x"), blog_entries=entries)
    assert page.index('href="/blog/old"') < page.index('href="/blog/new"')
    assert "01 Jan 2023" in page


def test_blog_list_falls_back_to_slug():
    html = build_blog_list([BlogEntry(slug="untitled")])
    assert '<a href="/blog/untitled">untitled</a>' in html


def test_empty_blog_list():
    assert "No posts yet." in build_blog_list([])


def test_unknown_template(templates):
    with pytest.raises(ConfigError):
        assemble_page(templates, "missing.html", PageContext(uptime=0, cmd="x"))


class TestTemplateSetLoad:
    def test_loads_html_files(self, tmp_path):
        (tmp_path / "index.html").write_text("hi", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("skip", encoding="utf-8")
        templates = TemplateSet.load(tmp_path, required=["index.html"])
        assert templates.names() == ["index.html"]
        assert "index.html" in templates

    def test_missing_required_template(self, tmp_path):
        (tmp_path / "index.html").write_text("hi", encoding="utf-8")
        with pytest.raises(ConfigError, match="blog.html"):
            TemplateSet.load(tmp_path, required=["index.html", "blog.html"])

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigError):
            TemplateSet.load(tmp_path / "nope")


def test_placeholders_in_values_stay_literal(templates):
    context = PageContext(uptime=0, cmd="x", html="<p>BODY</p>", title="About {{markdown}}")
    page = assemble_page(templates, "page.html", context)
    assert page == "<title>About {{markdown}}</title><p>BODY</p><i>0</i><b>x</b>"


def test_markdown_mentioning_blog_entries_is_verbatim():
    templates = TemplateSet({"article.html": "<article>{{markdown}}</article>{{blog_entries}}"})
    context = PageContext(uptime=0, cmd="x", html="<p>Use {{blog_entries}} here</p>")
    page = assemble_page(templates, "article.html", context)
    assert page == "<article><p>Use {{blog_entries}} here</p></article>"
