import time

import pytest

from conftest import write_post
from siteserve.blog import BlogEntry, resolve_article, scan_blog, sort_entries
from siteserve.errors import ConfigError, NotFound, ScanTimeout
from siteserve.render import MarkdownRenderer


@pytest.fixture
def renderer():
    return MarkdownRenderer()


def test_only_markdown_files_are_listed(tmp_path, renderer):
    write_post(tmp_path, "a.md", title="A")
    (tmp_path / "b.txt").write_text("not a post", encoding="utf-8")
    (tmp_path / "sub").mkdir()
    write_post(tmp_path / "sub", "nested.md", title="Nested")

    entries = scan_blog(tmp_path, renderer)

    assert entries == [BlogEntry(slug="a", title="A")]


def test_entries_sorted_by_display_date(tmp_path, renderer):
    write_post(tmp_path, "new.md", title="New", date="01/01/2024")
    write_post(tmp_path, "old.md", title="Old", date="01/01/2023")

    entries = scan_blog(tmp_path, renderer)

    assert [e.slug for e in entries] == ["old", "new"]
    assert [e.display_date for e in entries] == ["01 Jan 2023", "01 Jan 2024"]


def test_undated_entries_sort_first(tmp_path, renderer):
    write_post(tmp_path, "dated.md", title="Dated", date="01/01/2023")
    write_post(tmp_path, "undated.md", title="Undated")

    entries = scan_blog(tmp_path, renderer)

    assert [e.slug for e in entries] == ["undated", "dated"]
    assert entries[0].display_date == ""


def test_display_sort_is_lexical_and_chronological_is_not(tmp_path, renderer):
    write_post(tmp_path, "march.md", date="05/03/2023")
    write_post(tmp_path, "january.md", date="01/01/2024")

    lexical = scan_blog(tmp_path, renderer)
    chronological = scan_blog(tmp_path, renderer, sort="chronological")

    assert [e.slug for e in lexical] == ["january", "march"]
    assert [e.slug for e in chronological] == ["march", "january"]


def test_bad_date_skips_only_that_post(tmp_path, renderer, caplog):
    write_post(tmp_path, "good.md", title="Good", date="01/01/2023")
    write_post(tmp_path, "bad.md", title="Bad", date="2023-01-01")

    entries = scan_blog(tmp_path, renderer)

    assert [e.slug for e in entries] == ["good"]
    assert "bad.md" in caplog.text


def test_missing_directory_is_config_error(tmp_path, renderer):
    with pytest.raises(ConfigError):
        scan_blog(tmp_path / "missing", renderer)


def test_worker_pool_matches_serial_scan(tmp_path, renderer):
    for day in range(1, 10):
        write_post(tmp_path, f"post{day}.md", title=f"Post {day}", date=f"0{day}/02/2022")

    assert scan_blog(tmp_path, renderer, workers=4) == scan_blog(tmp_path, renderer)


@pytest.mark.parametrize("workers", [1, 3])
def test_expired_deadline_aborts_scan(tmp_path, renderer, workers):
    write_post(tmp_path, "a.md", title="A")
    write_post(tmp_path, "b.md", title="B")

    with pytest.raises(ScanTimeout):
        scan_blog(tmp_path, renderer, workers=workers, deadline=time.monotonic() - 1)


def test_empty_directory(tmp_path, renderer):
    assert scan_blog(tmp_path, renderer) == []


def test_unknown_sort_mode():
    with pytest.raises(ConfigError):
        sort_entries([], "random")


class TestResolveArticle:
    def test_existing_article(self, tmp_path):
        path = write_post(tmp_path, "hello.md", title="Hello")
        assert resolve_article(tmp_path, "hello") == path.resolve()

    @pytest.mark.parametrize("slug", ["missing-slug", "", "../secret", "sub/../../secret"])
    def test_unresolvable_slugs(self, tmp_path, slug):
        (tmp_path.parent / "secret.md").write_text("x", encoding="utf-8")
        with pytest.raises(NotFound):
            resolve_article(tmp_path, slug)
