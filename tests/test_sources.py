"""Tests for content sources."""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest
import requests

from covergen.observability.py_reporter import create_run_reporter
from covergen.synthesis.config import SourceConfig
from covergen.synthesis.sources import (
    ContentSourceError,
    DirectorySource,
    FileSource,
    WordPressSource,
    create_source,
    title_from_stem,
)


def test_title_from_stem():
    assert title_from_stem("my-first_post") == "my first post"


class TestFileSource:
    def test_reads_by_suffix(self, tmp_path):
        path = tmp_path / "release-notes.html"
        path.write_text("<p>One</p><p>Two</p>", encoding="utf-8")
        source = FileSource(path)
        source.validate()
        [item] = source.all()
        assert item.id == "release-notes"
        assert item.title == "release notes"
        assert item.content == "One\n\nTwo"
        assert item.path == str(path)
        assert source.count() == 1

    def test_get_checks_id(self, tmp_path):
        path = tmp_path / "post.txt"
        path.write_text("body", encoding="utf-8")
        source = FileSource(path)
        assert source.get("post").content == "body"
        with pytest.raises(ContentSourceError):
            source.get("other")

    def test_missing_file(self, tmp_path):
        source = FileSource(tmp_path / "nope.txt")
        with pytest.raises(ContentSourceError):
            source.validate()
        with pytest.raises(ContentSourceError):
            source.all()


class TestDirectorySource:
    @pytest.fixture
    def content_dir(self, tmp_path):
        (tmp_path / "b-post.md").write_text("# B\n\nbody b", encoding="utf-8")
        (tmp_path / "a-post.txt").write_text("body a", encoding="utf-8")
        (tmp_path / "image.png").write_bytes(b"\x89PNG")
        nested = tmp_path / "drafts"
        nested.mkdir()
        (nested / "c-post.txt").write_text("body c", encoding="utf-8")
        return tmp_path

    def test_sorted_and_filtered(self, content_dir):
        source = DirectorySource(content_dir)
        source.validate()
        assert [item.id for item in source.all()] == ["a-post", "b-post"]
        assert source.count() == 2
        assert source.get("b-post").content == "B\n\nbody b"

    def test_recursive(self, content_dir):
        source = DirectorySource(content_dir, recursive=True)
        assert sorted(item.id for item in source.all()) == ["a-post", "b-post", "c-post"]

    def test_extension_filter(self, content_dir):
        source = DirectorySource(content_dir, extensions=[".MD"])
        assert [item.id for item in source.all()] == ["b-post"]

    def test_missing_id(self, content_dir):
        with pytest.raises(ContentSourceError):
            DirectorySource(content_dir).get("zzz")

    def test_unreadable_file_is_skipped_with_warning(self, content_dir, tmp_path_factory):
        (content_dir / "broken.txt").write_bytes(b"\xff\xfe\xfa")
        reporter = create_run_reporter("test", run_id="dir", output_dir=tmp_path_factory.mktemp("logs"), enable_console=False)
        source = DirectorySource(content_dir, reporter=reporter)
        assert [item.id for item in source.all()] == ["a-post", "b-post"]
        assert reporter.status == "warn"

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(ContentSourceError):
            DirectorySource(tmp_path / "missing").validate()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, headers: Optional[Dict[str, str]] = None) -> None:
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = "OK" if self.ok else "Error"
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, responses: List[FakeResponse]) -> None:
        self.responses = list(responses)
        self.calls: List[tuple] = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        return self.responses.pop(0)


def post(post_id: int, title: str = "Hello &amp; bye", content: str = "<p>Para one</p><p>Para two</p>") -> dict:
    return {
        "id": post_id,
        "slug": f"post-{post_id}",
        "date": "2024-01-01T00:00:00",
        "title": {"rendered": title},
        "content": {"rendered": content},
    }


class TestWordPressSource:
    def test_pages_until_empty(self):
        session = FakeSession([FakeResponse(payload=[post(1), post(2)]), FakeResponse(payload=[post(3)]), FakeResponse(payload=[])])
        source = WordPressSource("https://blog.example/", per_page=2, session=session)
        items = source.all()
        assert [item.id for item in items] == ["1", "2", "3"]
        assert items[0].title == "Hello & bye"
        assert items[0].content == "Para one\n\nPara two"
        assert items[0].slug == "post-1"
        url, params, timeout = session.calls[0]
        assert url == "https://blog.example/wp-json/wp/v2/posts"
        assert params == {"per_page": 2, "page": 1}
        assert timeout == 30
        assert session.calls[2][1]["page"] == 3

    def test_stops_at_total_pages(self):
        session = FakeSession([FakeResponse(payload=[post(1)], headers={"X-WP-TotalPages": "1"})])
        source = WordPressSource("https://blog.example", session=session)
        assert source.count() == 1
        assert len(session.calls) == 1

    def test_400_past_first_page_ends_paging(self):
        session = FakeSession([FakeResponse(payload=[post(1)]), FakeResponse(status_code=400)])
        assert len(WordPressSource("https://blog.example", session=session).all()) == 1

    def test_http_error(self):
        session = FakeSession([FakeResponse(status_code=500)])
        with pytest.raises(ContentSourceError):
            WordPressSource("https://blog.example", session=session).all()

    def test_get_single_post(self):
        session = FakeSession([FakeResponse(payload=post(42))])
        item = WordPressSource("https://blog.example", session=session).get("42")
        assert item.id == "42"
        assert session.calls[0][0] == "https://blog.example/wp-json/wp/v2/posts/42"

    def test_html_instead_of_json(self):
        page = requests.exceptions.JSONDecodeError("Expecting value", "<html>not json</html>", 0)
        session = FakeSession([FakeResponse(payload=page)])
        with pytest.raises(ContentSourceError):
            WordPressSource("https://blog.example", session=session).all()

    def test_get_html_instead_of_json(self):
        page = requests.exceptions.JSONDecodeError("Expecting value", "<html>login</html>", 0)
        session = FakeSession([FakeResponse(payload=page)])
        with pytest.raises(ContentSourceError):
            WordPressSource("https://blog.example", session=session).get("3")

    def test_get_missing_post(self):
        session = FakeSession([FakeResponse(status_code=404)])
        with pytest.raises(ContentSourceError):
            WordPressSource("https://blog.example", session=session).get("7")

    def test_connection_failure(self):
        class Broken:
            def get(self, url, params=None, timeout=None):
                raise requests.ConnectionError("refused")

        with pytest.raises(ContentSourceError):
            WordPressSource("https://blog.example", session=Broken()).validate()

    def test_validate(self):
        session = FakeSession([FakeResponse(payload=[post(1)])])
        WordPressSource("https://blog.example", session=session).validate()
        assert session.calls[0][1] == {"per_page": 1}


class TestCreateSource:
    def test_kind_from_argument(self, tmp_path):
        source = create_source("directory", SourceConfig(), path=str(tmp_path))
        assert isinstance(source, DirectorySource)

    def test_kind_from_config(self, tmp_path):
        config = SourceConfig(type="file", path=str(tmp_path / "x.txt"))
        assert isinstance(create_source(None, config), FileSource)

    def test_wordpress_uses_batch_size(self):
        source = create_source("wordpress", SourceConfig(posts_per_batch=10), url="https://blog.example")
        assert isinstance(source, WordPressSource)
        assert source.per_page == 10

    @pytest.mark.parametrize("kind", ["file", "directory", "wordpress"])
    def test_missing_location(self, kind):
        with pytest.raises(ContentSourceError):
            create_source(kind, SourceConfig())

    def test_unknown_kind(self):
        with pytest.raises(ContentSourceError):
            create_source("ftp", SourceConfig(), path="x")
