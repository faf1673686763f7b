from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import requests

from covergen.observability.py_reporter import RunReporter
from covergen.synthesis.config import SourceConfig
from covergen.synthesis.text import strip_html, to_plain_text

REQUEST_TIMEOUT_S = 30


class ContentSourceError(Exception):
    pass


@dataclass(frozen=True)
class ContentItem:
    id: str
    title: str
    content: str
    path: Optional[str] = None
    slug: Optional[str] = None
    date: Optional[str] = None


def title_from_stem(stem: str) -> str:
    return stem.replace("-", " ").replace("_", " ")


def read_item(path: Path) -> ContentItem:
    raw = path.read_text(encoding="utf-8")
    return ContentItem(
        id=path.stem,
        title=title_from_stem(path.stem),
        content=to_plain_text(raw, path.suffix),
        path=str(path),
    )


class ContentSource(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def all(self) -> List[ContentItem]: ...

    @abstractmethod
    def get(self, item_id: str) -> ContentItem: ...

    @abstractmethod
    def validate(self) -> None: ...

    def count(self) -> int:
        return len(self.all())


class FileSource(ContentSource):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._item: Optional[ContentItem] = None

    @property
    def name(self) -> str:
        return f"FileSource({self.path.name})"

    def _read(self) -> ContentItem:
        if self._item is None:
            try:
                self._item = read_item(self.path)
            except (OSError, UnicodeDecodeError) as e:
                raise ContentSourceError(f"Cannot read {self.path}: {e}") from e
        return self._item

    def all(self) -> List[ContentItem]:
        return [self._read()]

    def get(self, item_id: str) -> ContentItem:
        item = self._read()
        if item.id != item_id:
            raise ContentSourceError(f"File ID {item.id} does not match requested ID {item_id}")
        return item

    def count(self) -> int:
        return 1

    def validate(self) -> None:
        if not self.path.is_file():
            raise ContentSourceError(f"File not accessible: {self.path}")


class DirectorySource(ContentSource):
    def __init__(
        self,
        path: Path,
        extensions: Sequence[str] = (".txt", ".html", ".md"),
        recursive: bool = False,
        reporter: Optional[RunReporter] = None,
    ) -> None:
        self.path = Path(path)
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.recursive = recursive
        self.reporter = reporter
        self._files: Optional[List[Path]] = None

    @property
    def name(self) -> str:
        return f"DirectorySource({self.path})"

    def files(self) -> List[Path]:
        if self._files is None:
            pattern = "**/*" if self.recursive else "*"
            self._files = sorted(
                p for p in self.path.glob(pattern) if p.is_file() and p.suffix.lower() in self.extensions
            )
        return self._files

    def all(self) -> List[ContentItem]:
        items = []
        for path in self.files():
            try:
                items.append(read_item(path))
            except (OSError, UnicodeDecodeError) as e:
                if self.reporter is not None:
                    self.reporter.warning(f"Failed to read file {path}: {e}", attrs={"path": str(path)})
        return items

    def get(self, item_id: str) -> ContentItem:
        for path in self.files():
            if path.stem == item_id:
                try:
                    return read_item(path)
                except (OSError, UnicodeDecodeError) as e:
                    raise ContentSourceError(f"Cannot read {path}: {e}") from e
        raise ContentSourceError(f"File with ID {item_id} not found in {self.path}")

    def count(self) -> int:
        return len(self.files())

    def validate(self) -> None:
        if not self.path.is_dir():
            raise ContentSourceError(f"Directory not accessible: {self.path}")


class WordPressSource(ContentSource):
    """Posts from a WordPress site's REST API."""

    def __init__(self, site_url: str, per_page: int = 100, session: Optional[requests.Session] = None) -> None:
        self.site_url = site_url.rstrip("/")
        self.per_page = per_page
        self.session = session or requests.Session()
        self._posts: Optional[List[dict]] = None

    @property
    def name(self) -> str:
        return f"WordPressSource({self.site_url})"

    @property
    def posts_url(self) -> str:
        return f"{self.site_url}/wp-json/wp/v2/posts"

    def _get(self, url: str, params: Optional[Dict[str, int]] = None) -> requests.Response:
        try:
            return self.session.get(url, params=params, timeout=REQUEST_TIMEOUT_S)
        except requests.RequestException as e:
            raise ContentSourceError(f"Request to {url} failed: {e}") from e

    @staticmethod
    def _json(r: requests.Response, url: str):
        try:
            return r.json()
        except ValueError as e:
            raise ContentSourceError(f"Response from {url} is not JSON: {e}") from e

    def fetch_posts(self) -> List[dict]:
        if self._posts is not None:
            return self._posts
        posts: List[dict] = []
        page = 1
        while True:
            r = self._get(self.posts_url, params={"per_page": self.per_page, "page": page})
            if r.status_code == 400 and page > 1:
                break
            if not r.ok:
                raise ContentSourceError(f"Failed to fetch posts: HTTP {r.status_code} {r.reason}")
            batch = self._json(r, self.posts_url)
            if not batch:
                break
            posts.extend(batch)
            page += 1
            total_pages = r.headers.get("X-WP-TotalPages")
            if total_pages and page > int(total_pages):
                break
        self._posts = posts
        return posts

    @staticmethod
    def post_to_item(post: dict) -> ContentItem:
        return ContentItem(
            id=str(post["id"]),
            title=strip_html(post["title"]["rendered"]),
            content=strip_html(post["content"]["rendered"]),
            slug=post.get("slug"),
            date=post.get("date"),
        )

    def all(self) -> List[ContentItem]:
        return [self.post_to_item(post) for post in self.fetch_posts()]

    def get(self, item_id: str) -> ContentItem:
        r = self._get(f"{self.posts_url}/{item_id}")
        if not r.ok:
            raise ContentSourceError(f"Failed to fetch post {item_id}: HTTP {r.status_code} {r.reason}")
        return self.post_to_item(self._json(r, f"{self.posts_url}/{item_id}"))

    def count(self) -> int:
        return len(self.fetch_posts())

    def validate(self) -> None:
        r = self._get(self.posts_url, params={"per_page": 1})
        if not r.ok:
            raise ContentSourceError(f"WordPress site not accessible: {self.site_url} (HTTP {r.status_code})")


def create_source(
    kind: Optional[str],
    config: SourceConfig,
    path: Optional[str] = None,
    url: Optional[str] = None,
    reporter: Optional[RunReporter] = None,
) -> ContentSource:
    kind = kind or config.type
    if kind == "file":
        target = path or config.path
        if not target:
            raise ContentSourceError("File path required. Use --path")
        return FileSource(Path(target))
    if kind == "directory":
        target = path or config.path
        if not target:
            raise ContentSourceError("Directory path required. Use --path")
        return DirectorySource(Path(target), config.extensions, config.recursive, reporter=reporter)
    if kind == "wordpress":
        site = url or config.url
        if not site:
            raise ContentSourceError("WordPress site URL required. Use --url")
        return WordPressSource(site, per_page=config.posts_per_batch)
    raise ContentSourceError(f"Unknown source type: {kind}")
