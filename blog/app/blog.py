"""Blog post indexing, querying and rendering logic.

The index is built once from a directory of Markdown files and never changes
afterwards. Only post metadata is cached; a post's body is read again from disk
whenever it is rendered.
"""

import dataclasses
import datetime
import logging
import pathlib
import types
from collections.abc import Mapping
from typing import Any

import frontmatter  # type: ignore[reportMissingTypeStubs]
import markdown
import pydantic
import yaml

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = ('.md', '.markdown')
MARKDOWN_EXTENSIONS = ['fenced_code', 'codehilite', 'tables', 'toc', 'attr_list']


class PostNotFoundError(LookupError):
    """Raised when no post has the requested name."""


class CategoryNotFoundError(LookupError):
    """Raised when no category has the requested id."""


class Post(pydantic.BaseModel):
    """Metadata of a single blog post.

    Any front-matter keys beyond the declared fields are kept as extra
    attributes. ``name`` always comes from the filename.
    """

    model_config = pydantic.ConfigDict(extra='allow', frozen=True)

    name: str
    title: str | None = None
    description: str | None = None
    category: str | None = None
    date: datetime.date | None = None

    _path: pathlib.Path | None = pydantic.PrivateAttr(default=None)

    @pydantic.field_validator('title', 'description', 'category', mode='before')
    @classmethod
    def coerce_to_str(cls, value: Any) -> Any:
        # YAML turns bare numbers and dates into non-strings
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @pydantic.field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        if isinstance(value, str):
            try:
                return datetime.date.fromisoformat(value.strip())
            except ValueError:
                pass
        logger.warning('Ignoring unparseable post date %r', value)
        return None

    @property
    def path(self) -> pathlib.Path | None:
        """Returns the Markdown file this post was read from."""
        return self._path

    @property
    def category_name(self) -> str:
        """Returns the trimmed category display name, or '' if uncategorised."""
        return (self.category or '').strip()

    @property
    def category_id(self) -> str:
        """Returns the category slug, or '' if uncategorised."""
        return slugify_category(self.category_name)


class Category(pydantic.BaseModel):
    """A category label shared by one or more posts."""

    model_config = pydantic.ConfigDict(frozen=True)

    id: str
    name: str
    count: int


@dataclasses.dataclass(frozen=True)
class Document:
    """A post freshly read from disk, with its body rendered to HTML."""

    post: Post
    html: str


def slugify_category(name: str) -> str:
    """Derive a category id from its display name.

    Only the first space is replaced, so 'Web Dev Tips' becomes 'web-dev tips'.
    """
    return name.strip().lower().replace(' ', '-', 1)


def normalize_phrase(phrase: str) -> str:
    """Trim a search phrase and collapse its first double space."""
    return phrase.strip().replace('  ', ' ', 1)


def render_markdown(text: str) -> str:
    """Render a Markdown body to HTML."""
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def parse_post(path: pathlib.Path) -> tuple[Post, str]:
    """Parse a Markdown file into its Post metadata and raw body.

    Raises ValueError naming the file if the front-matter is not valid YAML or
    does not fit the Post model.
    """
    try:
        parsed = frontmatter.load(path.as_posix())
    except yaml.YAMLError as e:
        raise ValueError(f'Malformed front-matter in {path.name}: {e}') from e
    try:
        post = Post.model_validate({**parsed.metadata, 'name': path.stem})
    except pydantic.ValidationError as e:
        raise ValueError(f'Invalid front-matter in {path.name}: {e}') from e
    post._path = path
    return post, parsed.content


class PostIndex:
    """Immutable in-memory index of posts and their categories."""

    directory: pathlib.Path
    posts: tuple[Post, ...]
    categories: Mapping[str, Category]

    def __init__(
        self,
        directory: pathlib.Path,
        posts: tuple[Post, ...],
        categories: dict[str, Category],
    ) -> None:
        self.directory = directory
        self.posts = posts
        self.categories = types.MappingProxyType(dict(categories))

    def __len__(self) -> int:
        return len(self.posts)

    def get_post(self, name: str) -> Post:
        """Return the first post called ``name``.

        Raises PostNotFoundError if there is none.
        """
        matched = next((p for p in self.posts if p.name == name), None)
        if matched is None:
            raise PostNotFoundError(name)
        return matched

    def load_document(self, post: Post) -> Document:
        """Re-read a post from disk and render its body.

        Raises PostNotFoundError if the file has gone away since startup.
        """
        path = post.path or self.directory / f'{post.name}.md'
        try:
            fresh, body = parse_post(path)
        except FileNotFoundError as e:
            logger.warning('Post %s is indexed but %s no longer exists', post.name, path)
            raise PostNotFoundError(post.name) from e
        return Document(post=fresh, html=render_markdown(body))

    def filter_by_category(self, category_id: str) -> tuple[Category, list[Post]]:
        """Return a category and its posts, in index order.

        Posts match on the category display name, not on the slug. Raises
        CategoryNotFoundError for an unknown id.
        """
        category = self.categories.get(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category, [p for p in self.posts if p.category_name == category.name]

    def search(self, phrase: str) -> list[Post]:
        """Return posts whose title or description contains the phrase.

        Matching is case-sensitive. A post without a title or description simply
        does not match on that field.
        """
        term = normalize_phrase(phrase)
        results: list[Post] = []
        for post in self.posts:
            title_match = post.title is not None and term in post.title
            desc_match = post.description is not None and term in post.description
            if title_match or desc_match:
                results.append(post)
        return results


def build_categories(posts: tuple[Post, ...]) -> dict[str, Category]:
    """Count posts per category, keyed by category id.

    A post whose category slugifies to an existing id under a different display
    name is left out of the count.
    """
    categories: dict[str, Category] = {}
    for post in posts:
        name = post.category_name
        if not name:
            continue
        category_id = post.category_id
        existing = categories.get(category_id)
        if existing is None:
            categories[category_id] = Category(id=category_id, name=name, count=1)
        elif existing.name == name:
            categories[category_id] = existing.model_copy(update={'count': existing.count + 1})
        else:
            logger.warning(
                'Post %s has category %r which collides with %r under id %r; not counted',
                post.name,
                name,
                existing.name,
                category_id,
            )
    return categories


def build_index(directory: pathlib.Path) -> PostIndex:
    """Load every Markdown file in ``directory`` into a PostIndex.

    Files are read in filename order. Raises FileNotFoundError or
    NotADirectoryError if the directory cannot be listed, and ValueError for
    malformed front-matter.
    """
    directory = pathlib.Path(directory)
    paths = sorted(
        p for p in directory.iterdir() if p.is_file() and p.suffix in MARKDOWN_SUFFIXES
    )
    posts = tuple(parse_post(path)[0] for path in paths)
    categories = build_categories(posts)
    logger.info(
        'Indexed %d posts in %d categories from %s', len(posts), len(categories), directory
    )
    return PostIndex(directory, posts, categories)
