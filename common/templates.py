"""Factory for creating Jinja2Templates with the blog's shared globals."""

import datetime
import pathlib

import fastapi.templating
import jinja2

import common.settings


def datefmt(value: datetime.date | None, fmt: str = '%B %d, %Y') -> str:
    """Format a date for display, rendering missing dates as an empty string."""
    if value is None:
        return ''
    return value.strftime(fmt)


def rfc822(value: datetime.date) -> str:
    """Format a date as the RFC 822 timestamp RSS expects."""
    return value.strftime('%a, %d %b %Y 00:00:00 +0000')


def make_templates(
    directory: pathlib.Path | str,
) -> fastapi.templating.Jinja2Templates:
    """Create a Jinja2Templates instance with blog_name and blog_desc globals pre-set.

    Autoescaping covers the ``.jinja2`` suffix used for both HTML and XML templates.
    """
    templates = fastapi.templating.Jinja2Templates(directory=str(directory))
    templates.env.autoescape = jinja2.select_autoescape(['html', 'xml', 'jinja2'])
    templates.env.globals['blog_name'] = common.settings.BLOG_NAME  # type: ignore[reportUnknownMemberType]
    templates.env.globals['blog_desc'] = common.settings.BLOG_DESC  # type: ignore[reportUnknownMemberType]
    templates.env.filters['datefmt'] = datefmt  # type: ignore[assignment]
    templates.env.filters['rfc822'] = rfc822  # type: ignore[assignment]
    return templates
