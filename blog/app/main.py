"""FastAPI application for the blog site."""

import contextlib
import logging
import pathlib
from collections.abc import AsyncIterator
from typing import Annotated

import fastapi
import fastapi.exception_handlers
import fastapi.responses
import fastapi.staticfiles
import starlette.exceptions
import uvicorn

import common.app
import common.settings
import common.templates

from . import blog

logger = logging.getLogger(__name__)

APP_DIR = pathlib.Path(__file__).resolve().parent

templates = common.templates.make_templates(APP_DIR / 'templates')


def get_index(request: fastapi.Request) -> blog.PostIndex:
    return request.app.state.index


Index = Annotated[blog.PostIndex, fastapi.Depends(get_index)]

router = fastapi.APIRouter()


def _base_url(request: fastapi.Request) -> str:
    """Scheme and host the request was made against, without trailing slash."""
    return str(request.base_url).rstrip('/')


@router.get('/', response_class=fastapi.responses.HTMLResponse)
async def index(request: fastapi.Request, post_index: Index) -> fastapi.responses.HTMLResponse:
    """Render the blog index page listing all posts."""
    return templates.TemplateResponse(
        request=request, name='index.html.jinja2', context={'posts': post_index.posts}
    )


@router.get('/post/{postname}', response_class=fastapi.responses.HTMLResponse)
async def post(
    request: fastapi.Request, postname: str, post_index: Index
) -> fastapi.responses.HTMLResponse:
    """Render an individual blog post, re-reading it from disk."""
    try:
        document = post_index.load_document(post_index.get_post(postname))
    except blog.PostNotFoundError:
        raise fastapi.HTTPException(status_code=404, detail='Post not found')
    return templates.TemplateResponse(
        request=request,
        name='post.html.jinja2',
        context={'metadata': document.post, 'content': document.html},
    )


@router.get('/categories', response_class=fastapi.responses.HTMLResponse)
async def categories(
    request: fastapi.Request, post_index: Index
) -> fastapi.responses.HTMLResponse:
    """Render the list of categories with their post counts."""
    return templates.TemplateResponse(
        request=request,
        name='categories.html.jinja2',
        context={'categories': list(post_index.categories.values())},
    )


@router.get('/categories/{shortname:path}', response_class=fastapi.responses.HTMLResponse)
async def category(
    request: fastapi.Request, shortname: str, post_index: Index
) -> fastapi.responses.HTMLResponse:
    """Render the posts filed under one category."""
    try:
        matched, results = post_index.filter_by_category(shortname)
    except blog.CategoryNotFoundError:
        raise fastapi.HTTPException(status_code=404, detail='Category not found')
    return templates.TemplateResponse(
        request=request,
        name='category.html.jinja2',
        context={'category': matched, 'posts': results},
    )


@router.get('/search', response_class=fastapi.responses.HTMLResponse)
async def search(
    request: fastapi.Request, post_index: Index, phrase: str | None = None
) -> fastapi.responses.HTMLResponse:
    """Render posts whose title or description contains the search phrase."""
    if phrase is None:
        raise fastapi.HTTPException(status_code=400, detail='Missing search phrase')
    return templates.TemplateResponse(
        request=request,
        name='search.html.jinja2',
        context={'term': blog.normalize_phrase(phrase), 'posts': post_index.search(phrase)},
    )


@router.get('/rss.xml')
async def rss(request: fastapi.Request, post_index: Index) -> fastapi.responses.Response:
    """Render and serve the RSS feed."""
    xml = templates.get_template('rss.xml.jinja2').render(  # type: ignore
        posts=post_index.posts, host=_base_url(request)
    )
    return fastapi.responses.Response(content=xml, media_type='application/rss+xml')


@router.get('/sitemap.xml')
async def sitemap(request: fastapi.Request, post_index: Index) -> fastapi.responses.Response:
    """Render and serve the sitemap for search engines."""
    xml = templates.get_template('sitemap.xml.jinja2').render(  # type: ignore
        posts=post_index.posts,
        categories=list(post_index.categories.values()),
        host=_base_url(request),
    )
    return fastapi.responses.Response(content=xml, media_type='application/xml')


async def not_found_handler(
    request: fastapi.Request, exc: starlette.exceptions.HTTPException
) -> fastapi.responses.Response:
    """Render the 404 page for missing resources; defer other errors to FastAPI."""
    if exc.status_code != 404:
        return await fastapi.exception_handlers.http_exception_handler(request, exc)
    return templates.TemplateResponse(
        request=request, name='404.html.jinja2', status_code=404
    )


def create_app(posts_dir: pathlib.Path | None = None) -> fastapi.FastAPI:
    """Create the blog app, indexing ``posts_dir`` when the app starts.

    Failing to build the index aborts startup.
    """
    directory = posts_dir or common.settings.POSTS_DIR

    @contextlib.asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        """Build the post index before serving requests."""
        app.state.index = blog.build_index(directory)
        yield

    app = common.app.create_app('Blog', lifespan=lifespan)
    app.mount(
        '/static',
        fastapi.staticfiles.StaticFiles(directory=APP_DIR / 'static'),
        name='static',
    )
    app.include_router(router)
    app.add_exception_handler(starlette.exceptions.HTTPException, not_found_handler)  # type: ignore[arg-type]
    return app


app = create_app()


def run() -> None:
    """Serve the blog with uvicorn on the configured host and port."""
    logger.info('Listening for HTTP requests on port %d', common.settings.PORT)
    uvicorn.run(app, host=common.settings.HOST, port=common.settings.PORT)


if __name__ == '__main__':
    run()
