"""Shared application settings read from environment variables.

Values are read once at import time. An optional ``config.env`` file in the
working directory is loaded first; variables already set in the environment
take precedence over it.
"""

import os
import pathlib

import dotenv

REPO_DIR = pathlib.Path(__file__).resolve().parent.parent

dotenv.load_dotenv(os.environ.get('CONFIG_ENV', 'config.env'), override=False)

BLOG_NAME: str = os.environ.get('BLOG_NAME', 'My Blog')
BLOG_DESC: str = os.environ.get('BLOG_DESC', '')
POSTS_DIR: pathlib.Path = pathlib.Path(
    os.environ.get('POSTS_DIR', REPO_DIR / 'blog' / 'blog_posts')
)
HOST: str = os.environ.get('HOST', '0.0.0.0')
PORT: int = int(os.environ.get('PORT', '3000'))
LOG_LEVEL: str = os.environ.get('LOG_LEVEL', 'INFO').upper()
