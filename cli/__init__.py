"""CLI package for chatgpt-auth

Terminal front end for the ChatGPT sign-in core: it opens the browser,
keeps credentials in the OS keychain and renders sign-in outcomes.
"""

from cli.main import main

__all__ = [
    "main",
]
