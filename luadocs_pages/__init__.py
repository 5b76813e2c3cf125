"""Generate and publish a Lua API reference site from EmmyLua annotation stubs.

This package exposes the ``luadocs`` CLI used locally and by the publishing
workflow to lint stubs, render Markdown and HTML pages, and push the site.

Exports
-------
- ``app``: Cyclopts application holding the subcommands.
- ``main``: Console entry point that reports domain errors and exits.

Examples
--------
>>> from luadocs_pages import app
>>> app(["check"])  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
