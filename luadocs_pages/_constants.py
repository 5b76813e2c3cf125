"""Common literal values used across luadocs_pages.

These constants keep filenames and cache keys centralized so the collector,
site builder, and tests can import the same values without drifting.

Examples
--------
>>> from luadocs_pages import _constants
>>> _constants.MANIFEST_FILENAME
'manifest.json'
>>> _constants.CACHE_KEY_TEMPLATE.format(year=2026, week=3)
'luadocs-2026-W03'
"""

MANIFEST_FILENAME = "manifest.json"
CACHE_PREFIX = "luadocs-"
CACHE_KEY_TEMPLATE = CACHE_PREFIX + "{year}-W{week:02d}"
CACHE_ENTRIES_FILENAME = "stubs.json"
# Bump when the parsed stub models change shape.
CACHE_SCHEMA_VERSION = 1
SEARCH_INDEX_PATH = "search/search_index.json"
