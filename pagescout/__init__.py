"""Page Scout: single page load capture with Playwright.

This package captures the network requests, rendered markup and page-defined
global variables of a page load.
"""

__version__ = "0.1.0"
