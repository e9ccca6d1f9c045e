"""Window property diffing for detecting page-introduced globals.

This module provides the WindowPropertyDiffer class that records the global
names of a fresh page, computes which names a page load added, and
serializes their values inside the page with cycle and function handling.
"""

import logging
from typing import Any, Dict, Iterable, List, Set

from playwright.async_api import Page

from .errors import SerializationError

logger = logging.getLogger(__name__)

FUNCTION_SENTINEL = "function"

ERROR_MARKER = "__pagescout_serialization_error__"

WINDOW_KEYS_SCRIPT = "() => Object.keys(window)"

PAGE_SNAPSHOT_SCRIPT = """
() => ({
    html: document.documentElement.innerHTML,
    allWindowProperties: Object.keys(window),
})
"""

# Functions become the sentinel string; an object met again within the same
# visited scope becomes null. Errors are returned as marker objects so one
# bad property cannot fail the whole pass.
SERIALIZE_PROPERTIES_SCRIPT = """
([properties, shareVisited, functionSentinel, errorMarker]) => {
    const result = {};
    const describe = (err) => ({
        [errorMarker]: {
            name: (err && err.name) ? String(err.name) : 'Error',
            message: (err && err.message !== undefined) ? String(err.message) : String(err),
        },
    });
    let visited = [];
    for (const property of properties) {
        if (!shareVisited) {
            visited = [];
        }
        let value;
        try {
            value = window[property];
        } catch (err) {
            result[property] = describe(err);
            continue;
        }
        if (typeof value === 'function') {
            result[property] = functionSentinel;
            continue;
        }
        try {
            const json = JSON.stringify(value, (key, nested) => {
                if (typeof nested === 'function') {
                    return functionSentinel;
                }
                if (typeof nested === 'object' && nested !== null) {
                    if (visited.indexOf(nested) !== -1) {
                        return null;
                    }
                    visited.push(nested);
                }
                return nested;
            });
            result[property] = json === undefined ? null : JSON.parse(json);
        } catch (err) {
            result[property] = describe(err);
        }
    }
    return result;
}
"""


class WindowPropertyDiffer:
    """Computes and serializes the globals a page load introduced."""

    def __init__(self, page: Page, share_visited: bool = False):
        """Initialize window property differ.

        Args:
            page: Playwright page to evaluate in
            share_visited: Reuse one visited list across all properties of a
                serialization pass instead of a fresh one per property
        """
        self.page = page
        self.share_visited = share_visited

    async def capture_baseline(self) -> Set[str]:
        """Names of all globals currently visible in the page."""
        keys = await self.page.evaluate(WINDOW_KEYS_SCRIPT)
        baseline = set(keys or [])
        logger.debug(f"Captured {len(baseline)} native window properties")
        return baseline

    @staticmethod
    def diff(post_load_names: Iterable[str], baseline: Set[str]) -> List[str]:
        """Names present after load but not in baseline, in post-load order."""
        return [name for name in post_load_names if name not in baseline]

    async def serialize(self, names: List[str]) -> Dict[str, Any]:
        """Serialize the current value of each named global.

        Args:
            names: Global property names to read

        Returns:
            Mapping of name to JSON-compatible value, the function sentinel,
            or a SerializationError for properties that could not be read
        """
        if not names:
            return {}

        raw = await self.page.evaluate(
            SERIALIZE_PROPERTIES_SCRIPT,
            [list(names), self.share_visited, FUNCTION_SENTINEL, ERROR_MARKER],
        )
        return self._restore_errors(raw or {})

    def _restore_errors(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        result = {}
        for name, value in raw.items():
            if isinstance(value, dict) and ERROR_MARKER in value:
                details = value[ERROR_MARKER] or {}
                error = SerializationError(
                    name,
                    name=details.get('name', 'Error'),
                    message=details.get('message', ''),
                )
                logger.debug(f"Window property {name} could not be serialized: {error}")
                result[name] = error
            else:
                result[name] = value
        return result
