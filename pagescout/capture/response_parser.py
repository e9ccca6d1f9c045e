"""Default response classification for intercepted requests.

The request registry delegates to a response parser to decide whether a
response is worth keeping and to extract its status, headers and body. Any
object with an ``async parse(response) -> ParsedResponse`` method can be used
in place of ResponseParser.
"""

import logging
from typing import Optional, Sequence

from playwright.async_api import Response

from ..models.capture import ParsedResponse

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPES = ('text', 'json', 'xml', 'javascript')

DEFAULT_MAX_BODY_SIZE = 5 * 1024 * 1024


class ResponseParser:
    """Classifies Playwright responses and extracts their content."""

    def __init__(
        self,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        text_content_types: Sequence[str] = TEXT_CONTENT_TYPES,
    ):
        """Initialize response parser.

        Args:
            max_body_size: Largest body (in bytes) that will be captured
            text_content_types: Content type fragments considered textual
        """
        self.max_body_size = max_body_size
        self.text_content_types = tuple(t.lower() for t in text_content_types)

    def is_textual(self, content_type: str) -> bool:
        content_type = content_type.lower()
        return any(t in content_type for t in self.text_content_types)

    def _declared_length(self, headers) -> Optional[int]:
        try:
            return int(headers.get('content-length'))
        except (TypeError, ValueError):
            return None

    async def parse(self, response: Response) -> ParsedResponse:
        """Classify a response.

        Redirects and non-textual responses are marked ignorable. Bodies over
        the size limit, or that cannot be read, are left empty.

        Args:
            response: Playwright response

        Returns:
            ParsedResponse for the registry
        """
        status = response.status
        headers = dict(response.headers or {})

        if 300 <= status < 400:
            logger.debug(f"Ignoring redirect response: {status} {response.url}")
            return ParsedResponse(ignore=True, status=status, headers=headers)

        content_type = headers.get('content-type', '')
        if not self.is_textual(content_type):
            logger.debug(f"Ignoring non-text response ({content_type or 'no content-type'}): {response.url}")
            return ParsedResponse(ignore=True, status=status, headers=headers)

        declared_length = self._declared_length(headers)
        if declared_length is not None and declared_length > self.max_body_size:
            logger.debug(f"Skipping oversized body ({declared_length} bytes): {response.url}")
            return ParsedResponse(status=status, headers=headers)

        body = None
        try:
            body = await response.text()
        except Exception as e:
            logger.debug(f"Failed to read response body for {response.url}: {e}")

        if body is not None and len(body) > self.max_body_size:
            logger.debug(f"Dropping oversized body ({len(body)} chars): {response.url}")
            body = None

        return ParsedResponse(status=status, headers=headers, body=body)
