"""Google Sheets values API client.

Reads a range with ``valueRenderOption=FORMATTED_VALUE`` so every cell comes
back as the text the operator sees. Authenticates with an OAuth access token
(``Authorization: Bearer``) or, for link-shared sheets, an API key.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from assetreg.errors import SourceError
from assetreg.sources.base import SourceSelector

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://sheets.googleapis.com/v4"
_DEFAULT_TIMEOUT = 30.0
_DEFAULT_MAX_RETRIES = 3
_DEFAULT_RETRY_DELAY = 1.0


class SheetsSource:
    """Read-only client for one spreadsheet."""

    def __init__(
        self,
        sheet_id: str,
        *,
        access_token: str = "",
        api_key: str = "",
        base_url: str = _DEFAULT_BASE_URL,
        column_span: str = "A:Z",
        timeout: float = _DEFAULT_TIMEOUT,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        retry_delay: float = _DEFAULT_RETRY_DELAY,
    ) -> None:
        self.sheet_id = sheet_id
        self._access_token = access_token
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.column_span = column_span
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    def _get(self, path: str, params: dict[str, Any]) -> dict:
        """Issue a GET request with retry logic for transient failures."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        elif self._api_key:
            params = {**params, "key": self._api_key}
        last_exc: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                resp = httpx.get(url, params=params, headers=headers, timeout=self.timeout)
            except httpx.RequestError as exc:
                last_exc = exc
                logger.warning(
                    "Sheets request failed (attempt %d/%d): %s",
                    attempt + 1, self.max_retries, exc,
                )
            else:
                if resp.status_code in (401, 403):
                    raise SourceError(
                        f"Access to spreadsheet denied (HTTP {resp.status_code}).", reason="auth"
                    )
                if resp.status_code == 404:
                    raise SourceError("Spreadsheet or range not found.", reason="not_found")
                if resp.status_code == 400:
                    # Sheets answers 400 for unparseable ranges or unknown tab names.
                    raise SourceError("Range could not be resolved in the spreadsheet.", reason="not_found")
                if resp.status_code < 400:
                    try:
                        body = resp.json()
                    except (json.JSONDecodeError, ValueError):
                        raise SourceError(
                            "Spreadsheet API returned a non-JSON body.", reason="unreachable"
                        ) from None
                    return body if isinstance(body, dict) else {}
                last_exc = httpx.HTTPStatusError(
                    f"HTTP {resp.status_code}", request=resp.request, response=resp
                )
                logger.warning(
                    "Sheets request returned HTTP %d (attempt %d/%d)",
                    resp.status_code, attempt + 1, self.max_retries,
                )
            if attempt < self.max_retries - 1:
                time.sleep(self.retry_delay * (attempt + 1))

        raise SourceError(
            f"Failed to reach the spreadsheet API after {self.max_retries} attempts",
            reason="unreachable",
        ) from last_exc

    def read_range(self, selector: SourceSelector) -> list[list[str]]:
        if not self.sheet_id:
            raise SourceError("No spreadsheet configured (ASSETREG_SHEET_ID).", reason="not_found")
        a1 = selector.a1_range(self.column_span)
        body = self._get(
            f"spreadsheets/{quote(self.sheet_id, safe='')}/values/{quote(a1, safe='!:')}",
            params={"majorDimension": "ROWS", "valueRenderOption": "FORMATTED_VALUE"},
        )
        rows = body.get("values") or []
        logger.info("Read %d rows from range %s", len(rows), a1)
        return [[cell if isinstance(cell, str) else str(cell) for cell in row] for row in rows]
