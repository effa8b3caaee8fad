"""Minimal Exa web-search client."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
import requests
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_random_exponential

from ..core.exceptions import ProviderError

logger = logging.getLogger(__name__)

MAX_RESULTS = 10


class ExaError(ProviderError):
    """Exa rejected the search or could not be reached."""


class SearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str | None = None
    url: str
    published_date: str | None = Field(default=None, alias="publishedDate")
    author: str | None = None
    text: str | None = None
    highlights: list[str] | None = None
    summary: str | None = None
    score: float | None = None


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    if isinstance(error, requests.exceptions.HTTPError) and error.response is not None:
        return error.response.status_code == 429 or error.response.status_code >= 500
    return False


class Exa:
    def __init__(self, api_key: str, base_url: str = "https://api.exa.ai", timeout: float = 30):
        if not api_key:
            raise ValueError("Exa requires an api key")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"x-api-key": api_key, "Content-Type": "application/json"})

    def search(
        self,
        query: str,
        *,
        num_results: int = 5,
        category: str | None = None,
        highlights: bool = True,
        summary: bool = True,
        text: bool = False,
        include_domains: list[str] | None = None,
        exclude_domains: list[str] | None = None,
    ) -> list[SearchResult]:
        """Search the web.

        Parameters
        ----------
        query : str
            The search query
        num_results : int, optional
            Number of results, capped at MAX_RESULTS, by default 5
        category : str | None, optional
            Focus category (company, research_paper, news, github, financial_report, ...)

        Raises
        ------
        ExaError
            If the request fails or Exa reports an error
        """
        body = self._search_body(
            query,
            num_results=num_results,
            category=category,
            highlights=highlights,
            summary=summary,
            text=text,
            include_domains=include_domains,
            exclude_domains=exclude_domains,
        )
        try:
            payload = self._post("/search", body)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Exa search failed for query {query!r}: {e}")
            status_code = e.response.status_code if e.response is not None else None
            raise ExaError(f"Exa search failed: {e}", status_code=status_code) from e

        if payload.get("error"):
            raise ExaError(str(payload["error"]))
        return [SearchResult.model_validate(result) for result in payload.get("results", [])]

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_random_exponential(multiplier=0.1, max=2),
        reraise=True,
    )
    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        with self.session.post(f"{self.base_url}{path}", json=body, timeout=self.timeout) as response:
            _ = response.raise_for_status()
            return response.json()

    @staticmethod
    def _search_body(
        query: str,
        *,
        num_results: int,
        category: str | None,
        highlights: bool,
        summary: bool,
        text: bool,
        include_domains: list[str] | None,
        exclude_domains: list[str] | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"query": query, "numResults": min(num_results, MAX_RESULTS), "type": "auto"}

        contents: dict[str, Any] = {}
        if text:
            contents["text"] = True
        if highlights:
            contents["highlights"] = {"numSentences": 3}
        if summary:
            contents["summary"] = {"query": query}
        if contents:
            body["contents"] = contents

        if category:
            body["category"] = category
        if include_domains:
            body["includeDomains"] = include_domains
        if exclude_domains:
            body["excludeDomains"] = exclude_domains
        return body
