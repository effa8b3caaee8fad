from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from ..core.function import Function
from ..providers.exa import Exa, ExaError, MAX_RESULTS


class WebSearchParams(BaseModel):
    query: str = Field(description="The search query - be specific and descriptive for best results")
    category: Literal["company", "research_paper", "news", "github", "financial_report"] | None = Field(
        default=None, description="Optional: focus on specific content type"
    )
    num_results: int | None = Field(default=None, description="Number of results to return (1-10, default: 5)")


class WebSearch(Function):
    """Search the web for financial concepts, current events, market news, product comparisons or research topics.

    Do NOT use this for questions about the user's own financial data; use the other functions for that.
    Present results with source attribution.
    """

    Params = WebSearchParams

    def __init__(self, *args, client: Exa | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._client = client

    @property
    def client(self) -> Exa | None:
        if self._client is None and self.settings is not None and self.settings.exa_configured:
            self._client = Exa(self.settings.exa_api_key, base_url=self.settings.exa_api_url)
        return self._client

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.client is None:
            return {"error": "Web search is not configured. Please set EXA_API_KEY."}

        args = self.parse_params(params)
        if not args.query.strip():
            return {"error": "Query is required"}

        self.report_progress("Searching the web...")
        try:
            results = self.client.search(
                args.query,
                num_results=max(1, min(args.num_results or 5, MAX_RESULTS)),
                category=args.category,
            )
        except ExaError as e:
            return {"error": f"Search failed: {e}"}

        return {
            "query": args.query,
            "results": [
                {
                    "title": r.title,
                    "url": r.url,
                    "published_date": r.published_date,
                    "author": r.author,
                    "highlights": (r.highlights or [])[:3],
                    "summary": r.summary,
                }
                for r in results
            ],
            "result_count": len(results),
            "search_type": "web_search",
            "note": "Present these results to the user with source attribution. Cite sources when summarizing.",
        }
