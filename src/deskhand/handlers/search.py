"""Search handler - model answer first, then web search.

Flow:
1. Ask the language model for a direct answer. A reply containing
   NEED_SEARCH means it declined.
2. Query the DuckDuckGo instant answer API.
3. Optionally have the model summarise strictly from the returned snippets.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, ClassVar

import httpx

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.config import LIMITS, TIMEOUTS
from deskhand.errors import LLMError
from deskhand.intent.prompts import ANSWER_FROM_SNIPPETS, DIRECT_ANSWER_INSTRUCTIONS, NEED_SEARCH
from deskhand.providers._http import retry_transient
from deskhand.providers.base import LLMProvider
from deskhand.settings import settings

from .base import CommandHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    title: str
    snippet: str
    url: str


def parse_instant_answer(data: dict[str, Any], limit: int = LIMITS.MAX_SEARCH_RESULTS) -> list[SearchHit]:
    """Flatten an instant answer payload into hits."""
    hits: list[SearchHit] = []
    if data.get("Answer"):
        hits.append(SearchHit("Answer", str(data["Answer"]), data.get("AbstractURL") or ""))
    if data.get("AbstractText"):
        hits.append(
            SearchHit(
                data.get("Heading") or data.get("AbstractSource") or "Summary",
                data["AbstractText"],
                data.get("AbstractURL") or "",
            )
        )

    def _topics(items: list[Any]) -> None:
        for item in items:
            if len(hits) >= limit:
                return
            if not isinstance(item, dict):
                continue
            if "Topics" in item:
                _topics(item.get("Topics") or [])
                continue
            text = item.get("Text")
            if text:
                title = text.split(" - ", 1)[0]
                hits.append(SearchHit(title, text, item.get("FirstURL") or ""))

    _topics(data.get("RelatedTopics") or [])
    return hits[:limit]


class WebSearcher:
    """Thin client for the DuckDuckGo instant answer API."""

    def __init__(
        self,
        *,
        url: str | None = None,
        timeout_seconds: float = TIMEOUTS.HTTP_REQUEST,
        max_results: int = LIMITS.MAX_SEARCH_RESULTS,
    ) -> None:
        self._url = url or settings.search_url
        self._timeout = timeout_seconds
        self._max_results = max_results

    def search(self, query: str) -> list[SearchHit]:
        return parse_instant_answer(self._fetch(query), self._max_results)

    @retry_transient
    def _fetch(self, query: str) -> dict[str, Any]:
        params = {"q": query, "format": "json", "no_html": "1", "skip_disambig": "1"}
        with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
            res = client.get(self._url, params=params)
            res.raise_for_status()
            data = res.json()
        return data if isinstance(data, dict) else {}


class SearchHandler(CommandHandler):
    """Answers questions and looks things up."""

    name: ClassVar[str] = "search"
    command_type: ClassVar[str] = "search"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.SEARCH})

    def __init__(
        self,
        llm: LLMProvider | None = None,
        *,
        searcher: WebSearcher | None = None,
        synthesize: bool = settings.search_synthesize,
        timeout_seconds: float = TIMEOUTS.LLM_DEFAULT,
    ) -> None:
        self._llm = llm
        self._searcher = searcher or WebSearcher()
        self._synthesize = synthesize
        self._timeout = timeout_seconds

    def execute(self, command: Command) -> CommandResult:
        query = command.target.strip() or command.parameters.get_str("query") or ""
        if not query:
            return CommandResult.fail("No search query specified", ["Ask a question, e.g. 'search for python tutorials'"])

        if not command.parameters.get_bool("webOnly"):
            answer = self._direct_answer(query)
            if answer:
                return CommandResult.ok(answer, query=query, source="model")

        try:
            hits = self._searcher.search(query)
        except httpx.HTTPError as e:
            logger.warning("Web search for %r failed: %s", query, e)
            return CommandResult.fail(f"Web search failed: {e}", ["Check your internet connection"])

        if not hits:
            return CommandResult.fail(
                f"No search results found for '{query}'",
                ["Try different or fewer keywords"],
            )

        listing = "\n".join(
            f"{i}. {hit.title}: {hit.snippet}" + (f" ({hit.url})" if hit.url else "")
            for i, hit in enumerate(hits, 1)
        )
        results = [asdict(h) for h in hits]

        summary = self._summarize(query, listing) if self._synthesize else None
        if summary:
            return CommandResult.ok(
                f"{summary}\n\nSources:\n{listing}",
                query=query,
                source="web+model",
                results=results,
            )
        return CommandResult.ok(
            f"Search results for '{query}':\n{listing}",
            query=query,
            source="web",
            results=results,
        )

    def _direct_answer(self, query: str) -> str | None:
        if self._llm is None:
            return None
        try:
            reply = self._llm.chat_text(
                system=DIRECT_ANSWER_INSTRUCTIONS,
                user=query,
                timeout_seconds=self._timeout,
                temperature=0.2,
            )
        except LLMError as e:
            logger.info("Direct answer unavailable: %s", e.message)
            return None
        if not reply.strip() or NEED_SEARCH in reply:
            return None
        return reply.strip()

    def _summarize(self, query: str, listing: str) -> str | None:
        if self._llm is None:
            return None
        try:
            reply = self._llm.chat_text(
                system=ANSWER_FROM_SNIPPETS,
                user=f"Question: {query}\n\nSearch results:\n{listing}",
                timeout_seconds=self._timeout,
                temperature=0.0,
            )
        except LLMError as e:
            logger.info("Could not summarise search results: %s", e.message)
            return None
        return reply.strip() or None
