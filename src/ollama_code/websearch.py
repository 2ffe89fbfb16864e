"""Web search client backed by the DuckDuckGo instant answer API."""

from typing import Optional

import httpx
import structlog

from ollama_code.errors import ExternalFailure


log = structlog.get_logger(__name__)

DUCKDUCKGO_API = "https://api.duckduckgo.com/"
USER_AGENT = "ollama-code-py/0.3 (+web-search)"


def _clean(value: str) -> str:
    return " ".join((value or "").strip().split())


class DuckDuckGoSearch:
    """Search the web and return `{title, url, snippet, source}` records.

    Args:
        max_results: Upper bound on returned records.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    source = "duckduckgo"

    def __init__(
        self,
        max_results: int = 5,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.max_results = max_results
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-load the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                follow_redirects=True,
            )
        return self._client

    def search(self, query: str) -> list[dict]:
        """Run `query` and return up to `max_results` de-duplicated results.

        Raises:
            ExternalFailure: On HTTP errors or an undecodable response.
        """
        params = {"q": query, "format": "json", "no_redirect": "1", "no_html": "1", "skip_disambig": "0"}
        try:
            response = self.client.get(DUCKDUCKGO_API, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalFailure(f"web search failed: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ExternalFailure(f"web search failed: {e}") from e
        except ValueError as e:
            raise ExternalFailure("web search returned invalid JSON") from e

        if not isinstance(payload, dict):
            return []
        results = self._collect(payload)
        log.debug("web_search", query=query, results=len(results))
        return results

    def _collect(self, payload: dict) -> list[dict]:
        out: list[dict] = []
        heading = _clean(str(payload.get("Heading") or ""))
        abstract_text = _clean(str(payload.get("AbstractText") or ""))
        abstract_url = _clean(str(payload.get("AbstractURL") or ""))
        if abstract_url:
            out.append(self._record(heading or abstract_url, abstract_url, abstract_text))

        related = payload.get("RelatedTopics")
        if isinstance(related, list):
            for item in related:
                if not isinstance(item, dict):
                    continue
                # Disambiguation groups nest their entries under "Topics"
                for entry in [item, *(item.get("Topics") or [])]:
                    if not isinstance(entry, dict):
                        continue
                    text = _clean(str(entry.get("Text") or ""))
                    first_url = _clean(str(entry.get("FirstURL") or ""))
                    if text and first_url:
                        out.append(self._record(text.split(" - ")[0], first_url, text))

        deduped: list[dict] = []
        seen: set[str] = set()
        for item in out:
            if item["url"] in seen:
                continue
            seen.add(item["url"])
            deduped.append(item)
            if len(deduped) >= self.max_results:
                break
        return deduped

    def _record(self, title: str, url: str, snippet: str) -> dict:
        return {"title": title, "url": url, "snippet": snippet, "source": self.source}

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

