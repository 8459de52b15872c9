"""Web-derived evidence: facts extracted from the product page and search results.

Every fact keeps the URL it came from and the snippet that supports it. Web
facts are registered unverified; only an independent match can promote them.
"""

from __future__ import annotations

import json
from typing import Mapping, Sequence

import httpx
from bs4 import BeautifulSoup
from pydantic import ValidationError

from feedenrich.config.settings import Settings
from feedenrich.exceptions import EvidenceCollectionError, OracleError
from feedenrich.fields.aliases import extract_field
from feedenrich.generation.prompt_templates import FACT_EXTRACTION_PROMPT
from feedenrich.models.schemas import ExtractedFactsResponse, WebFact
from feedenrich.observability.logger import get_logger

logger = get_logger("web_evidence")

USER_AGENT = "Mozilla/5.0 (compatible; FeedEnrich/1.0)"

# Field names worth adding to a search query
_QUERY_FIELDS = ("material", "color", "dimensions", "weight")


def build_search_query(fields: Mapping[str, str], fields_needed: Sequence[str]) -> str:
    """GTIN first (quoted for exact match), then brand, title and MPN."""
    parts: list[str] = []
    gtin = extract_field(fields, "gtin")
    if gtin:
        parts.append(f'"{gtin}"')
    brand = extract_field(fields, "brand")
    if brand:
        parts.append(brand)
    title = extract_field(fields, "title")
    if title:
        parts.append(title[:50])
    mpn = extract_field(fields, "mpn")
    if mpn:
        parts.append(mpn)
    if fields_needed:
        parts.append("specifications")
        parts.extend(f for f in fields_needed if f in _QUERY_FIELDS)
    return " ".join(parts)


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(["script", "style", "nav", "footer", "header", "noscript"]):
        tag.decompose()
    lines = [line.strip() for line in soup.get_text("\n").splitlines()]
    return "\n".join(line for line in lines if line)


class WebEvidenceCollector:
    def __init__(
        self,
        oracle,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._oracle = oracle
        self._settings = settings
        self._client = client

    async def collect(
        self, fields: Mapping[str, str], fields_needed: Sequence[str]
    ) -> list[WebFact]:
        if not fields_needed:
            return []
        if self._client is not None:
            return await self._collect(self._client, fields, fields_needed)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._settings.fetch_timeout_s),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as client:
            return await self._collect(client, fields, fields_needed)

    async def _collect(
        self,
        client: httpx.AsyncClient,
        fields: Mapping[str, str],
        fields_needed: Sequence[str],
    ) -> list[WebFact]:
        facts: list[WebFact] = []
        found: set[str] = set()

        # 1. The merchant's own product page
        product_url = extract_field(fields, "link")
        if product_url.startswith("http"):
            try:
                page = await self.fetch_page(client, product_url)
                facts.extend(await self.extract_facts(page, fields_needed, product_url))
            except EvidenceCollectionError as e:
                logger.warning("product_page_failed", url=product_url, error=str(e))
        found.update(f.field for f in facts)

        # 2. Search for whatever is still missing
        missing = [f for f in fields_needed if f not in found]
        has_identifier = bool(extract_field(fields, "gtin") or extract_field(fields, "brand"))
        if missing and has_identifier and self._settings.search_api_key:
            query = build_search_query(fields, missing)
            for url in await self.search(client, query):
                try:
                    page = await self.fetch_page(client, url)
                    page_facts = await self.extract_facts(page, missing, url)
                except EvidenceCollectionError as e:
                    logger.warning("search_result_failed", url=url, error=str(e))
                    continue
                facts.extend(page_facts)
                found.update(f.field for f in page_facts)

        logger.info(
            "web_facts_collected",
            facts=len(facts),
            not_found=[f for f in fields_needed if f not in found],
        )
        return facts

    async def search(self, client: httpx.AsyncClient, query: str) -> list[str]:
        try:
            response = await client.get(
                self._settings.search_endpoint,
                params={
                    "q": query,
                    "count": self._settings.search_result_count,
                    "extra_snippets": "true",
                },
                headers={
                    "X-Subscription-Token": self._settings.search_api_key,
                    "Accept": "application/json",
                },
            )
            response.raise_for_status()
            results = response.json().get("web", {}).get("results", [])
        except (httpx.HTTPError, ValueError) as e:
            raise EvidenceCollectionError(f"Web search failed: {e}") from e

        urls = [r["url"] for r in results if isinstance(r, dict) and r.get("url")]
        logger.debug("web_search_results", query=query, results=len(urls))
        return urls[: self._settings.search_result_count]

    async def fetch_page(self, client: httpx.AsyncClient, url: str) -> str:
        limit = self._settings.page_max_bytes
        body = bytearray()
        try:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise EvidenceCollectionError(f"{url} returned status {response.status_code}")
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= limit:
                        break
                encoding = response.encoding or "utf-8"
        except httpx.HTTPError as e:
            raise EvidenceCollectionError(f"Fetching {url} failed: {e}") from e
        return html_to_text(bytes(body[:limit]).decode(encoding, errors="replace"))

    async def extract_facts(
        self, content: str, fields_needed: Sequence[str], source_url: str
    ) -> list[WebFact]:
        prompt = FACT_EXTRACTION_PROMPT.format(
            fields=json.dumps(list(fields_needed)),
            content=content[: self._settings.page_max_chars],
        )
        try:
            raw = await self._oracle.generate_json(prompt)
            parsed = ExtractedFactsResponse.model_validate(raw)
        except (OracleError, ValidationError) as e:
            raise EvidenceCollectionError(f"Fact extraction failed for {source_url}: {e}") from e

        return [
            WebFact(
                field=f.field,
                value=f.value,
                source_url=source_url,
                evidence_snippet=f.evidence,
                confidence=f.confidence,
            )
            for f in parsed.facts
            if f.value.strip()
        ]
