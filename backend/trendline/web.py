from __future__ import annotations

import asyncio
import logging
import re

import httpx
from bs4 import BeautifulSoup

from trendline.errors import IngestionError
from trendline.references import normalize_whitespace

logger = logging.getLogger("trendline.web")

ACCEPT_HEADER = "text/html,text/plain;q=0.8,*/*;q=0.5"
MAIN_REGION_SELECTORS = ("main", "article", '[role="main"]', "#main", "body")
NOISE_TAGS = ["script", "style", "nav", "header", "footer", "aside"]

_SCRIPT_BLOCK_PATTERN = re.compile(r"<script[^>]*>[\s\S]*?</script>", flags=re.IGNORECASE)
_STYLE_BLOCK_PATTERN = re.compile(r"<style[^>]*>[\s\S]*?</style>", flags=re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")


def strip_all_tags(html: str) -> str:
    text = _SCRIPT_BLOCK_PATTERN.sub(" ", html)
    text = _STYLE_BLOCK_PATTERN.sub(" ", text)
    text = _TAG_PATTERN.sub(" ", text)
    return normalize_whitespace(text)


def extract_main_text_from_html(html: str) -> str:
    """Pick the most content-like region of a page and return its visible text.

    Falls back to a blunt tag strip over the raw markup when no region is found,
    the region is empty, or the document cannot be parsed.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
        region = None
        for selector in MAIN_REGION_SELECTORS:
            region = soup.select_one(selector)
            if region is not None:
                break
        if region is None:
            return strip_all_tags(html)
        for node in region.find_all(NOISE_TAGS):
            node.decompose()
        text = normalize_whitespace(region.get_text(separator=" "))
        return text or strip_all_tags(html)
    except Exception:
        logger.debug("html_main_region_parse_failed", extra={"event": "html_main_region_parse_failed"})
        return strip_all_tags(html)


def build_fetch_client(*, user_agent: str, timeout_seconds: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": user_agent, "Accept": ACCEPT_HEADER},
    )


async def fetch_link_text(url: str, *, client: httpx.AsyncClient) -> str:
    try:
        response = await client.get(url, headers={"Accept": ACCEPT_HEADER})
        if not response.is_success:
            raise IngestionError(f"Link responded with {response.status_code}: {url}")
        text = extract_main_text_from_html(response.text)
        if not text:
            raise IngestionError(f"Link content is empty or restricted: {url}")
        return text
    except IngestionError:
        raise
    except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
        logger.warning(
            "link_fetch_timed_out",
            extra={"event": "link_fetch_timed_out", "url": url, "error": str(exc)},
        )
        raise IngestionError(f"Timed out fetching link: {url}") from exc
    except Exception as exc:
        logger.warning(
            "link_fetch_failed",
            extra={"event": "link_fetch_failed", "url": url, "error": str(exc)},
        )
        raise IngestionError(f"Cannot access link: {url}") from exc
