import asyncio
import logging
from typing import Any, List, Optional, Sequence

import aiohttp
from pydantic import BaseModel, Field

from cms_common.config import CMSApiSettings, get_settings
from cms_common.exceptions import UpstreamConnectionError, UpstreamHttpError
from cms_puller.cache import ResponseCache
from cms_puller.filters import FetchOptions, Filter, build_filter_url

logger = logging.getLogger(__name__)


class FetchResult(BaseModel):
    results: List[dict] = Field(default_factory=list)
    page_count: int = 0
    has_more: bool = False


class CMSApiClient:
    # Hard limits for the data.cms.gov dataset API
    MAX_PAGES = 50
    RATE_LIMIT_DELAY = 0.1  # seconds between pages of one fetch
    ERROR_BODY_LIMIT = 300
    LOG_URL_LIMIT = 150

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        cache: Optional[ResponseCache] = None,
        settings: Optional[CMSApiSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else ResponseCache(ttl=self.settings.cache_ttl_seconds)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "CMSApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch_page(self, url: str) -> Any:
        """
        GET one page of the dataset API and return the decoded JSON body.

        Returns None when the body is not valid JSON.

        Raises:
            UpstreamHttpError: on any non-2xx status
            UpstreamConnectionError: when the request itself fails
        """
        session = self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)
        try:
            async with session.get(url, headers={"Accept": "application/json"}, timeout=timeout) as resp:
                if not 200 <= resp.status < 300:
                    body = await resp.text()
                    raise UpstreamHttpError(resp.status, body[: self.ERROR_BODY_LIMIT], url=url)
                try:
                    return await resp.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError) as e:
                    logger.warning("Malformed JSON from CMS API for %s: %s", url[: self.LOG_URL_LIMIT], e)
                    return None
        except asyncio.TimeoutError as e:
            raise UpstreamConnectionError(f"Timed out fetching {url[: self.LOG_URL_LIMIT]}") from e
        except aiohttp.ClientError as e:
            raise UpstreamConnectionError(f"Client error fetching {url[: self.LOG_URL_LIMIT]}: {e}") from e

    async def fetch_paginated(
        self,
        base_url: str,
        filters: Sequence[Filter],
        options: Optional[FetchOptions] = None,
    ) -> FetchResult:
        """
        Fetch rows page by page until the dataset runs out or a bound is hit.

        Pages are served from the cache when possible. A short page always
        ends pagination; a full page only continues it when
        ``options.fetch_all_pages`` is set. Pagination stops silently after
        MAX_PAGES pages. HTTP and transport errors propagate.
        """
        options = options or FetchOptions()
        offset = options.offset
        results: List[dict] = []
        page_count = 0
        has_more = True

        while has_more and len(results) < options.max_total_results:
            url = build_filter_url(base_url, filters, options.model_copy(update={"offset": offset}))
            logger.debug("Fetching page %d: %s", page_count + 1, url[: self.LOG_URL_LIMIT])

            data = self.cache.get(url)
            if data is None:
                data = await self.fetch_page(url)
                if isinstance(data, list):
                    self.cache.set(url, data)

            if not isinstance(data, list):
                logger.warning("Unexpected CMS API payload (%s), treating as end of data", type(data).__name__)
                has_more = False
                break
            if not data:
                has_more = False
                break

            rows = [row for row in data if isinstance(row, dict)]
            if len(rows) < len(data):
                logger.warning("Skipping %d non-object rows from CMS API page", len(data) - len(rows))

            remaining = options.max_total_results - len(results)
            results.extend(rows[:remaining])
            page_count += 1

            if not options.fetch_all_pages or len(data) < options.page_size:
                has_more = False
                break

            if page_count >= self.MAX_PAGES:
                logger.info("Reached %d page safety limit", self.MAX_PAGES)
                break
            if len(results) >= options.max_total_results:
                break

            offset += len(data)
            await asyncio.sleep(self.RATE_LIMIT_DELAY)

        return FetchResult(results=results, page_count=page_count, has_more=has_more)
