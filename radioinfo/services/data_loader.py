"""
Data Loader Service

Fetches the channel list and per-channel schedules from the API and runs them
through the streaming parsers. Parsing is offloaded to the thread pool so the
event loop serving reads never runs parse work.
"""
from __future__ import annotations

import asyncio
import base64
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from radioinfo.config import RadioInfoSettings, settings
from radioinfo.exceptions import ConnectivityError, ImageFetchError, LoadError, ParseError
from radioinfo.models import SENTINEL_CHANNEL_ID, Channel, Program
from radioinfo.services.channel_parser import parse_channels
from radioinfo.services.schedule_parser import parse_schedule
from radioinfo.utils.logging_helpers import log_channel_processing
from radioinfo.utils.timezone import query_days


logger = logging.getLogger(__name__)

# 1x1 PNG served when a program image cannot be fetched
PLACEHOLDER_IMAGE = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
PLACEHOLDER_MEDIA_TYPE = "image/png"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DataLoader:
    """
    Loads channels and schedules over one HTTP client.

    Use as an async context manager; the client lives for the duration of
    one refresh cycle.
    """

    def __init__(
        self,
        config: RadioInfoSettings = settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "DataLoader":
        self._client = httpx.AsyncClient(
            timeout=self._config.http_timeout_sec,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("DataLoader used outside of 'async with'")
        return self._client

    async def check_connectivity(self) -> None:
        """
        Probe the channel list endpoint for reachability

        Any HTTP response counts as reachable; the body is not read.

        Raises:
            ConnectivityError: If the host is unreachable or the probe times out
        """
        url = self._config.channels_url
        logger.debug(f"Checking connectivity against {url}")
        try:
            async with self.client.stream("GET", url, params={"pagination": "false"}) as response:
                logger.debug(f"Connectivity probe answered with HTTP {response.status_code}")
        except httpx.TimeoutException as e:
            raise ConnectivityError(f"Connectivity check timed out: {url}") from e
        except httpx.TransportError as e:
            raise ConnectivityError(f"No connection to {url}: {e}") from e

    async def fetch_channels(self) -> list[Channel]:
        """
        Fetch and parse the channel list

        Returns:
            Channels in document order, without programs

        Raises:
            ConnectivityError: On transport failure or timeout
            ParseError: On malformed XML or channel id
            LoadError: On any other non-success HTTP status
        """
        response = await self._get(self._config.channels_url, {"pagination": "false"})
        if not response.is_success:
            raise LoadError(f"Channel list request failed with HTTP {response.status_code}")

        channels = await self._parse(parse_channels, response.content)
        logger.info(f"Fetched {len(channels)} channels")
        return channels

    async def fetch_schedule(self, channel_id: int, now: datetime | None = None) -> tuple[list[Program], bool]:
        """
        Fetch and parse one channel's schedule around now

        Args:
            channel_id: Channel to fetch
            now: Reference time; sampled from the clock when omitted

        Returns:
            Tuple of (programs, found). A 404 gives ([], False).

        Raises:
            ConnectivityError: On transport failure or timeout
            ParseError: On malformed XML
            LoadError: On any other non-success HTTP status
        """
        if now is None:
            now = self._clock()

        from_date, to_date = query_days(now)
        params = {
            "pagination": "false",
            "channelid": str(channel_id),
            "fromdate": from_date,
            "todate": to_date,
        }

        response = await self._get(self._config.schedule_url, params)
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info(f"No schedule found for channel {channel_id}")
            return [], False
        if not response.is_success:
            raise LoadError(
                f"Schedule request for channel {channel_id} failed with HTTP {response.status_code}"
            )

        programs = await self._parse(parse_schedule, response.content, now)
        logger.debug(f"Channel {channel_id}: {len(programs)} programs in window")
        return programs, True

    async def load_channels_with_schedules(self) -> list[Channel]:
        """
        Fetch the channel list and merge each channel's schedule into it

        Channels without a schedule get the sentinel id and no programs.
        Any hard error aborts the whole load.
        """
        channels = await self.fetch_channels()
        total = len(channels)
        loaded: list[Channel] = []

        for idx, channel in enumerate(channels, start=1):
            log_channel_processing(logger, idx, total, channel.id, channel.name)
            programs, found = await self.fetch_schedule(channel.id)
            if found:
                loaded.append(dataclasses.replace(channel, programs=tuple(programs)))
            else:
                loaded.append(dataclasses.replace(channel, id=SENTINEL_CHANNEL_ID, programs=()))

        return loaded

    async def fetch_image(self, url: str | None) -> tuple[bytes, str]:
        """
        Download an image

        Returns:
            Tuple of (content, media_type)

        Raises:
            ImageFetchError: If the URL is missing or the download fails
        """
        if not url:
            raise ImageFetchError("Program has no image URL")

        try:
            response = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ImageFetchError(f"Image download failed for {url}: {e}") from e

        if not response.is_success:
            raise ImageFetchError(f"Image download failed for {url}: HTTP {response.status_code}")

        media_type = response.headers.get("content-type", PLACEHOLDER_MEDIA_TYPE).split(";")[0].strip()
        return response.content, media_type

    async def load_program_image(self, program: Program) -> tuple[bytes, str]:
        """Fetch a program's image, falling back to the placeholder"""
        try:
            return await self.fetch_image(program.image_url)
        except ImageFetchError as e:
            logger.debug(f"Using placeholder image for '{program.name}': {e}")
            return PLACEHOLDER_IMAGE, PLACEHOLDER_MEDIA_TYPE

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        logger.debug(f"GET {url} params={params}")
        try:
            return await self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            logger.error(f"Request to {url} timed out after {self._config.http_timeout_sec}s")
            raise ConnectivityError(f"Request timed out: {url}") from e
        except httpx.TransportError as e:
            logger.error(f"Request to {url} failed: {type(e).__name__}: {e}")
            raise ConnectivityError(f"Request failed: {url}: {e}") from e

    async def _parse(self, parser: Callable[..., Any], *args: Any) -> Any:
        """Run a parser in the thread pool with the configured timeout"""
        timeout = self._config.parse_timeout_sec or None
        loop = asyncio.get_running_loop()
        task = loop.run_in_executor(None, parser, *args)
        try:
            if timeout:
                return await asyncio.wait_for(task, timeout=timeout)
            return await task
        except asyncio.TimeoutError as e:
            logger.error(f"XML parsing timed out after {timeout}s")
            raise ParseError("XML parsing timed out - document may be too large or malformed") from e
