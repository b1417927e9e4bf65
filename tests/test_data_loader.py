import unittest
from datetime import datetime, timedelta, timezone

import httpx

from radioinfo.config import RadioInfoSettings
from radioinfo.exceptions import ConnectivityError, ImageFetchError, LoadError, ParseError
from radioinfo.models import SENTINEL_CHANNEL_ID, Program
from radioinfo.services.data_loader import PLACEHOLDER_IMAGE, PLACEHOLDER_MEDIA_TYPE, DataLoader

from xml_samples import channels_xml, episode_xml, format_utc, schedule_xml


NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
BASE_URL = "http://api.test/api/v2"


def _episode(title: str, offset_hours: float) -> str:
    start = NOW + timedelta(hours=offset_hours)
    return episode_xml(title, format_utc(start), format_utc(start + timedelta(hours=1)))


class DataLoaderTests(unittest.IsolatedAsyncioTestCase):
    """Data loader against a mocked API"""

    def setUp(self) -> None:
        self.config = RadioInfoSettings(api_base_url=BASE_URL, http_timeout_sec=5, parse_timeout_sec=10)
        self.requests: list[httpx.Request] = []
        self.schedules: dict[str, bytes] = {
            "1": schedule_xml(_episode("Too early", -13), _episode("Now", 0), _episode("Later", 11)),
        }
        self.channels = channels_xml((1, "P1"), (2, "P2"))

    def _handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/channels"):
            return httpx.Response(200, content=self.channels)
        if request.url.path.endswith("/scheduledepisodes"):
            body = self.schedules.get(request.url.params.get("channelid"))
            if body is None:
                return httpx.Response(404, content=b"<error>not found</error>")
            return httpx.Response(200, content=body)
        return httpx.Response(404)

    def _loader(self, handler=None) -> DataLoader:
        transport = httpx.MockTransport(handler or self._handler)
        return DataLoader(self.config, transport=transport, clock=lambda: NOW)

    async def test_fetch_channels(self) -> None:
        async with self._loader() as loader:
            channels = await loader.fetch_channels()

        self.assertEqual([(c.id, c.name) for c in channels], [(1, "P1"), (2, "P2")])
        self.assertEqual(self.requests[0].url.params["pagination"], "false")

    async def test_fetch_schedule_builds_day_query(self) -> None:
        async with self._loader() as loader:
            programs, found = await loader.fetch_schedule(1)

        self.assertTrue(found)
        self.assertEqual([p.name for p in programs], ["Now", "Later"])

        params = self.requests[0].url.params
        self.assertEqual(params["channelid"], "1")
        self.assertEqual(params["pagination"], "false")
        self.assertEqual(params["fromdate"], "2025-06-15")
        self.assertEqual(params["todate"], "2025-06-16")

    async def test_fetch_schedule_not_found_is_soft(self) -> None:
        async with self._loader() as loader:
            programs, found = await loader.fetch_schedule(2)

        self.assertFalse(found)
        self.assertEqual(programs, [])

    async def test_server_error_is_load_error(self) -> None:
        loader = self._loader(lambda request: httpx.Response(500))
        async with loader:
            with self.assertRaises(LoadError):
                await loader.fetch_schedule(1)
            with self.assertRaises(LoadError):
                await loader.fetch_channels()

    async def test_transport_failure_is_connectivity_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with self._loader(handler) as loader:
            with self.assertRaises(ConnectivityError):
                await loader.fetch_channels()
            with self.assertRaises(ConnectivityError):
                await loader.check_connectivity()

    async def test_timeout_is_connectivity_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with self._loader(handler) as loader:
            with self.assertRaises(ConnectivityError) as ctx:
                await loader.fetch_schedule(1)
        self.assertIsInstance(ctx.exception, LoadError)

    async def test_connectivity_check_accepts_any_response(self) -> None:
        async with self._loader(lambda request: httpx.Response(503)) as loader:
            await loader.check_connectivity()

    async def test_malformed_channel_list_is_parse_error(self) -> None:
        self.channels = b"<sr><channels><channel id='x' name='Bad'/></channels></sr>"
        async with self._loader() as loader:
            with self.assertRaises(ParseError):
                await loader.fetch_channels()

    async def test_load_marks_channels_without_schedule(self) -> None:
        async with self._loader() as loader:
            channels = await loader.load_channels_with_schedules()

        self.assertEqual(len(channels), 2)
        self.assertEqual(channels[0].id, 1)
        self.assertEqual([p.name for p in channels[0].programs], ["Now", "Later"])
        self.assertEqual(channels[1].id, SENTINEL_CHANNEL_ID)
        self.assertEqual(channels[1].name, "P2")
        self.assertEqual(channels[1].programs, ())

    async def test_load_aborts_on_malformed_schedule(self) -> None:
        self.schedules["2"] = b"<sr><schedule>"
        async with self._loader() as loader:
            with self.assertRaises(ParseError):
                await loader.load_channels_with_schedules()

    async def test_loader_requires_context(self) -> None:
        with self.assertRaises(RuntimeError):
            await self._loader().fetch_channels()


class ProgramImageTests(unittest.IsolatedAsyncioTestCase):

    def setUp(self) -> None:
        self.config = RadioInfoSettings(api_base_url=BASE_URL)

    def _loader(self, handler) -> DataLoader:
        return DataLoader(self.config, transport=httpx.MockTransport(handler))

    def _program(self, image_url: str | None) -> Program:
        return Program("Ekot", "", "2025-06-15 14:00:00", "2025-06-15 14:30:00", image_url)

    async def test_image_is_downloaded(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"jpegdata", headers={"content-type": "image/jpeg"})

        async with self._loader(handler) as loader:
            content, media_type = await loader.load_program_image(self._program("http://img.test/a.jpg"))

        self.assertEqual(content, b"jpegdata")
        self.assertEqual(media_type, "image/jpeg")

    async def test_failed_image_falls_back_to_placeholder(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        async with self._loader(handler) as loader:
            with self.assertRaises(ImageFetchError):
                await loader.fetch_image("http://img.test/a.jpg")
            content, media_type = await loader.load_program_image(self._program("http://img.test/a.jpg"))

        self.assertEqual(content, PLACEHOLDER_IMAGE)
        self.assertEqual(media_type, PLACEHOLDER_MEDIA_TYPE)

    async def test_missing_image_url_uses_placeholder(self) -> None:
        async with self._loader(lambda request: httpx.Response(200)) as loader:
            content, _ = await loader.load_program_image(self._program(None))
        self.assertEqual(content, PLACEHOLDER_IMAGE)

    async def test_image_not_found_uses_placeholder(self) -> None:
        async with self._loader(lambda request: httpx.Response(404)) as loader:
            content, _ = await loader.load_program_image(self._program("http://img.test/missing.jpg"))
        self.assertEqual(content, PLACEHOLDER_IMAGE)


if __name__ == "__main__":
    unittest.main()
