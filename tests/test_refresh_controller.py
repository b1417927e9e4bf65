import asyncio
import unittest
from datetime import datetime, timedelta, timezone

import httpx

from radioinfo.config import RadioInfoSettings
from radioinfo.exceptions import ChannelNotFoundError
from radioinfo.models import SENTINEL_CHANNEL_ID
from radioinfo.services.data_loader import DataLoader
from radioinfo.services.notifications import Notification, NotificationKind
from radioinfo.services.refresh_controller import RefreshController, RefreshState
from radioinfo.utils.timezone import is_within_window

from xml_samples import channels_xml, episode_xml, format_utc, schedule_xml


NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _episode(title: str, offset_hours: float) -> str:
    start = NOW + timedelta(hours=offset_hours)
    return episode_xml(title, format_utc(start), format_utc(start + timedelta(minutes=45)))


class FakeApi:
    """Mock transport handler with switchable failure modes"""

    def __init__(self) -> None:
        self.channels = channels_xml((1, "P1"), (2, "P2"))
        self.schedules = {
            "1": schedule_xml(_episode("Too early", -13), _episode("Now", 0), _episode("Later", 11)),
            "2": schedule_xml(_episode("Morning", 2)),
        }
        self.offline = False
        self.gate: asyncio.Event | None = None
        self.channel_list_fetches = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("network unreachable", request=request)

        if request.url.path.endswith("/channels"):
            self.channel_list_fetches += 1
            return httpx.Response(200, content=self.channels)

        if self.gate is not None:
            await self.gate.wait()

        body = self.schedules.get(request.url.params.get("channelid"))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)


class RefreshControllerTests(unittest.IsolatedAsyncioTestCase):

    def setUp(self) -> None:
        self.config = RadioInfoSettings(api_base_url="http://api.test/api/v2", parse_timeout_sec=10)
        self.api = FakeApi()
        self.controller = RefreshController(
            self.config,
            loader_factory=lambda: DataLoader(
                self.config,
                transport=httpx.MockTransport(self.api),
                clock=lambda: NOW,
            ),
        )
        self.received: list[Notification] = []
        self.controller.notifications.subscribe(self.received.append)

    def _errors(self) -> list[Notification]:
        return [n for n in self.received if n.is_error]

    async def test_end_to_end_refresh_publishes_window(self) -> None:
        summary = await self.controller.refresh()

        self.assertEqual(summary.status, "success")
        channels = self.controller.get_snapshot()
        self.assertEqual([(c.id, c.name) for c in channels], [(1, "P1"), (2, "P2")])

        programs = self.controller.get_programs_for_channel(1)
        self.assertEqual([p.name for p in programs], ["Now", "Later"])
        for channel in channels:
            for program in channel.programs:
                self.assertTrue(is_within_window(program.start_time, NOW))

        self.assertEqual(self.controller.state, RefreshState.IDLE)
        self.assertIsNotNone(self.controller.snapshot.published_at)
        self.assertEqual(summary.channels_loaded, 2)
        self.assertEqual(summary.programs_loaded, 3)

    async def test_missing_schedule_marks_only_that_channel(self) -> None:
        del self.api.schedules["2"]

        summary = await self.controller.refresh()

        first, second = self.controller.get_snapshot()
        self.assertEqual(first.id, 1)
        self.assertEqual(len(first.programs), 2)
        self.assertEqual(second.id, SENTINEL_CHANNEL_ID)
        self.assertEqual(second.programs, ())
        self.assertEqual(summary.channels_without_schedule, 1)
        self.assertEqual(self._errors(), [])

    async def test_manual_refresh_during_refresh_is_dropped(self) -> None:
        self.api.gate = asyncio.Event()

        first = self.controller.trigger_refresh(reason="scheduled")
        self.assertIsNotNone(first)
        self.assertTrue(self.controller.is_refreshing())

        second = self.controller.trigger_refresh(reason="manual")
        self.assertIsNone(second)

        self.api.gate.set()
        summary = await first

        self.assertEqual(summary.status, "success")
        self.assertEqual(summary.reason, "scheduled")
        completed = [n for n in self.received if n.kind is NotificationKind.REFRESH_COMPLETED]
        self.assertEqual(len(completed), 1)
        # connectivity probe plus one channel list fetch
        self.assertEqual(self.api.channel_list_fetches, 2)
        self.assertEqual(self.controller.state, RefreshState.IDLE)

    async def test_refresh_allowed_again_after_completion(self) -> None:
        await self.controller.refresh()
        summary = await self.controller.refresh()
        self.assertEqual(summary.status, "success")

    async def test_connectivity_failure_keeps_previous_snapshot(self) -> None:
        await self.controller.refresh()
        previous = self.controller.snapshot
        self.received.clear()

        self.api.offline = True
        summary = await self.controller.refresh()

        self.assertEqual(summary.status, "failed")
        self.assertIs(self.controller.snapshot, previous)
        errors = self._errors()
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].kind, NotificationKind.CONNECTIVITY_FAILED)
        self.assertEqual(self.controller.state, RefreshState.IDLE)

    async def test_connectivity_failure_on_first_refresh_leaves_empty_snapshot(self) -> None:
        self.api.offline = True
        await self.controller.refresh()

        self.assertEqual(self.controller.get_snapshot(), ())
        self.assertIsNone(self.controller.snapshot.published_at)
        self.assertEqual(len(self._errors()), 1)

    async def test_parse_failure_aborts_without_partial_publish(self) -> None:
        await self.controller.refresh()
        previous = self.controller.snapshot
        self.received.clear()

        self.api.schedules["2"] = b"<sr><schedule><scheduledepisode>"
        summary = await self.controller.refresh()

        self.assertEqual(summary.status, "failed")
        self.assertIs(self.controller.snapshot, previous)
        errors = self._errors()
        self.assertEqual([n.kind for n in errors], [NotificationKind.LOAD_FAILED])

    async def test_refresh_started_notification_precedes_result(self) -> None:
        await self.controller.refresh()
        kinds = [n.kind for n in self.received]
        self.assertEqual(kinds, [NotificationKind.REFRESH_STARTED, NotificationKind.REFRESH_COMPLETED])

    async def test_unknown_channel_raises(self) -> None:
        await self.controller.refresh()
        with self.assertRaises(ChannelNotFoundError):
            self.controller.get_programs_for_channel(999)

    async def test_sentinel_channel_reports_missing_schedule(self) -> None:
        del self.api.schedules["2"]
        await self.controller.refresh()
        self.received.clear()

        programs = self.controller.get_programs_for_channel(SENTINEL_CHANNEL_ID)

        self.assertEqual(programs, ())
        self.assertEqual([n.kind for n in self.received], [NotificationKind.NO_SCHEDULE])

    async def test_get_program_by_position(self) -> None:
        await self.controller.refresh()

        self.assertEqual(self.controller.get_program(1, 1).name, "Later")
        with self.assertRaises(IndexError):
            self.controller.get_program(1, 5)

    async def test_aclose_cancels_running_refresh(self) -> None:
        self.api.gate = asyncio.Event()
        completion = self.controller.trigger_refresh()

        await asyncio.sleep(0)
        await self.controller.aclose()
        summary = await completion

        self.assertEqual(summary.status, "failed")
        self.assertEqual(summary.error, "cancelled")
        self.assertEqual(self.controller.state, RefreshState.IDLE)
        self.assertEqual(self._errors(), [])


if __name__ == "__main__":
    unittest.main()
