#!/usr/bin/env python3
"""Tests for start/stop/restart dispatch."""

from __future__ import annotations

import asyncio
import unittest

import aiohttp

from livesync.actions import ActionDispatcher
from livesync.models import ActionKind, RenderMode, Target
from tests.fakes import FakeSupervisor, RecordingRenderer, eventually


class ActionDispatcherTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.api = FakeSupervisor()
        self.renderer = RecordingRenderer()
        self.refreshes = 0

        async def refresh() -> None:
            self.refreshes += 1

        self.dispatcher = ActionDispatcher(self.api, self.renderer, refresh)

    def _appended(self) -> list:
        return self.renderer.renders(Target.WORKER_LOGS)

    async def test_success_appends_one_info_line(self) -> None:
        ok = await self.dispatcher.dispatch(ActionKind.START, "p")
        self.assertTrue(ok)
        renders = self._appended()
        self.assertEqual(len(renders), 1)
        entries, mode = renders[0]
        self.assertEqual(mode, RenderMode.APPEND)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].level, "info")
        self.assertIn("p", entries[0].message)
        self.assertEqual(entries[0].message, "Process p started successfully")
        self.assertEqual(self.refreshes, 1)

    async def test_failure_appends_one_error_line(self) -> None:
        self.api.action_result = False
        ok = await self.dispatcher.dispatch(ActionKind.STOP, "p")
        self.assertFalse(ok)
        (entries, _), = self._appended()
        self.assertEqual(entries[0].level, "error")
        self.assertEqual(entries[0].message, "Failed to stop process p")
        self.assertEqual(self.refreshes, 1)

    async def test_raised_transport_error_matches_false_case(self) -> None:
        self.api.action_result = False
        await self.dispatcher.dispatch(ActionKind.RESTART, "p")
        self.api.action_result = aiohttp.ClientConnectionError("connection reset")
        with self.assertLogs("livesync.actions", "ERROR"):
            ok = await self.dispatcher.dispatch(ActionKind.RESTART, "p")
        self.assertFalse(ok)
        (first, _), (second, _) = self._appended()
        self.assertEqual((first[0].level, first[0].message), (second[0].level, second[0].message))
        self.assertFalse(self.dispatcher.is_busy("p", ActionKind.RESTART))
        self.assertEqual(self.refreshes, 2)

    async def test_busy_control_allows_one_outstanding_call(self) -> None:
        gate = asyncio.Event()
        self.api.gates[("action", "p", "start")] = gate

        first = asyncio.create_task(self.dispatcher.dispatch(ActionKind.START, "p"))
        await eventually(lambda: self.api.count("action", "p") == 1)
        self.assertTrue(self.dispatcher.is_busy("p", ActionKind.START))

        second = await self.dispatcher.dispatch(ActionKind.START, "p")
        self.assertIsNone(second)
        self.assertEqual(self.api.count("action", "p", "start"), 1)

        gate.set()
        self.assertTrue(await first)
        self.assertFalse(self.dispatcher.is_busy("p", ActionKind.START))
        self.assertEqual(len(self._appended()), 1)

    async def test_different_controls_do_not_block_each_other(self) -> None:
        gate = asyncio.Event()
        self.api.gates[("action", "p1", "stop")] = gate

        slow = asyncio.create_task(self.dispatcher.dispatch(ActionKind.STOP, "p1"))
        await eventually(lambda: self.api.count("action", "p1") == 1)

        self.assertTrue(await self.dispatcher.dispatch(ActionKind.STOP, "p2"))
        self.assertTrue(await self.dispatcher.dispatch(ActionKind.START, "p1"))
        self.assertEqual(self.dispatcher.busy_controls, {("p1", ActionKind.STOP)})

        gate.set()
        await slow
        self.assertEqual(self.dispatcher.busy_controls, frozenset())


if __name__ == "__main__":
    unittest.main(verbosity=2)
