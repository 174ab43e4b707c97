from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterable, List, Tuple
from unittest.mock import MagicMock

from multidict import CIMultiDict

from hailo_libero.api import HailoTransport
from hailo_libero.client import HailoClient
from hailo_libero.profiles import get_profile
from hailo_libero.scheduler import ScheduledTask
from hailo_libero.session import SessionManager

BASE_URL = "http://192.168.1.50:81"


class MockResponse:
    def __init__(
        self,
        status: int,
        text_data: str = "",
        *,
        headers: Iterable[Tuple[str, str]] | dict | None = None,
    ) -> None:
        self.status = status
        self._text = text_data
        self.headers = CIMultiDict(headers or {})

    async def __aenter__(self) -> "MockResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover
        return None

    async def text(self) -> str:
        return self._text


def make_client(
    responses: List[Any] | None = None,
    *,
    profile: str = "pin_form",
    password: str = "1234",
) -> Tuple[HailoClient, MagicMock]:
    """HailoClient over a MagicMock aiohttp session answering ``responses`` in order."""
    session = MagicMock()
    if responses is not None:
        session.request.side_effect = list(responses)
    prof = get_profile(profile)
    transport = HailoTransport(session, BASE_URL)
    sessions = SessionManager(transport, prof, password)
    return HailoClient(transport, prof, sessions), session


def requested(session: MagicMock) -> List[Tuple[str, str]]:
    """(method, url) of every request made on a mocked session."""
    return [tuple(c[0][:2]) for c in session.request.call_args_list]


class FakeScheduler:
    """Manual clock: timers fire only when the test calls advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._entries: List[Tuple[float, ScheduledTask, Callable[[], Awaitable[None]]]] = []
        self.fired: List[str] = []

    def call_later(self, delay, callback, *, name: str = "") -> ScheduledTask:
        task = ScheduledTask(name)
        self._entries.append((self.now + delay, task, callback))
        return task

    def pending(self, name: str | None = None) -> List[ScheduledTask]:
        return [
            t
            for _, t, _ in self._entries
            if t.pending and (name is None or t.name == name)
        ]

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (e for e in self._entries if e[1].pending and e[0] <= target),
                key=lambda e: e[0],
            )
            if not due:
                break
            when, task, callback = due[0]
            self.now = when
            task._mark_fired()
            self.fired.append(task.name)
            asyncio.get_running_loop().create_task(callback())
            await settle()
        self.now = target


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)
