import asyncio
import unittest
from datetime import timedelta

from taskboard.auth import InMemoryAuthBackend
from taskboard.board import BoardState
from taskboard.db import InMemoryTaskStore
from taskboard.tests.fakes import SlowAuthBackend
from taskboard.views import ViewRegistry


class ViewRegistryTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.now = 0.0
        self.backend = InMemoryAuthBackend()
        self.registry = ViewRegistry(
            self.backend,
            InMemoryTaskStore(),
            max_idle=timedelta(hours=1),
            clock=lambda: self.now,
        )

    def tearDown(self):
        self.registry.close_all()

    async def test_get_opens_one_view_per_session(self):
        token = self.backend.create_session("a@x.com")

        view = await self.registry.get(token)

        self.assertEqual(view.identity, "a@x.com")
        self.assertEqual(view.board.state, BoardState.LOADING)
        self.assertIs(await self.registry.get(token), view)

    async def test_missing_or_unknown_session_has_no_view(self):
        self.assertIsNone(await self.registry.get(None))
        for n in range(200):
            self.assertIsNone(await self.registry.get(f"bogus-{n}"))
        self.assertEqual(self.registry.views, {})
        self.assertEqual(self.backend.sessions, {})

    async def test_concurrent_requests_share_a_view(self):
        backend = SlowAuthBackend()
        registry = ViewRegistry(backend, InMemoryTaskStore())
        token = backend.create_session("a@x.com")

        first, second = await asyncio.gather(registry.get(token), registry.get(token))

        self.assertEqual(backend.providers_built, 2)
        self.assertIs(first, second)
        self.assertEqual(list(registry.views), [token])
        registry.close_all()
        self.assertTrue(first.board.closed)

    async def test_ended_session_closes_its_view(self):
        token = self.backend.create_session("a@x.com")
        view = await self.registry.get(token)

        self.backend.end_session(token)

        self.assertIsNone(await self.registry.get(token))
        self.assertEqual(self.registry.views, {})
        self.assertTrue(view.board.closed)

    async def test_idle_views_are_evicted(self):
        idle = self.backend.create_session("a@x.com")
        active = self.backend.create_session("b@x.com")
        idle_view = await self.registry.get(idle)
        await self.registry.get(active)

        self.now += timedelta(minutes=45).total_seconds()
        await self.registry.get(active)
        self.now += timedelta(minutes=30).total_seconds()
        self.registry.evict_idle()

        self.assertEqual(list(self.registry.views), [active])
        self.assertTrue(idle_view.board.closed)

    async def test_evicted_session_reopens_while_signed_in(self):
        token = self.backend.create_session("a@x.com")
        first = await self.registry.get(token)

        self.now += timedelta(hours=2).total_seconds()
        second = await self.registry.get(token)

        self.assertIsNot(first, second)
        self.assertTrue(first.board.closed)
        self.assertEqual(second.identity, "a@x.com")

    async def test_logout_ends_session_and_view(self):
        token = self.backend.create_session("a@x.com")
        view = await self.registry.get(token)

        route = await self.registry.logout(token)

        self.assertEqual(route, "/login")
        self.assertEqual(self.registry.views, {})
        self.assertTrue(view.board.closed)
        self.assertNotIn(token, self.backend.sessions)
        self.assertIsNone(await self.registry.get(token))

    async def test_logout_without_session(self):
        self.assertEqual(await self.registry.logout(None), "/login")
        self.assertEqual(await self.registry.logout("bogus"), "/login")


if __name__ == "__main__":
    unittest.main()
