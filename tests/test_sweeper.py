"""
Tests for the retention sweeper.
"""
import json

import pytest

HOUR = 3600


class TestRetentionSweeper:

    @pytest.mark.asyncio
    async def test_expired_room_is_purged_from_both_stores(self, open_room, join, sweeper, store, registry, clock, backend):
        code, _, _ = await open_room()
        await join(code)

        clock.advance(48 * HOUR + 1)
        assert sweeper.sweep() == [code]

        assert store.get(code) is None
        assert code not in registry
        assert code not in json.loads(backend.read())["rooms"]

    @pytest.mark.asyncio
    async def test_join_after_purge_is_rejected(self, open_room, sweeper, clock, connect, send):
        code, _, _ = await open_room()
        clock.advance(49 * HOUR)
        sweeper.sweep()

        conn, ws = connect()
        await send(conn, {"type": "join_room", "playerName": "Bo", "roomCode": code})
        assert [m["type"] for m in ws.sent] == ["room_error"]

    @pytest.mark.asyncio
    async def test_young_rooms_survive(self, open_room, sweeper, store, clock):
        old_code, _, _ = await open_room()
        clock.advance(24 * HOUR)
        young_code, _, _ = await open_room()
        clock.advance(25 * HOUR)

        assert sweeper.sweep() == [old_code]
        assert store.get(young_code) is not None

    @pytest.mark.asyncio
    async def test_exactly_at_ttl_is_kept(self, open_room, sweeper, store, clock):
        code, _, _ = await open_room()
        clock.advance(48 * HOUR)
        assert sweeper.sweep() == []
        assert store.get(code) is not None

    @pytest.mark.asyncio
    async def test_live_connections_are_not_notified(self, open_room, join, sweeper, clock):
        code, _, master_ws = await open_room()
        _, _, player_ws = await join(code)
        before = (len(master_ws.sent), len(player_ws.sent))

        clock.advance(49 * HOUR)
        sweeper.sweep()

        assert (len(master_ws.sent), len(player_ws.sent)) == before
