"""Tests for the database handle."""

import asyncio

import pytest

from app.core.database import CONNECTED, DISCONNECTED, Database
from app.core.errors import ServiceUnavailableError

UNREACHABLE_URL = "sqlite:////nonexistent-directory/meter_reader.db"


class TestDatabase:
    """Connection lifecycle of ``Database``."""

    @pytest.mark.asyncio
    async def test_connect(self, database):
        await database.connect()
        try:
            assert database.get_connection_status() == CONNECTED
            with database.session() as session:
                assert session.bind is database.engine
        finally:
            await database.disconnect()
        assert database.get_connection_status() == DISCONNECTED

    def test_session_before_connect(self, database):
        assert database.get_connection_status() == DISCONNECTED
        with pytest.raises(ServiceUnavailableError):
            database.session()

    @pytest.mark.asyncio
    async def test_unreachable_database_does_not_raise(self):
        database = Database(UNREACHABLE_URL, retry_delay=60)
        await database.connect()
        try:
            assert database.get_connection_status() == DISCONNECTED
            assert database._retry_task is not None
        finally:
            await database.disconnect()
        assert database._retry_task is None

    @pytest.mark.asyncio
    async def test_retries_until_connected(self, database, monkeypatch):
        attempts = []
        real_try_connect = database._try_connect

        def flaky_try_connect():
            attempts.append(1)
            if len(attempts) < 3:
                return False
            return real_try_connect()

        monkeypatch.setattr(database, "_try_connect", flaky_try_connect)
        await database.connect()
        try:
            for _ in range(200):
                if database.engine is not None:
                    break
                await asyncio.sleep(0.01)
            assert database.get_connection_status() == CONNECTED
            assert len(attempts) == 3
        finally:
            await database.disconnect()
