"""Shared test fixtures and configuration for the AirLedger test suite."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from common.config import Settings
from ledger.client import LedgerClient
from ledger.models import Reading
from ledger.sql_store import SqlLedgerStore

TEST_LEDGER_ADDRESS = "0xTESTLEDGER"
TEST_WRITER = "test-writer"

BASE_SETTINGS = Settings(
    ledger_backend="sql",
    ledger_endpoint="sqlite://",
    ledger_address=TEST_LEDGER_ADDRESS,
    deployment_file=None,
    network_id=None,
    writer_identity=TEST_WRITER,
    gas=1000000,
    write_timeout=5.0,
    read_timeout=5.0,
    archive_token=None,
    archive_url="https://archive.invalid/pin",
    archive_timeout=1.0,
    archive_attempts=2,
    generation_interval=10.0,
    dashboard_poll_interval=5.0,
    last_n_size=10,
    log_level="INFO",
)


def make_settings(**overrides) -> Settings:
    return replace(BASE_SETTINGS, **overrides)


def make_reading(co2=400, no2=25, pm25=6, pm10=10, index=None, ts=None) -> Reading:
    return Reading(
        timestamp=ts or datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
        co2=co2,
        no2=no2,
        pm25=pm25,
        pm10=pm10,
        index=index,
    )


@pytest.fixture()
def ledger_url(tmp_path):
    """A file-backed SQLite ledger, fresh for every test."""
    return f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture()
def settings(ledger_url):
    return make_settings(ledger_endpoint=ledger_url)


@pytest.fixture()
def sql_store(ledger_url):
    store = SqlLedgerStore.from_url(ledger_url, TEST_LEDGER_ADDRESS, TEST_WRITER, timeout=5.0)
    yield store
    store.close()


@pytest.fixture()
def ledger_client(sql_store):
    client = LedgerClient(
        sql_store,
        writer=TEST_WRITER,
        write_timeout=5.0,
        read_timeout=5.0,
        retry_delay=0.01,
    )
    yield client
    client.close()
