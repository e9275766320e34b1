"""
Pytest configuration and shared fixtures

APPROACH: no database server for unit tests
- Registries are built from in-memory sample channels/fields/categories
- FakeDatabase records queries and answers with canned rows
- The clock is fixed so expiry and future-entry filters are deterministic

Integration tests (APP_ENV=test) request content_store instead: a fresh
PostgreSQL test database, seeded through a writable connection, then read
through the same read-only DatabaseConnection the server uses.
"""

import os
import sys
import time
from pathlib import Path

import asyncpg
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import DatabaseConfig, QueryConfig
from container import RegistryContainer
from database import DatabaseConnection, ssl_setting
from query.builder import EntryQuery
from query.filters import FilterSet
from query.parameters import ParameterTranslator
from repositories import CategoryRepository, ChannelRepository, FieldRepository
from tests.fixtures import (
    CATEGORIES, CATEGORY_POSTS, CHANNELS, FIELDS, MEMBERS, NOW, FakeDatabase, seed_entries, split_row,
)

SCHEMA_FILE = Path(__file__).parent / "schema.sql"


@pytest.fixture
def channels():
    return ChannelRepository(CHANNELS)


@pytest.fixture
def fields():
    return FieldRepository(FIELDS)


@pytest.fixture
def categories():
    return CategoryRepository(CATEGORIES)


@pytest.fixture
def filters(channels, fields, categories):
    return FilterSet(channels, fields, categories, clock=lambda: NOW)


@pytest.fixture
def translator(filters):
    return ParameterTranslator(filters)


@pytest.fixture
def query():
    """Bare entry query without the channel_data join"""
    return EntryQuery("channel_titles")


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def repos(fake_db, channels, fields, categories):
    """RegistryContainer wired to the fake database"""
    return RegistryContainer(
        fake_db,
        channels,
        fields,
        categories,
        config=QueryConfig(parallel_preload=True, log_sql=True),
        clock=lambda: NOW,
    )


# ============================================================================
# PostgreSQL content store (integration tests)
# ============================================================================

async def _admin_connect(config: DatabaseConfig, database: str) -> asyncpg.Connection:
    """Writable connection, outside the read-only pool"""
    return await asyncpg.connect(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        database=database,
        ssl=ssl_setting(config.ssl_mode),
    )


async def _create_test_database(config: DatabaseConfig):
    """Create a fresh test content store"""
    sys_conn = await _admin_connect(config, 'postgres')
    try:
        await sys_conn.execute(f'DROP DATABASE IF EXISTS "{config.database}"')
        await sys_conn.execute(f'CREATE DATABASE "{config.database}"')
    finally:
        await sys_conn.close()


async def _insert(conn: asyncpg.Connection, table: str, row: dict):
    columns = ", ".join(f'"{column}"' for column in row)
    placeholders = ", ".join(f"${i}" for i in range(1, len(row) + 1))
    await conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", *row.values())


async def _setup_schema(config: DatabaseConfig, now: int):
    """Load schema.sql and seed registries, members, entries and category posts"""
    conn = await _admin_connect(config, config.database)
    try:
        await conn.execute(SCHEMA_FILE.read_text(encoding='utf-8'))

        for channel in CHANNELS:
            await _insert(conn, "channels", channel.model_dump())
        for field in FIELDS:
            await _insert(conn, "channel_fields", field.model_dump())
        for category in CATEGORIES:
            await _insert(conn, "categories", category.model_dump())
        for member in MEMBERS:
            await _insert(conn, "members", member)

        for row in seed_entries(now):
            titles, data = split_row(row)
            await _insert(conn, "channel_titles", titles)
            await _insert(conn, "channel_data", data)

        await conn.executemany(
            "INSERT INTO category_posts (entry_id, cat_id) VALUES ($1, $2)", CATEGORY_POSTS
        )
    finally:
        await conn.close()


async def _drop_test_database(config: DatabaseConfig):
    sys_conn = await _admin_connect(config, 'postgres')
    try:
        await sys_conn.execute(
            """
            SELECT pg_terminate_backend(pg_stat_activity.pid)
            FROM pg_stat_activity
            WHERE pg_stat_activity.datname = $1
              AND pid <> pg_backend_pid()
            """,
            config.database,
        )
        await sys_conn.execute(f'DROP DATABASE IF EXISTS "{config.database}"')
    finally:
        await sys_conn.close()


@pytest.fixture(scope="function")
async def content_store():
    """
    Seeded test database behind a read-only DatabaseConnection.

    Runs only with APP_ENV=test; DatabaseConfig.from_environment('test')
    refuses any DB_NAME without 'test' in it (validate_safety).
    """
    if os.getenv('APP_ENV') != 'test':
        pytest.skip("integration tests need APP_ENV=test and a PostgreSQL test database")

    config = DatabaseConfig.from_environment('test')
    await _create_test_database(config)
    await _setup_schema(config, int(time.time()))

    db = DatabaseConnection(config)
    await db.connect()

    yield db

    await db.disconnect()
    await _drop_test_database(config)
