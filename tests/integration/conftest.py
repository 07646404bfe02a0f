# SPDX-License-Identifier: Apache-2.0
"""
Pytest configuration and fixtures for integration tests.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport

from server_log.config import Settings
from server_log.main import create_app


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """Static root mirroring a small website."""
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.txt").write_text("hello")
    (root / "index.html").write_text("<!doctype html><title>home</title>")
    (root / "assets").mkdir()
    (root / "assets" / "app.js").write_text("console.log('hi');\n")
    (root / "assets" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)
    return root


@pytest.fixture
def test_settings(static_root: Path, tmp_path: Path) -> Settings:
    """Settings with the default strategy and limits."""
    return Settings(
        web_root=str(static_root),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def test_settings_with_fallback(test_settings: Settings) -> Settings:
    """Settings using the fallback document strategy."""
    return test_settings.model_copy(update={"fallback_file": "index.html"})


@pytest.fixture
def records() -> list[str]:
    return []


@pytest_asyncio.fixture
async def app(test_settings: Settings, records: list[str]) -> FastAPI:
    return create_app(test_settings, record_sink=records.append)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://test"
    ) as client:
        yield client


@pytest_asyncio.fixture
async def fallback_client(
    test_settings_with_fallback: Settings,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Client for an app using the fallback document strategy."""
    app = create_app(test_settings_with_fallback, record_sink=lambda text: None)
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://test"
    ) as client:
        yield client
