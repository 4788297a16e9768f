from __future__ import annotations

from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

from kiosk_ledger.app import create_app
from kiosk_ledger.config import Settings
from kiosk_ledger.ledger import LedgerManager


@pytest.fixture()
def storage_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger.json"


@pytest.fixture()
def manager(storage_path: Path) -> LedgerManager:
    return LedgerManager(storage_path)


@pytest.fixture()
def settings(storage_path: Path) -> Settings:
    return Settings(
        storage_path=storage_path,
        environment="test",
        secret_key="test-secret",
        app_name="Test Kiosk Ledger",
    )


@pytest.fixture()
def app(settings: Settings) -> Flask:
    app = create_app(settings=settings)
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    return app.test_client()
