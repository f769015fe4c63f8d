from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError
from sqlalchemy import Select

from app.logging import JsonFormatter
from app.models import Property
from app.services.properties import property_query
from app.settings import Settings


def test_property_query_excludes_deleted_unless_asked() -> None:
    default_stmt: Select[tuple[Property]] = property_query()
    compiled = str(default_stmt.compile(compile_kwargs={"literal_binds": True}))
    assert "properties.deleted_at IS NULL" in compiled

    everything = str(property_query(include_deleted=True).compile(compile_kwargs={"literal_binds": True}))
    assert "deleted_at" not in everything.split("FROM", 1)[1]


def test_settings_reject_dev_bypass_outside_development() -> None:
    with pytest.raises(ValidationError):
        Settings(app_env="production", dev_auth_bypass=True)


def test_settings_require_redis_for_live_dispatch() -> None:
    with pytest.raises(ValidationError):
        Settings(app_env="staging", notification_dispatch_mode="live", redis_url="")


def test_settings_allow_dev_bypass_in_development() -> None:
    config = Settings(app_env="development", dev_auth_bypass=True)
    assert config.dev_auth_bypass is True
    assert config.read_notification_ttl_days == 30


def test_json_formatter_includes_request_id() -> None:
    record = logging.LogRecord("app.errors", logging.INFO, __file__, 10, "rejected %s", ("conflict",), None)
    record.request_id = "req-42"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "rejected conflict"
    assert payload["level"] == "INFO"
    assert payload["request_id"] == "req-42"
