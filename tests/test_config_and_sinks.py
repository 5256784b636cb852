import argparse
import json

import pytest
import requests

from order_intake.config import build_intake_config
from order_intake.domain.models import FinalOrder, OrderLine
from order_intake.errors import OrderSubmissionError
from order_intake.orders.client import HttpOrderSink, JsonlOrderSink


ENV_KEYS = (
    "ORDER_INTAKE_PATTERN_BACKEND",
    "ORDER_INTAKE_PATTERN_PATH",
    "ORDER_INTAKE_CATALOG",
    "ORDER_SINK_URL",
    "ORDER_SINK_TOKEN",
    "ORDER_SINK_TIMEOUT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    (tmp_path / "README.md").write_text("test marker", encoding="utf-8")
    return tmp_path


def test_defaults_live_under_var(clean_env):
    config = build_intake_config(script_dir=str(clean_env))
    assert config.pattern_backend == "json"
    assert config.pattern_path == str(clean_env / "var" / "patterns" / "patterns.json")
    assert config.order_log_path == str(clean_env / "var" / "orders" / "orders.jsonl")
    assert config.catalog_path is None
    assert config.sink_url is None
    assert config.sink_timeout == 30


def test_env_then_dotenv(clean_env, monkeypatch):
    catalog = clean_env / "catalog.json"
    (clean_env / ".env").write_text(
        f"ORDER_INTAKE_CATALOG={catalog}\nORDER_SINK_URL=http://dotenv:8000\nORDER_SINK_TIMEOUT=abc\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ORDER_INTAKE_PATTERN_BACKEND", "sqlite")
    monkeypatch.setenv("ORDER_SINK_URL", "http://env:9000")
    config = build_intake_config(script_dir=str(clean_env))
    assert config.pattern_backend == "sqlite"
    assert config.pattern_path.endswith("patterns.sqlite3")
    assert config.catalog_path == str(catalog)
    assert config.sink_url == "http://env:9000"
    assert config.sink_timeout == 30


def test_args_take_precedence(clean_env, monkeypatch):
    monkeypatch.setenv("ORDER_INTAKE_PATTERN_BACKEND", "sqlite")
    args = argparse.Namespace(
        pattern_backend="json",
        patterns=str(clean_env / "custom.json"),
        catalog=None,
        sink_url="http://cli:1",
    )
    config = build_intake_config(args, script_dir=str(clean_env))
    assert config.pattern_backend == "json"
    assert config.pattern_path == str(clean_env / "custom.json")
    assert config.sink_url == "http://cli:1"


def test_unknown_backend_falls_back_to_json(clean_env, monkeypatch):
    monkeypatch.setenv("ORDER_INTAKE_PATTERN_BACKEND", "redis")
    assert build_intake_config(script_dir=str(clean_env)).pattern_backend == "json"


def _order():
    return FinalOrder(customer_name="Kim", items=[OrderLine("Kimbap", 2, 1500, "p1")], total_amount=3000)


def test_jsonl_sink_appends_records(tmp_path):
    path = tmp_path / "orders" / "orders.jsonl"
    sink = JsonlOrderSink(str(path))
    first = sink.create_order(_order())
    sink.create_order(_order())
    rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert len(rows) == 2
    assert rows[0]["order_id"] == first["order_id"]
    assert rows[0]["items"][0] == {"name": "Kimbap", "quantity": 2, "unit_price": 1500, "product_id": "p1"}


class _FakeResponse:
    status_code = 201

    def raise_for_status(self):
        return None

    def json(self):
        return {"id": 42}


def test_http_sink_posts_order(monkeypatch):
    sink = HttpOrderSink("http://backend:8080/", token="secret", timeout=5)
    calls = []

    def fake_post(url, json=None, timeout=None, verify=None):
        calls.append((url, json, timeout))
        return _FakeResponse()

    monkeypatch.setattr(sink.s, "post", fake_post)
    result = sink.create_order(_order())
    assert result == {"status_code": 201, "json": {"id": 42}}
    assert calls[0][0] == "http://backend:8080/api/orders"
    assert calls[0][1]["total_amount"] == 3000
    assert calls[0][2] == 5
    assert sink.s.headers["Authorization"] == "Token secret"


def test_http_sink_wraps_transport_errors(monkeypatch):
    sink = HttpOrderSink("http://backend:8080")

    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(sink.s, "post", fake_post)
    with pytest.raises(OrderSubmissionError):
        sink.create_order(_order())
