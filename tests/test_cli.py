import json

import pytest

from order_intake.cli.main import main


@pytest.fixture
def workspace(monkeypatch, tmp_path):
    for key in ("ORDER_INTAKE_PATTERN_BACKEND", "ORDER_INTAKE_PATTERN_PATH", "ORDER_INTAKE_CATALOG", "ORDER_SINK_URL"):
        monkeypatch.delenv(key, raising=False)
    (tmp_path / "README.md").write_text("test marker", encoding="utf-8")
    (tmp_path / "order.txt").write_text("Greetings\nPark Jisoo\nThanks\nMenu\nKimbap 2\nRequests: none", encoding="utf-8")
    (tmp_path / "catalog.json").write_text('[{"id": "p1", "name": "Kimbap", "price": 1500}]', encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_analyze_prints_draft(workspace, capsys):
    assert main(["analyze", "--text", "order.txt", "--catalog", "catalog.json"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["draft"]["total_amount"] == 3000
    assert not (workspace / "var" / "patterns" / "patterns.json").exists()


def test_confirm_learns_and_logs_order(workspace, capsys):
    code = main(
        [
            "confirm",
            "--text",
            "order.txt",
            "--catalog",
            "catalog.json",
            "--mapping",
            '{"customerName": "2", "items": "5"}',
            "--set",
            "deliveryFee=1000",
        ]
    )
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["order"]["total_amount"] == 4000
    assert out["learned"] == ["customerName"]

    orders = (workspace / "var" / "orders" / "orders.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(orders) == 1

    assert main(["patterns", "show"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["customerName"][0]["above"] == "Greetings"


def test_patterns_path_and_bad_override(workspace, capsys):
    assert main(["patterns", "path", "--pattern-backend", "sqlite"]) == 0
    assert capsys.readouterr().out.strip() == str(workspace / "var" / "patterns" / "patterns.sqlite3")
    assert main(["confirm", "--text", "order.txt", "--set", "novalue"]) == 2


def test_missing_catalog_is_an_error(workspace):
    assert main(["analyze", "--text", "order.txt", "--catalog", "missing.json"]) == 1
