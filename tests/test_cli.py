# File: tests/test_cli.py
"""Тесты для CLI (`stay_scout.cli`) с использованием click.testing.CliRunner.
Проверяют команды `call`, `tools`, `config`, `--version`, а также обработку ошибок.
"""
import importlib
import json

import pytest
from click.testing import CliRunner
from stay_scout.cli import cli
from stay_scout.logger import init_logging
from stay_scout.normalizer import ToolOutcome

# stay_scout.cli as an attribute is the click group exported by the package
cli_module = importlib.import_module("stay_scout.cli")

QUIET = ["--log-level", "CRITICAL"]


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Без configs/default.yaml в рабочей папке и без переменных окружения."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("IGNORE_ROBOTS_TXT", raising=False)
    yield
    # CliRunner закрывает свой stderr; возвращаем обработчик на настоящий
    init_logging("WARNING")


@pytest.fixture()
def calls(monkeypatch):
    """Патчим run_tool: запоминаем аргументы и не ходим в сеть."""
    seen = []

    async def fake_run_tool(cfg, name, arguments):
        seen.append((cfg, name, arguments))
        return ToolOutcome.success({"tool": name, "arguments": arguments})

    monkeypatch.setattr(cli_module, "run_tool", fake_run_tool)
    return seen


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "StayScout" in result.output


def test_tools_lists_definitions():
    result = CliRunner().invoke(cli, QUIET + ["tools"])
    assert result.exit_code == 0
    names = [t["name"] for t in json.loads(result.stdout)]
    assert "getListingPhotos" in names
    assert len(names) == 7


def test_show_config_from_file(tmp_path):
    cfg_file = tmp_path / "custom.json"
    cfg_file.write_text(json.dumps({"base_url": "https://example.com/", "max_photos": 5}), encoding="utf-8")

    result = CliRunner().invoke(cli, QUIET + ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["base_url"].rstrip("/") == "https://example.com"
    assert data["max_photos"] == 5
    assert data["ignore_robots_txt"] is False


def test_env_and_flag_disable_robots(monkeypatch):
    monkeypatch.setenv("IGNORE_ROBOTS_TXT", "true")
    result = CliRunner().invoke(cli, QUIET + ["config"])
    assert json.loads(result.stdout)["ignore_robots_txt"] is True

    monkeypatch.delenv("IGNORE_ROBOTS_TXT")
    result = CliRunner().invoke(cli, QUIET + ["--ignore-robots-txt", "config"])
    assert json.loads(result.stdout)["ignore_robots_txt"] is True


def test_invalid_config_file(tmp_path):
    cfg_file = tmp_path / "bad.yaml"
    cfg_file.write_text("unknown_key: 1\n", encoding="utf-8")

    result = CliRunner().invoke(cli, QUIET + ["--config", str(cfg_file), "config"])
    assert result.exit_code == 1


def test_call_prints_envelope(calls):
    result = CliRunner().invoke(cli, QUIET + ["call", "getListingPhotos", "--args", '{"id": "12345"}'])
    assert result.exit_code == 0
    envelope = json.loads(result.stdout)
    assert envelope["isError"] is False
    payload = json.loads(envelope["content"][0]["text"])
    assert payload["tool"] == "getListingPhotos"
    assert calls[0][1:] == ("getListingPhotos", {"id": "12345"})


def test_call_rejects_bad_json(calls):
    result = CliRunner().invoke(cli, QUIET + ["call", "search", "--args", "{oops"])
    assert result.exit_code == 1
    assert calls == []
