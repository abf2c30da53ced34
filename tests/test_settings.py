# tests/test_settings.py
"""
Tests de las utilidades de settings (helpers de entorno y carpetas de reports).
"""

import re

from tradejournal import settings


def test_env_helpers_fall_back_on_bad_values(monkeypatch):
    monkeypatch.setenv("TJ_TEST_FLOAT", "abc")
    monkeypatch.setenv("TJ_TEST_INT", "7")
    monkeypatch.setenv("TJ_TEST_BOOL", "Yes")
    assert settings._f("TJ_TEST_FLOAT", 1.5) == 1.5
    assert settings._i("TJ_TEST_INT", 0) == 7
    assert settings._b("TJ_TEST_BOOL", False) is True
    assert settings._b("TJ_TEST_MISSING", False) is False


def test_generate_report_dir_increments_run_number(tmp_path):
    first = settings.generate_report_dir("alice", base_dir=tmp_path)
    second = settings.generate_report_dir("alice", base_dir=tmp_path)
    assert re.fullmatch(r"alice_\d{4}-\d{2}-\d{2}_run01", first.name)
    assert second.name.endswith("_run02")
    assert first.is_dir() and second.is_dir()


def test_generate_report_dir_sanitizes_user(tmp_path):
    d = settings.generate_report_dir("a/b c", base_dir=tmp_path)
    assert d.parent == tmp_path
    assert d.name.startswith("abc_")
