"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from trustroot.core.settings import BackendSettings, TreeSettings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for var in (
            "TRUSTROOT_TREE_DEPTH",
            "TRUSTROOT_TREE_WORKERS",
            "TRUSTROOT_STORE_BASE_DIR",
            "TRUSTROOT_BACKEND_BB_BINARY",
            "TRUSTROOT_BACKEND_TIMEOUT",
            "TRUSTROOT_BACKEND_HASH_TIMEOUT",
            "TRUSTROOT_BACKEND_PEDERSEN_GOLDEN",
            "TRUSTROOT_LOG_LEVEL",
        ):
            monkeypatch.delenv(var, raising=False)
        settings = get_settings()
        assert settings.tree.depth == 8
        assert settings.tree.workers == 1
        assert settings.store.base_dir == "out"
        assert settings.backend.bb_binary == "bb"
        assert settings.backend.timeout == 300.0
        assert settings.backend.hash_timeout == 30.0
        assert settings.backend.pedersen_golden is None
        assert settings.runtime.log_level == "INFO"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("TRUSTROOT_TREE_WORKERS", "4")
        monkeypatch.setenv("TRUSTROOT_STORE_BASE_DIR", "/var/lib/trustroot")
        monkeypatch.setenv("TRUSTROOT_LOG_LEVEL", "debug")
        settings = get_settings()
        assert settings.tree.workers == 4
        assert settings.store.base_dir == "/var/lib/trustroot"
        assert settings.runtime.log_level == "DEBUG"

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_depth_bounds(self):
        with pytest.raises(ValidationError):
            TreeSettings(depth=0)
        with pytest.raises(ValidationError):
            TreeSettings(depth=33)

    def test_golden_normalized(self):
        assert BackendSettings(pedersen_golden="0xABCD").pedersen_golden == "abcd"
        assert BackendSettings(pedersen_golden="").pedersen_golden is None

    def test_unknown_log_level_falls_back(self, monkeypatch):
        monkeypatch.setenv("TRUSTROOT_LOG_LEVEL", "chatty")
        assert get_settings().runtime.log_level == "INFO"
