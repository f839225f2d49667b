"""
Tests for the configuration system and the package-level helpers.
"""

import json
import logging

import pytest

import regarima
from regarima.core.config import (
    ConfigManager, get_config, get_config_manager, get_numerical_config,
    reset_config, set_config
)
from regarima.core.exceptions import ConfigurationError
from regarima.version import get_version_components, get_version_info, is_compatible_with


@pytest.fixture
def manager(tmp_path, monkeypatch):
    """A fresh configuration manager reading its file from a temporary directory."""
    monkeypatch.setenv("REGARIMA_CONFIG_DIR", str(tmp_path))
    return ConfigManager()


class TestConfigManager:
    """Tests for the layered configuration."""

    def test_defaults(self, manager):
        """Test the built-in numerical defaults."""
        manager.initialize()
        assert manager.get("numerical", "function_precision") == 1e-9
        assert manager.get("numerical", "max_iterations") == 100
        assert manager.get("numerical", "steady_state_tolerance") == 1e-12
        assert manager.get("performance", "parallel_processing") is False
        assert manager.get("core", "enable_numba") is True

    def test_environment_override(self, manager, monkeypatch):
        """Test that REGARIMA_<SECTION>_<OPTION> variables override the defaults."""
        monkeypatch.setenv("REGARIMA_NUMERICAL_MAX_ITERATIONS", "50")
        monkeypatch.setenv("REGARIMA_PERFORMANCE_PARALLEL_PROCESSING", "true")
        monkeypatch.setenv("REGARIMA_NUMERICAL_FUNCTION_PRECISION", "1e-7")
        manager.initialize()
        assert manager.get("numerical", "max_iterations") == 50
        assert manager.get("performance", "parallel_processing") is True
        assert manager.get("numerical", "function_precision") == 1e-7

    def test_invalid_environment_value(self, manager, monkeypatch):
        """Test that an unconvertible override is ignored."""
        monkeypatch.setenv("REGARIMA_NUMERICAL_MAX_ITERATIONS", "many")
        manager.initialize()
        assert manager.get("numerical", "max_iterations") == 100

    def test_save_and_load(self, manager, tmp_path):
        """Test that a saved configuration is read back."""
        manager.initialize()
        manager.set("numerical", "function_precision", 1e-7)
        manager.save_user_config()
        assert (tmp_path / "regarima_config.json").exists()

        other = ConfigManager()
        other.initialize()
        assert other.get("numerical", "function_precision") == 1e-7
        assert other.get_config_file() == tmp_path / "regarima_config.json"

    def test_invalid_file_values(self, manager, tmp_path):
        """Test that invalid values of the file are replaced by the defaults."""
        content = {"numerical": {"function_precision": 2.0, "max_iterations": -1},
                   "unknown": {"option": 1}}
        (tmp_path / "regarima_config.json").write_text(json.dumps(content))
        manager.initialize()
        assert manager.get("numerical", "function_precision") == 1e-9
        assert manager.get("numerical", "max_iterations") == 100

    def test_unreadable_file(self, manager, tmp_path):
        """Test that a malformed file is ignored."""
        (tmp_path / "regarima_config.json").write_text("not json")
        manager.initialize()
        assert manager.get("numerical", "max_iterations") == 100

    def test_set_and_reset(self, manager):
        """Test runtime modifications and their reset."""
        manager.initialize()
        manager.set("performance", "parallel_processing", "yes")
        manager.set("performance", "max_workers", "8")
        assert manager.get("performance", "parallel_processing") is True
        assert manager.get("performance", "max_workers") == 8
        assert manager.get_modified_options() == {
            "performance": {"parallel_processing": True, "max_workers": 8}
        }
        manager.reset("performance", "max_workers")
        assert manager.get("performance", "max_workers") == 4
        manager.reset("performance")
        assert manager.get("performance", "parallel_processing") is False
        assert manager.get_modified_options() == {}

    def test_errors(self, manager):
        """Test that unknown settings and unconvertible values are rejected."""
        manager.initialize()
        with pytest.raises(ConfigurationError):
            manager.set("unknown", "option", 1)
        with pytest.raises(ConfigurationError):
            manager.set("numerical", "unknown", 1)
        with pytest.raises(ConfigurationError):
            manager.set("numerical", "max_iterations", "many")
        with pytest.raises(ConfigurationError):
            manager.reset("numerical", "unknown")
        assert manager.get("unknown", "option", "default") == "default"

    def test_to_dict(self, manager):
        """Test the dictionary form used for the configuration file."""
        manager.initialize()
        result = manager.to_dict()
        assert set(result) == {"core", "numerical", "performance", "logging"}
        assert isinstance(result["core"]["user_config_dir"], str)


class TestGlobalConfiguration:
    """Tests for the module-level accessors."""

    def test_set_config(self, default_configuration):
        """Test that set_config changes the sections read by the estimation code."""
        set_config("numerical", "max_iterations", 20)
        assert get_numerical_config().max_iterations == 20
        assert get_config("numerical", "max_iterations") == 20
        reset_config("numerical", "max_iterations")
        assert get_numerical_config().max_iterations == 100

    def test_manager_is_shared(self):
        """Test that the global manager is initialized once."""
        assert get_config_manager() is get_config_manager()


class TestPackage:
    """Tests for the package-level helpers."""

    def test_version(self):
        """Test the version helpers."""
        assert regarima.get_version() == regarima.__version__
        assert get_version_info()["version"] == regarima.__version__
        major, minor, _ = get_version_components()
        assert is_compatible_with(f"{major}.{minor}")
        assert not is_compatible_with(f"{major + 1}.0.0")
        assert not is_compatible_with("not a version")

    def test_set_log_level(self):
        """Test that the package log level can be changed."""
        logger = logging.getLogger("regarima")
        previous = logger.level
        try:
            regarima.set_log_level("DEBUG")
            assert logger.level == logging.DEBUG
            regarima.set_log_level(logging.WARNING)
            assert logger.level == logging.WARNING
        finally:
            logger.setLevel(previous)

    def test_enable_numba(self, default_configuration):
        """Test that the numba switch is stored in the configuration."""
        regarima.enable_numba(False)
        assert get_config("core", "enable_numba") is False
        regarima.enable_numba()
        assert get_config("core", "enable_numba") is True

    def test_public_api(self):
        """Test that the names of __all__ are available."""
        for name in regarima.__all__:
            assert hasattr(regarima, name)
