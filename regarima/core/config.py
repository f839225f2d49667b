'''
Configuration management for the regarima package.

The configuration follows a layered approach:
1. Default configurations built into the package
2. User-specific configuration file (JSON)
3. Environment variables (``REGARIMA_<SECTION>_<OPTION>``)
4. Runtime modifications through :func:`set_config`

Estimation components read their numerical defaults (function precision,
iteration caps, steady-state tolerance of the innovations filter) and their
parallelism settings from here when the caller does not provide explicit
values. The configuration is read-only while an estimation runs; runtime
modifications are meant to happen between estimations.
'''

import os
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError
from .types import LogLevel

logger = logging.getLogger("regarima.core.config")

CONFIG_ENV_PREFIX = "REGARIMA_"
DEFAULT_CONFIG_FILENAME = "regarima_config.json"
USER_CONFIG_DIR_ENV = "REGARIMA_CONFIG_DIR"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigSection(Enum):
    """Enumeration of configuration sections."""
    CORE = "core"
    NUMERICAL = "numerical"
    PERFORMANCE = "performance"
    LOGGING = "logging"


@dataclass
class CoreConfig:
    """
    Core configuration settings.

    Attributes:
        version: The version of the configuration format
        user_config_dir: Directory holding the user configuration file
        enable_numba: Whether the filter kernels are JIT compiled
    """
    version: str = "1.0.0"
    user_config_dir: Path = field(default_factory=lambda: Path.home() / ".regarima")
    enable_numba: bool = True


@dataclass
class NumericalConfig:
    """
    Numerical configuration settings.

    Attributes:
        function_precision: Relative decrease of the sum of squares below which
            the minimizers declare convergence
        max_iterations: Maximum number of minimizer iterations
        steady_state_tolerance: Relative distance between the prediction-error
            variance and the innovation variance at which the filter freezes
        finite_difference_step: Relative step of the numerical Jacobian
        collinearity_tolerance: Relative tolerance on the diagonal of the QR
            factor of the whitened regressors
    """
    function_precision: float = 1e-9
    max_iterations: int = 100
    steady_state_tolerance: float = 1e-12
    finite_difference_step: float = 1e-6
    collinearity_tolerance: float = 1e-12


@dataclass
class PerformanceConfig:
    """
    Performance configuration settings.

    Attributes:
        parallel_processing: Whether Jacobian columns are evaluated concurrently
        max_workers: Maximum number of worker threads
    """
    parallel_processing: bool = False
    max_workers: int = 4


@dataclass
class LoggingConfig:
    """
    Logging configuration settings.

    Attributes:
        log_level: Default logging level
        log_file: Path to log file (None for no file logging)
        log_format: Format string for log messages
        log_date_format: Format string for log message timestamps
        console_logging: Whether to log to console
        file_logging: Whether to log to file
    """
    log_level: LogLevel = "INFO"
    log_file: Optional[Path] = None
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    console_logging: bool = True
    file_logging: bool = False


@dataclass
class RegArimaConfig:
    """
    Complete configuration, one attribute per section.
    """
    core: CoreConfig = field(default_factory=CoreConfig)
    numerical: NumericalConfig = field(default_factory=NumericalConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigManager:
    """
    Configuration manager.

    Manages the configuration settings, providing methods to get, set, and
    reset configuration options. The manager is initialized lazily on first
    access.
    """

    def __init__(self):
        self._config = RegArimaConfig()
        self._initialized = False
        self._config_file: Optional[Path] = None
        self._modified_keys = set()

    def initialize(self) -> None:
        """
        Initialize the configuration manager.

        Loads the user configuration file if one exists, applies environment
        variable overrides, validates the result and sets up logging.
        """
        if self._initialized:
            return

        self._locate_user_config()
        self._load_user_config()
        self._apply_env_overrides()
        self._validate_config()
        self._setup_logging()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    def _locate_user_config(self) -> None:
        env_config_dir = os.environ.get(USER_CONFIG_DIR_ENV)
        if env_config_dir:
            self._config.core.user_config_dir = Path(env_config_dir)
        self._config_file = self._config.core.user_config_dir / DEFAULT_CONFIG_FILENAME

    def _load_user_config(self) -> None:
        if not self._config_file or not self._config_file.exists():
            logger.debug("No user configuration file found")
            return

        try:
            with open(self._config_file, 'r') as f:
                user_config = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load user configuration: {e}")
            return

        self._update_from_dict(user_config)
        logger.debug(f"Loaded user configuration from {self._config_file}")

    def _apply_env_overrides(self) -> None:
        """
        Apply environment variable overrides to the configuration.

        Variables are named ``REGARIMA_<SECTION>_<OPTION>``; values are
        converted to the type of the current option value.
        """
        for env_var, value in os.environ.items():
            if not env_var.startswith(CONFIG_ENV_PREFIX) or env_var == USER_CONFIG_DIR_ENV:
                continue

            key = env_var[len(CONFIG_ENV_PREFIX):]
            parts = key.lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, option = parts
            try:
                ConfigSection(section)
            except ValueError:
                continue

            section_obj = getattr(self._config, section)
            if not hasattr(section_obj, option):
                continue

            try:
                typed_value = self._convert(getattr(section_obj, option), value)
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to apply environment override {env_var}: {e}")
                continue

            setattr(section_obj, option, typed_value)
            logger.debug(f"Applied environment override: {env_var}={value}")

    @staticmethod
    def _convert(current_value: Any, value: Any) -> Any:
        value_type = type(current_value)
        if value_type is bool and isinstance(value, str):
            return value.lower() in ('true', 'yes', '1', 'y')
        if isinstance(current_value, Path) or (current_value is None and isinstance(value, str)):
            return Path(value) if value else None
        if value_type is int and isinstance(value, float) and not value.is_integer():
            raise ValueError(f"expected an integer, got {value}")
        if value_type in (int, float, str) and not isinstance(value, value_type):
            return value_type(value)
        return value

    def _setup_logging(self) -> None:
        """Configure the package logger from the logging section."""
        package_logger = logging.getLogger("regarima")

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.setLevel(getattr(logging, self._config.logging.log_level))

        formatter = logging.Formatter(
            fmt=self._config.logging.log_format,
            datefmt=self._config.logging.log_date_format
        )

        if self._config.logging.console_logging:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            package_logger.addHandler(console_handler)

        if self._config.logging.file_logging and self._config.logging.log_file:
            try:
                self._config.logging.log_file.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(self._config.logging.log_file)
            except OSError as e:
                logger.warning(f"Failed to set up file logging: {e}")
            else:
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)

    def _validate_config(self) -> None:
        """Replace invalid values with their defaults, logging a warning."""
        numerical = self._config.numerical
        defaults = NumericalConfig()

        if numerical.max_iterations <= 0:
            logger.warning(f"Invalid max_iterations: {numerical.max_iterations}, must be positive")
            numerical.max_iterations = defaults.max_iterations

        for name in ("function_precision", "steady_state_tolerance",
                     "finite_difference_step", "collinearity_tolerance"):
            value = getattr(numerical, name)
            if not 0 < value < 1:
                logger.warning(f"Invalid {name}: {value}, must be between 0 and 1")
                setattr(numerical, name, getattr(defaults, name))

        if self._config.performance.max_workers <= 0:
            logger.warning(
                f"Invalid max_workers: {self._config.performance.max_workers}, must be positive"
            )
            self._config.performance.max_workers = PerformanceConfig().max_workers

        if self._config.logging.log_level not in _LOG_LEVELS:
            logger.warning(f"Invalid log level: {self._config.logging.log_level}, using INFO")
            self._config.logging.log_level = "INFO"

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        for section_name, section_dict in config_dict.items():
            if not hasattr(self._config, section_name):
                logger.warning(f"Unknown configuration section: {section_name}")
                continue

            section = getattr(self._config, section_name)
            for option_name, option_value in section_dict.items():
                if not hasattr(section, option_name):
                    logger.warning(f"Unknown configuration option: {section_name}.{option_name}")
                    continue
                try:
                    option_value = self._convert(getattr(section, option_name), option_value)
                except (TypeError, ValueError) as e:
                    logger.warning(f"Failed to set {section_name}.{option_name}: {e}")
                    continue
                setattr(section, option_name, option_value)

    def save_user_config(self) -> None:
        """Save the current configuration to the user configuration file."""
        if not self._config_file:
            logger.warning("No user configuration file path available")
            return

        try:
            self._config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._config_file, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save user configuration: {e}")
            return

        logger.debug(f"Saved user configuration to {self._config_file}")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration to a dictionary.

        Returns:
            Dictionary representation of the configuration, paths as strings
        """
        result = {}
        for section in ConfigSection:
            section_obj = getattr(self._config, section.value)
            section_dict = {}
            for field_name in section_obj.__dataclass_fields__:
                value = getattr(section_obj, field_name)
                if isinstance(value, Path):
                    value = str(value)
                section_dict[field_name] = value
            result[section.value] = section_dict
        return result

    def get(self, section: str, option: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            section: The configuration section
            option: The configuration option
            default: Default value if the option is not found

        Returns:
            The configuration value, or the default if not found
        """
        section_obj = getattr(self._config, section, None)
        if section_obj is None or not hasattr(section_obj, option):
            return default
        return getattr(section_obj, option)

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            section: The configuration section
            option: The configuration option
            value: The value to set

        Raises:
            ConfigurationError: If the section or option is not found, or the
                value cannot be converted to the option type
        """
        section_obj = self.get_section(section)

        if not hasattr(section_obj, option):
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue="Option not found"
            )

        try:
            typed_value = self._convert(getattr(section_obj, option), value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to set configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue=str(e)
            ) from e

        setattr(section_obj, option, typed_value)
        self._modified_keys.add(f"{section}.{option}")
        logger.debug(f"Set configuration option: {section}.{option}={value}")

    def reset(self, section: Optional[str] = None, option: Optional[str] = None) -> None:
        """
        Reset configuration to default values.

        Args:
            section: The configuration section to reset, or None to reset all
            option: The configuration option to reset, or None to reset the entire section

        Raises:
            ConfigurationError: If the section or option is not found
        """
        if section is None:
            self._config = RegArimaConfig()
            self._modified_keys.clear()
            logger.debug("Reset all configuration to defaults")
            return

        section_obj = self.get_section(section)
        default_section = getattr(RegArimaConfig(), section)

        if option is None:
            setattr(self._config, section, default_section)
            self._modified_keys = {k for k in self._modified_keys if not k.startswith(f"{section}.")}
            logger.debug(f"Reset configuration section: {section}")
            return

        if not hasattr(section_obj, option):
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                issue="Option not found"
            )

        setattr(section_obj, option, getattr(default_section, option))
        self._modified_keys.discard(f"{section}.{option}")
        logger.debug(f"Reset configuration option: {section}.{option}")

    def get_modified_options(self) -> Dict[str, Dict[str, Any]]:
        """Return the options changed at runtime, grouped by section."""
        result: Dict[str, Dict[str, Any]] = {}
        for key in self._modified_keys:
            section, option = key.split(".", 1)
            result.setdefault(section, {})[option] = self.get(section, option)
        return result

    def get_sections(self) -> List[str]:
        """Return the names of the configuration sections."""
        return [section.value for section in ConfigSection]

    def get_section(self, section: str) -> Any:
        """
        Get a configuration section.

        Raises:
            ConfigurationError: If the section is not found
        """
        try:
            ConfigSection(section)
        except ValueError:
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue="Section not found",
                context={"Valid Sections": self.get_sections()}
            ) from None
        return getattr(self._config, section)

    def get_config_file(self) -> Optional[Path]:
        """Return the path of the user configuration file."""
        return self._config_file


_config_manager = ConfigManager()


def initialize_config() -> None:
    """Initialize the configuration system."""
    _config_manager.initialize()


def get_config_manager() -> ConfigManager:
    """
    Get the configuration manager instance.

    Returns:
        The initialized configuration manager
    """
    if not _config_manager._initialized:
        initialize_config()
    return _config_manager


def get_config(section: str, option: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        section: The configuration section
        option: The configuration option
        default: Default value if the option is not found

    Returns:
        The configuration value, or the default if not found
    """
    return get_config_manager().get(section, option, default)


def set_config(section: str, option: str, value: Any) -> None:
    """
    Set a configuration value.

    Raises:
        ConfigurationError: If the section or option is not found
    """
    get_config_manager().set(section, option, value)


def reset_config(section: Optional[str] = None, option: Optional[str] = None) -> None:
    """
    Reset configuration to default values.

    Raises:
        ConfigurationError: If the section or option is not found
    """
    get_config_manager().reset(section, option)


def save_config() -> None:
    """Save the current configuration to the user configuration file."""
    get_config_manager().save_user_config()


def get_core_config() -> CoreConfig:
    """Get the core configuration section."""
    return get_config_manager().get_section("core")


def get_numerical_config() -> NumericalConfig:
    """Get the numerical configuration section."""
    return get_config_manager().get_section("numerical")


def get_performance_config() -> PerformanceConfig:
    """Get the performance configuration section."""
    return get_config_manager().get_section("performance")


def get_logging_config() -> LoggingConfig:
    """Get the logging configuration section."""
    return get_config_manager().get_section("logging")
