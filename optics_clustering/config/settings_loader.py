"""
settings_loader.py

Configuration management for the OPTICS clustering library.
Loads and validates settings from YAML configuration with environment variable substitution.

Features:
- YAML configuration loading with validation
- Environment variable substitution (${VAR_NAME} syntax)
- Singleton pattern for global settings access
- Type-safe configuration with Pydantic models
- Default values when no configuration file is present
"""

import os
import re
import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from optics_clustering.core.metrics import METRICS
from optics_clustering.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class ServiceSettings(BaseModel):
    """General settings."""
    name: str = Field(default="optics-clustering", description="Service name")
    version: str = Field(default="1.0.0", description="Version")
    environment: str = Field(default="production", description="Environment (development, staging, production)")


class OpticsSettings(BaseModel):
    """Ordering engine settings."""
    epsilon_max_radius: float = Field(default=10.0, ge=0.0, description="Maximum neighborhood radius")
    min_points: int = Field(default=5, ge=2, description="Minimum neighbors for a core point")
    metric: str = Field(default="euclidean", description="Distance metric (euclidean, ciede2000, haversine)")
    point_dimensions: Optional[int] = Field(default=None, ge=1, description="Payload arity (null = metric default)")

    @field_validator("metric")
    @classmethod
    def validate_metric(cls, value: str) -> str:
        value = value.lower()
        if value not in METRICS:
            raise ValueError(f"Unsupported metric '{value}'. Supported: {list(METRICS.keys())}")
        return value


class DBSCANExtractionSettings(BaseModel):
    """Density-threshold extraction settings."""
    cluster_epsilon: float = Field(default=5.0, ge=0.0, description="Reachability threshold")


class InflectionExtractionSettings(BaseModel):
    """Inflection-based extraction settings."""
    cluster_epsilon: float = Field(default=5.0, ge=0.0, description="Reachability ceiling")
    min_delta: float = Field(default=0.5, ge=0.0, description="Base reachability jump tolerated inside a cluster")


class ExtractionSettings(BaseModel):
    """Cluster extraction configuration."""
    default_method: str = Field(default="dbscan", description="Default extraction (dbscan or inflection)")
    max_clusters: int = Field(default=1000, ge=1, description="Fail once more clusters than this are extracted")
    dbscan: DBSCANExtractionSettings = Field(default_factory=DBSCANExtractionSettings)
    inflection: InflectionExtractionSettings = Field(default_factory=InflectionExtractionSettings)

    @field_validator("default_method")
    @classmethod
    def validate_method(cls, value: str) -> str:
        value = value.lower()
        if value not in ("dbscan", "inflection"):
            raise ValueError(f"Unsupported extraction '{value}'. Supported: ['dbscan', 'inflection']")
        return value

    def params_for(self, method: str) -> dict[str, Any]:
        """Extraction parameters for one method as keyword arguments."""
        return getattr(self, method.lower()).model_dump()


class FileLoggingSettings(BaseModel):
    """File logging configuration."""
    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(default="logs/optics_clustering.log", description="Log file path")
    max_size_mb: int = Field(default=100, ge=1, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, description="Number of backup files")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Log format (json or console)")
    file: FileLoggingSettings = Field(default_factory=FileLoggingSettings)

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level '{value}'")
        return value


class PerformanceSettings(BaseModel):
    """Performance tracking configuration."""
    progress_log_interval: int = Field(default=1000, ge=1, description="Log ordering progress every N points")
    compute_quality_metrics: bool = Field(default=True, description="Score results with a silhouette")


class Settings(BaseModel):
    """Root configuration model."""
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    optics: OpticsSettings = Field(default_factory=OpticsSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)


# =============================================================================
# Configuration Manager (Singleton)
# =============================================================================

class ConfigManager:
    """
    Singleton configuration manager that loads and caches settings.

    Features:
    - Loads YAML configuration from file
    - Substitutes environment variables using ${VAR_NAME} syntax
    - Validates configuration using Pydantic models
    - Provides global access to settings
    """

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to configuration file. If None, searches the
                default locations and falls back to built-in defaults.

        Returns:
            Settings object with validated configuration

        Raises:
            FileNotFoundError: If an explicit configuration file is not found
            ConfigurationError: If configuration is invalid
        """
        if cls._settings is not None:
            return cls._settings

        if config_path is None:
            possible_paths = [
                Path(os.getenv("OPTICS_CONFIG_PATH", "config/settings.yaml")),
                Path("config/settings.yaml"),
                Path("../config/settings.yaml"),
            ]

            config_path_obj = None
            for path in possible_paths:
                if path.exists():
                    config_path_obj = path
                    break

            if config_path_obj is None:
                logger.warning(
                    f"Configuration file not found in any of: {[str(p) for p in possible_paths]}. "
                    "Using defaults."
                )
                cls._settings = Settings()
                return cls._settings
        else:
            config_path_obj = Path(config_path)
            if not config_path_obj.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading configuration from: {config_path_obj}")

        try:
            with open(config_path_obj, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load YAML configuration: {e}")
            raise ConfigurationError(
                f"Invalid YAML configuration: {e}",
                details={"path": str(config_path_obj)},
            )

        config_dict = cls._substitute_env_vars(raw_config)

        try:
            cls._settings = Settings(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details={"path": str(config_path_obj), "errors": e.errors()},
            )

        logger.info("Configuration loaded and validated successfully")
        return cls._settings

    @classmethod
    def get_settings(cls) -> Settings:
        """
        Get cached settings. Loads from default path if not already loaded.

        Returns:
            Settings object
        """
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            config: Configuration dictionary or value

        Returns:
            Configuration with substituted values
        """
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            # Match ${VAR_NAME} or ${VAR_NAME:default}
            pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default_value = match.group(2) if match.group(2) is not None else ""
                return os.getenv(var_name, default_value)

            return re.sub(pattern, replace_var, config)
        else:
            return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Reload configuration from file.

        Args:
            config_path: Path to configuration file

        Returns:
            Reloaded Settings object
        """
        cls._settings = None
        return cls.load_config(config_path)


# =============================================================================
# Convenience Functions
# =============================================================================

def get_settings() -> Settings:
    """
    Get application settings (convenience function).

    Returns:
        Settings object
    """
    return ConfigManager.get_settings()
