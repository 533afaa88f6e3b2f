"""
Configuration management for RouteSmith.
Centralizes environment variables and engine settings.
"""

import os
from typing import Dict, Any, Optional
from dataclasses import dataclass
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class AppConfig:
    """Process-wide settings: logging and where ride files live."""
    log_level: str = "INFO"
    log_to_file: bool = True
    data_directory: str = "ride_data"


@dataclass
class MapboxConfig:
    """Directions / map-matching provider configuration."""
    access_token: Optional[str] = None
    directions_url: str = "https://api.mapbox.com/directions/v5/mapbox"
    matching_url: str = "https://api.mapbox.com/matching/v5/mapbox"
    profile: str = "cycling"
    timeout_seconds: int = 10
    match_radius_m: int = 100


@dataclass
class ElevationConfig:
    """Elevation provider configuration."""
    base_url: str = "https://api.open-meteo.com/v1/elevation"
    timeout_seconds: int = 10
    max_points: int = 100


@dataclass
class WeatherConfig:
    """Open-Meteo forecast endpoint used for wind conditions."""
    base_url: str = "https://api.open-meteo.com/v1/forecast"
    timeout_seconds: int = 10


@dataclass
class EngineConfig:
    """Route synthesis engine configuration."""
    max_workers: int = 4
    call_timeout_seconds: float = 20.0
    top_k: int = 4
    history_limit: int = 50
    random_seed: Optional[int] = None


class ConfigManager:
    """Centralized configuration manager for RouteSmith."""

    def __init__(self):
        """Read every section from the environment."""
        logger.info("Reading RouteSmith settings from environment")
        self._app_config = None
        self._mapbox_config = None
        self._elevation_config = None
        self._weather_config = None
        self._engine_config = None

        self._load_configurations()

    def _load_configurations(self):
        """Populate each section; malformed numeric values raise ValueError."""
        try:
            self._app_config = self._load_app_config()
            self._mapbox_config = self._load_mapbox_config()
            self._elevation_config = self._load_elevation_config()
            self._weather_config = self._load_weather_config()
            self._engine_config = self._load_engine_config()

            logger.info("RouteSmith settings loaded")

        except ValueError as e:
            logger.error(f"Invalid RouteSmith setting: {e}")
            raise

    def _load_app_config(self) -> AppConfig:
        """LOG_LEVEL, LOG_TO_FILE and DATA_DIRECTORY."""
        config = AppConfig(
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_to_file=os.environ.get("LOG_TO_FILE", "true").lower() == "true",
            data_directory=os.environ.get("DATA_DIRECTORY", "ride_data"),
        )

        logger.debug(f"App settings: level={config.log_level}, data={config.data_directory}")
        return config

    def _load_mapbox_config(self) -> MapboxConfig:
        """Load directions / map-matching configuration from environment variables."""
        access_token = os.environ.get("MAPBOX_ACCESS_TOKEN")

        if not access_token:
            logger.warning("MAPBOX_ACCESS_TOKEN not found - candidates will use mock geometry")

        config = MapboxConfig(
            access_token=access_token,
            profile=os.environ.get("MAPBOX_PROFILE", "cycling"),
            timeout_seconds=int(os.environ.get("MAPBOX_TIMEOUT", "10")),
        )

        logger.debug(f"Mapbox config loaded - Profile: {config.profile}")
        return config

    def _load_elevation_config(self) -> ElevationConfig:
        """Load elevation provider configuration."""
        config = ElevationConfig(
            base_url=os.environ.get("ELEVATION_API_URL", "https://api.open-meteo.com/v1/elevation"),
            timeout_seconds=int(os.environ.get("ELEVATION_TIMEOUT", "10")),
        )

        logger.debug(f"Elevation endpoint: {config.base_url}")
        return config

    def _load_weather_config(self) -> WeatherConfig:
        """WEATHER_API_URL and WEATHER_TIMEOUT."""
        config = WeatherConfig(
            base_url=os.environ.get("WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast"),
            timeout_seconds=int(os.environ.get("WEATHER_TIMEOUT", "10")),
        )

        logger.debug(f"Weather endpoint: {config.base_url}")
        return config

    def _load_engine_config(self) -> EngineConfig:
        """Load route engine configuration."""
        seed = os.environ.get("ROUTE_RANDOM_SEED")

        config = EngineConfig(
            max_workers=int(os.environ.get("ROUTE_MAX_WORKERS", "4")),
            call_timeout_seconds=float(os.environ.get("ROUTE_CALL_TIMEOUT", "20")),
            history_limit=int(os.environ.get("RIDE_HISTORY_LIMIT", "50")),
            random_seed=int(seed) if seed else None,
        )

        logger.debug(f"Engine config loaded - Workers: {config.max_workers}, timeout: {config.call_timeout_seconds}s")
        return config

    @property
    def app(self) -> AppConfig:
        """Logging and storage settings."""
        return self._app_config

    @property
    def mapbox(self) -> MapboxConfig:
        """Get directions / map-matching configuration."""
        return self._mapbox_config

    @property
    def elevation(self) -> ElevationConfig:
        """Get elevation configuration."""
        return self._elevation_config

    @property
    def weather(self) -> WeatherConfig:
        """Forecast endpoint settings."""
        return self._weather_config

    @property
    def engine(self) -> EngineConfig:
        """Get route engine configuration."""
        return self._engine_config

    def is_mapbox_configured(self) -> bool:
        """Check if the directions provider has a usable token."""
        return bool(self._mapbox_config.access_token)

    def get_environment_info(self) -> Dict[str, Any]:
        """Summarize the active settings for diagnostics output."""
        return {
            "mapbox_configured": self.is_mapbox_configured(),
            "data_directory": self._app_config.data_directory,
            "log_level": self._app_config.log_level,
            "weather_service": self._weather_config.base_url,
            "elevation_service": self._elevation_config.base_url,
            "max_workers": self._engine_config.max_workers,
        }

    def validate_configuration(self) -> Dict[str, bool]:
        """Run sanity checks over each section, keyed by check name."""
        checks = {}

        checks["mapbox_configured"] = self.is_mapbox_configured()
        checks["mapbox_timeout_valid"] = self._mapbox_config.timeout_seconds > 0

        checks["valid_log_level"] = self._app_config.log_level.upper() in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        checks["weather_url_valid"] = self._weather_config.base_url.startswith("http")
        checks["elevation_url_valid"] = self._elevation_config.base_url.startswith("http")

        checks["max_workers_valid"] = self._engine_config.max_workers > 0
        checks["call_timeout_valid"] = self._engine_config.call_timeout_seconds > 0
        checks["top_k_valid"] = 0 < self._engine_config.top_k <= 4

        logger.info(f"{sum(checks.values())} of {len(checks)} configuration checks passed")

        return checks


# Shared instance, built on first import
config_manager = ConfigManager()


def get_config() -> ConfigManager:
    """Return the shared ConfigManager."""
    return config_manager
