"""Configuration system for page capture.

This module provides configuration management for browser, session and
engine settings, including YAML loading, validation, and
environment-specific overrides.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field, field_validator

from .browser_factory import BrowserConfig, BrowserEngineType
from .engine import EngineConfig
from .page_session import SessionConfig

ENV_VAR = 'PAGESCOUT_ENV'


class CaptureConfig(BaseModel):
    """Root configuration for the capture system."""

    environment: str = Field(default="production", description="Environment name")
    browser: Dict[str, Any] = Field(default_factory=dict, description="Browser configuration")
    session: Dict[str, Any] = Field(default_factory=dict, description="Page session configuration")
    engine: Dict[str, Any] = Field(default_factory=dict, description="Engine configuration")
    environments: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Environment-specific overrides"
    )

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        valid_environments = {'production', 'staging', 'development', 'test'}
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    def _section(self, name: str) -> Dict[str, Any]:
        """Section with environment-specific overrides applied."""
        config = dict(getattr(self, name))
        env_config = self.environments.get(self.environment, {})
        config.update(env_config.get(name, {}))
        return config

    def get_browser_config(self) -> BrowserConfig:
        """Get browser configuration with environment overrides applied."""
        config = self._section('browser')

        return BrowserConfig(
            engine=getattr(BrowserEngineType, config.get('engine', 'chromium').upper()),
            headless=config.get('headless', True),
            slow_mo=config.get('slow_mo', 0),
            proxy=config.get('proxy'),
        )

    def get_session_config(self) -> SessionConfig:
        """Get page session configuration with environment overrides applied."""
        config = self._section('session')
        defaults = SessionConfig()

        return SessionConfig(
            navigation_timeout_ms=config.get('navigation_timeout_ms', defaults.navigation_timeout_ms),
            network_idle_ms=config.get('network_idle_ms', defaults.network_idle_ms),
            ignored_extensions=config.get('ignored_extensions'),
            user_agents=config.get('user_agents'),
            share_visited=config.get('share_visited', False),
            max_body_size=config.get('max_body_size', defaults.max_body_size),
        )

    def get_engine_config(self) -> EngineConfig:
        """Get engine configuration with environment overrides applied."""
        config = self._section('engine')

        return EngineConfig(
            browser_config=self.get_browser_config(),
            session_config=self.get_session_config(),
            max_concurrent_pages=config.get('max_concurrent_pages', 5),
            retry_attempts=config.get('retry_attempts', 0),
            retry_delay_ms=config.get('retry_delay_ms', 1000),
        )


class CaptureConfigManager:
    """Manager for capture configuration loading and caching."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to capture config YAML file. Defaults to config/capture.yaml
        """
        if config_path is None:
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / "config" / "capture.yaml"

        self.config_path = Path(config_path)
        self._config: Optional[CaptureConfig] = None
        self._loaded_env = None

    def load_config(self, force_reload: bool = False) -> CaptureConfig:
        """Load configuration from YAML file.

        A missing file yields the built-in defaults.

        Args:
            force_reload: Force reload even if already cached

        Returns:
            Loaded and validated configuration

        Raises:
            yaml.YAMLError: If YAML is invalid
            ValueError: If configuration validation fails
        """
        current_env = os.environ.get(ENV_VAR, 'production')

        if self._config is not None and not force_reload and current_env == self._loaded_env:
            return self._config

        config_data: Dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise yaml.YAMLError(f"Invalid YAML in {self.config_path}: {e}")

        if current_env != 'production':
            config_data['environment'] = current_env

        try:
            self._config = CaptureConfig(**config_data)
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}")

        self._loaded_env = current_env
        return self._config

    @property
    def config(self) -> CaptureConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load_config()
        return self._config

    @property
    def environment(self) -> str:
        return self.config.environment


_config_manager: Optional[CaptureConfigManager] = None


def get_config(config_path: Optional[Union[str, Path]] = None) -> CaptureConfigManager:
    """Get global capture configuration manager.

    Args:
        config_path: Path to config file (only used on first call)

    Returns:
        Global CaptureConfigManager instance
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = CaptureConfigManager(config_path)
    return _config_manager


def create_engine_config(config_path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """Create engine configuration from a YAML file.

    Unlike get_config() this never touches the global manager.

    Args:
        config_path: Path to capture config YAML file

    Returns:
        Configured EngineConfig instance
    """
    return CaptureConfigManager(config_path).load_config().get_engine_config()
