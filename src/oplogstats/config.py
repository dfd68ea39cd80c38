# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management.

Values come from defaults, then ~/.oplogstats/config.yaml, then
environment variables.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".oplogstats" / "config.yaml"


@dataclass
class Config:
    """Process configuration passed into the server and pipeline."""

    # Redis settings
    redis_url: str = "redis://localhost:6379/0"
    stream_name: str = "oplog:rs"

    # Database settings
    db_path: str = str(Path.home() / ".oplogstats" / "metrics.db")

    # Pipeline settings
    namespace: str = "metrics.raw"
    queue_size: int = 1
    skip_missing: bool = False

    # Logging settings
    log_level: str = "INFO"

    # Config file path
    config_path: Optional[Path] = None

    def __post_init__(self):
        """Load file and environment overrides."""
        if self.config_path is None:
            self.config_path = DEFAULT_CONFIG_PATH
        self.config_path = Path(self.config_path).expanduser()

        if self.config_path.exists():
            self.load_from_file()

        self.load_from_env()

    def load_from_file(self):
        """Load configuration from YAML file."""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_path}: not a mapping")
            return

        # Redis settings
        redis_section = self._section(data, "redis")
        self.redis_url = redis_section.get("url", self.redis_url)
        self.stream_name = redis_section.get("stream", self.stream_name)

        # Database settings
        database = self._section(data, "database")
        self.db_path = database.get("path", self.db_path)

        # Pipeline settings
        pipeline = self._section(data, "pipeline")
        self.namespace = pipeline.get("namespace", self.namespace)
        self.queue_size = pipeline.get("queue_size", self.queue_size)
        self.skip_missing = pipeline.get("skip_missing", self.skip_missing)

        # Logging settings
        logging_section = self._section(data, "logging")
        self.log_level = logging_section.get("level", self.log_level)

    def load_from_env(self):
        """Load configuration from environment variables."""
        if env_url := os.environ.get("REDIS_URL"):
            self.redis_url = env_url

        if env_stream := os.environ.get("OPLOGSTATS_STREAM"):
            self.stream_name = env_stream

        if env_db := os.environ.get("OPLOGSTATS_DB"):
            self.db_path = env_db

        if env_level := os.environ.get("OPLOGSTATS_LOG_LEVEL"):
            self.log_level = env_level

    @staticmethod
    def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name, {})
        return section if isinstance(section, dict) else {}

    def get_db_path(self) -> Path:
        return Path(self.db_path).expanduser()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            k: v for k, v in self.__dict__.items()
            if not k.startswith("_") and k != "config_path"
        }

    def validate(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.redis_url.startswith(("redis://", "rediss://", "unix://")):
            errors.append("redis_url must start with redis://, rediss:// or unix://")

        if not isinstance(self.queue_size, int) or self.queue_size < 1:
            errors.append("queue_size must be a positive integer")

        if not self.namespace or "." not in self.namespace:
            errors.append("namespace must look like '<database>.<collection>'")

        if not isinstance(self.skip_missing, bool):
            errors.append("skip_missing must be true or false")

        return errors
