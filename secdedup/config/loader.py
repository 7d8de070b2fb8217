"""Configuration loader."""

import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .models import ConfigModel, DetectionConfig, SimilarityWeights

CONFIG_ENV_VAR = "SECDEDUP_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "secdedup" / "config.yaml"


def _env_secret(name: Optional[str]) -> Optional[str]:
    return os.environ.get(name) if name else None


class Config:
    """Lazily loaded settings for one secdedup process."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Args:
            config_path: YAML file; defaults to $SECDEDUP_CONFIG, then
                ~/.config/secdedup/config.yaml
        """
        if config_path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH
        self.config_path = config_path
        self._config: Optional[ConfigModel] = None

    @classmethod
    def from_model(cls, model: ConfigModel, config_path: Optional[Path] = None) -> "Config":
        """Wrap an already built config model."""
        config = cls(config_path)
        config._config = model
        return config

    @property
    def config(self) -> ConfigModel:
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    @property
    def weights(self) -> SimilarityWeights:
        return self.config.similarity

    @property
    def workspace_root(self) -> Path:
        path = Path(self.config.workspace_root).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_run_dir(self, run_date: date) -> Path:
        """Directory for one date's pipeline reports (created on demand)."""
        run_dir = self.workspace_root / "runs" / run_date.isoformat()
        run_dir.mkdir(parents=True, exist_ok=True)
        return run_dir

    def get_detection_config(
        self,
        threshold: Optional[float] = None,
        lookback_days: Optional[int] = None,
    ) -> DetectionConfig:
        """
        Detection thresholds with command-line overrides applied.

        A threshold below the configured BORDERLINE floor pulls the floor
        down with it.

        Raises:
            pydantic.ValidationError: If an override is out of range
        """
        base = self.config.detection
        effective = base.threshold if threshold is None else threshold
        return DetectionConfig(
            threshold=effective,
            borderline_floor=min(base.borderline_floor, effective),
            lookback_days=base.lookback_days if lookback_days is None else lookback_days,
        )

    def get_db_config(self) -> Dict[str, Any]:
        """Postgres settings with the password resolved from the environment."""
        db_config = self.config.postgres.model_dump()
        password = _env_secret(db_config.get("password_env"))
        if password:
            db_config["password"] = password
        return db_config

    def get_llm_config(self) -> Dict[str, Any]:
        """Comparison provider settings; an explicit api_key wins over api_key_env."""
        llm_config = self.config.llm.model_dump()
        if not llm_config.get("api_key"):
            llm_config["api_key"] = _env_secret(llm_config.get("api_key_env"))
        return llm_config


def load_config(config_path: Path) -> ConfigModel:
    """
    Load configuration from a YAML file.

    An empty file yields the defaults.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML is malformed or a value is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ValueError(f"Invalid configuration in {config_path}: expected a mapping")

    try:
        return ConfigModel(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {config_path}: {e}") from e


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Write configuration as YAML, creating the directory if needed."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)
