# Pipeline board — configuration
# Override paths and endpoints via config.yaml or environment variables.

import logging
import os
import sys
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

# Environment variable -> Config field
ENV_OVERRIDES = {
    "PIPELINE_DB": "db_path",
    "PIPELINE_API_URL": "api_url",
    "PIPELINE_API_SECRET": "api_secret",
    "PIPELINE_LOG_LEVEL": "log_level",
}


@dataclass
class Config:
    """Runtime configuration for the board controller and data service."""

    # Storage (data service side)
    db_path: str = "~/.local/share/dashboard/pipeline.db"

    # Data service endpoint (board side)
    api_url: str = "http://127.0.0.1:3000"
    api_secret: str = ""
    request_timeout: float = 10.0

    # Server bind
    host: str = "127.0.0.1"
    port: int = 3000

    log_level: str = "INFO"

    def resolve_paths(self):
        """Expand ~ in filesystem paths."""
        self.db_path = str(Path(self.db_path).expanduser())

    def apply_env(self):
        """Environment variables win over file values."""
        for env_name, attr in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                setattr(self, attr, value)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                known = {fld.name for fld in fields(cls)}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (yaml.YAMLError, TypeError, OSError) as e:
                logging.getLogger(__name__).warning(f"Ignoring invalid config {cfg_path}: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        return cfg


def setup_logging(level: str = "INFO", name: str = "pipeline") -> None:
    """Configure root logging to stdout."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=f"%(asctime)s [{name}] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
