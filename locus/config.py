"""
Runtime configuration.

Loaded from config.yaml (or LOCUS_CONFIG / an explicit path); secrets and a
few deployment knobs can be overridden through the environment.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"
DATA_DIR = Path(__file__).parent.parent / "data"


@dataclass
class Config:
    """Runtime configuration for the board, scanner and server."""

    # Backend: "local" (SQLite + projects.json) or "github"
    backend: str = "local"

    # GitHub Issues
    repo_owner: str = "justinpreston"
    repo_name: str = "locus"
    github_api: str = "https://api.github.com"
    github_token: str = ""
    token_exchange_url: str = ""   # OAuth proxy endpoint, "" = sign-in disabled
    request_timeout: float = 10.0

    # Scanner
    memory_dir: str = "~/clawd/memory"
    scan_output: str = str(DATA_DIR / "scanned.json")
    scan_debounce_ms: int = 1000

    # Local board
    data_file: str = str(DATA_DIR / "projects.json")
    db_path: str = "~/.local/share/locus/locus.db"
    storage_key: str = "locus_items"

    # HTTP API
    api_secret: str = ""

    def apply_env(self):
        """Environment overrides for secrets and deployment paths."""
        self.github_token = os.environ.get("LOCUS_GITHUB_TOKEN", self.github_token)
        self.api_secret = os.environ.get("LOCUS_API_SECRET", self.api_secret)
        self.db_path = os.environ.get("LOCUS_DB", self.db_path)
        self.backend = os.environ.get("LOCUS_BACKEND", self.backend)

    def resolve_paths(self):
        """Expand ~ in every path setting."""
        self.memory_dir = str(Path(self.memory_dir).expanduser())
        self.scan_output = str(Path(self.scan_output).expanduser())
        self.data_file = str(Path(self.data_file).expanduser())
        self.db_path = str(Path(self.db_path).expanduser())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        path = path or os.environ.get("LOCUS_CONFIG")
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
            except (OSError, yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        return cfg
