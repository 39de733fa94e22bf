import os
from dotenv import load_dotenv
from pathlib import Path
from typing import Optional, Tuple
from dataclasses import dataclass, field

basedir = os.path.abspath(os.getcwd())
load_dotenv(os.path.join(basedir, ".env"))

CONFIG_FILE_NAMES: Tuple[str, ...] = (
    "wc.config.yaml",
    "wc.config.yml",
    "wc.config.json",
)

DEFAULT_MANIFEST_PATHS: Tuple[str, ...] = (
    "custom-elements.json",
    "dist/custom-elements.json",
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class EngineSettings:
    """Process-level settings for the diagnostics engine."""
    workspace_root: Path = field(default_factory=lambda: Path(basedir))
    config_file: Optional[Path] = None
    fetch_timeout: float = 10.0
    debounce_window: float = 0.3
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    config_file_names: Tuple[str, ...] = CONFIG_FILE_NAMES
    manifest_paths: Tuple[str, ...] = DEFAULT_MANIFEST_PATHS

    def __post_init__(self):
        if isinstance(self.workspace_root, str):
            self.workspace_root = Path(self.workspace_root)
        if isinstance(self.config_file, str):
            self.config_file = Path(self.config_file)
        if isinstance(self.log_file, str):
            self.log_file = Path(self.log_file)

    @classmethod
    def from_environment(cls, workspace_root: Optional[Path] = None) -> "EngineSettings":
        """Create settings from WCDIAG_* environment variables."""
        config_file = os.getenv("WCDIAG_CONFIG_FILE")
        log_file = os.getenv("WCDIAG_LOG_FILE")

        return cls(
            workspace_root=Path(workspace_root or os.getenv("WCDIAG_WORKSPACE_ROOT", basedir)),
            config_file=Path(config_file) if config_file else None,
            fetch_timeout=_env_float("WCDIAG_FETCH_TIMEOUT", 10.0),
            debounce_window=_env_float("WCDIAG_DEBOUNCE_MS", 300.0) / 1000.0,
            log_level=os.getenv("WCDIAG_LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file) if log_file else None,
        )
