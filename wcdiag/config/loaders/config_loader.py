"""Configuration file discovery and loading."""
from typing import Dict, Optional, Any, Union, Iterable
from pathlib import Path
import json
import yaml
import logging

from ...models.types import ConfigError
from ...settings import CONFIG_FILE_NAMES


class ConfigLoader:
    """
    Finds and reads the workspace configuration file.
    Supports YAML and JSON documents.
    """

    def __init__(
        self,
        workspace_root: Union[str, Path],
        config_file_names: Iterable[str] = CONFIG_FILE_NAMES
    ):
        self.logger = logging.getLogger(__name__)
        self.workspace_root = Path(workspace_root)
        self.config_file_names = tuple(config_file_names)
        self.last_loaded_path: Optional[Path] = None

    def find_config_file(self, directory: Optional[Path] = None) -> Optional[Path]:
        """Return the first configuration file present in directory."""
        directory = Path(directory or self.workspace_root)
        for file_name in self.config_file_names:
            candidate = directory / file_name
            if candidate.exists():
                self.logger.info(f"Found config file: {candidate}")
                return candidate
        self.logger.debug(f"No config file found in directory: {directory}")
        return None

    def is_config_file(self, path: Union[str, Path]) -> bool:
        return Path(path).name in self.config_file_names

    def load_file(self, path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a configuration file.

        Args:
            path: Path to a .yaml, .yml or .json file

        Returns:
            Dict[str, Any]: Raw configuration mapping

        Raises:
            ConfigError: If the file is missing, unreadable or not a mapping
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.workspace_root / path
        if not path.exists():
            raise ConfigError([f"Configuration file not found: {path}"], path=str(path))

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix == ".json":
                    data = json.load(f)
                elif path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    raise ConfigError(
                        [f"Unsupported configuration file format: {path.suffix}. "
                         "Supported formats: .yaml, .yml, .json"],
                        path=str(path)
                    )
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError([f"Failed to read configuration: {str(e)}"], path=str(path))

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(["Configuration root must be a mapping"], path=str(path))

        self.last_loaded_path = path
        self.logger.debug(f"Loaded configuration from {path} with keys {sorted(data)}")
        return data

    def load(self, path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """Load an explicit file, else the discovered one, else an empty config."""
        if path is not None:
            return self.load_file(path)

        discovered = self.find_config_file()
        if discovered is None:
            self.last_loaded_path = None
            return {}
        return self.load_file(discovered)
