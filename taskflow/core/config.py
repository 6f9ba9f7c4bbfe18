"""
Configuration management for TaskFlow
Handles loading and saving storage and search settings
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional


class Config:
    """Configuration manager for the search engine and its record store"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to configuration directory (defaults to ./config)
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings_file = self.config_dir / "settings.json"
        self.search_file = self.config_dir / "search.json"

        # Load configurations
        self.settings = self._load_json(self.settings_file, self._default_settings())
        self.search = self._load_json(self.search_file, self._default_search())

    def _load_json(self, file_path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
        """Load JSON file or return default if file doesn't exist"""
        if file_path.exists():
            with open(file_path, 'r') as f:
                loaded = json.load(f)
            # Keys added in newer versions fall back to their defaults
            return {**default, **loaded}
        else:
            # Create file with defaults
            self._save_json(file_path, default)
            return default

    def _save_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Save data to JSON file"""
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2)

    def _default_settings(self) -> Dict[str, Any]:
        """Default storage settings"""
        return {
            "database_path": "data/database/taskflow.db",
        }

    def _default_search(self) -> Dict[str, Any]:
        """Default search engine settings"""
        return {
            "embedding_model": "all-MiniLM-L6-v2",
            "embedding_dimension": 384,
            "classifier_model": "gpt-4o-mini",
            "classifier_timeout_seconds": 10.0,
            "semantic_limit": 10,
            "structured_limit": 50,
        }

    def get(self, key: str, section: str = "settings", default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key
            section: Configuration section ('settings', 'search')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        section_map = {
            "settings": self.settings,
            "search": self.search,
        }

        return section_map.get(section, {}).get(key, default)

    def set(self, key: str, value: Any, section: str = "settings") -> None:
        """
        Set configuration value and save to disk

        Args:
            key: Configuration key
            value: Value to set
            section: Configuration section ('settings', 'search')
        """
        section_map = {
            "settings": (self.settings, self.settings_file),
            "search": (self.search, self.search_file),
        }

        if section in section_map:
            config_dict, file_path = section_map[section]
            config_dict[key] = value
            self._save_json(file_path, config_dict)

    def get_database_path(self) -> Path:
        """Get full path to database file (TASKFLOW_DB_PATH wins if set)"""
        override = os.environ.get("TASKFLOW_DB_PATH")
        if override:
            return Path(override)
        db_path = Path(self.settings["database_path"])
        if db_path.is_absolute():
            return db_path
        base_path = Path(__file__).parent.parent.parent
        return base_path / db_path
