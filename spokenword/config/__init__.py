"""Simple YAML configuration loader for SpokenWord."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_INTERVAL = 15.0
DEFAULT_SERVICE_LIMIT = 60.0


class SpokenWordConfig:
    """SpokenWord configuration loader."""
    
    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.
        
        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and nothing is read from disk.
        """
        self.config_file = Path(config_path) if config_path else None
        
        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config: Dict[str, Any] = {}
            return
        
        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        
        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()
    
    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        
        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")
        
        self._resolve_paths(config)
        
        logger.info("Configuration loaded successfully")
        return config
    
    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent
        
        if 'recognition' in config and 'credentials_path' in config['recognition']:
            creds_path = config['recognition']['credentials_path']
            if creds_path and not os.path.isabs(creds_path):
                config['recognition']['credentials_path'] = str(config_dir / creds_path)
        
        if 'logging' in config and 'file_path' in config['logging']:
            log_path = config['logging']['file_path']
            if log_path and not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)
    
    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'rotation.interval_seconds').
        
        Args:
            key_path: Dot-separated key path
            default: Default value if key not found
            
        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config
        
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        
        return value
    
    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.
        
        Args:
            key_path: Dot-separated path to config value (e.g., 'rotation.interval_seconds')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config
        
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]
        
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")
    
    def get_rotation_interval(self) -> float:
        """Get the rotation interval in seconds - CRASHES if not positive."""
        interval = float(self.get('rotation.interval_seconds', DEFAULT_ROTATION_INTERVAL))
        if interval <= 0:
            raise ValueError(f"rotation.interval_seconds must be positive, got {interval}")
        
        limit = float(self.get('rotation.service_limit_seconds', DEFAULT_SERVICE_LIMIT))
        if interval >= limit:
            logger.warning(f"Rotation interval {interval}s is not below the service session "
                           f"limit of {limit}s; sessions may be cut off by the service")
        return interval
    
    def get_credentials_path(self) -> Optional[str]:
        """Get the recognition credentials path, or None to use ambient credentials."""
        creds_path = self.get('recognition.credentials_path')
        if not creds_path:
            return None
        
        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Recognition credentials file not found: {creds_path}")
        
        return str(creds_file.absolute())
    
    def get_transcript_delimiter(self) -> str:
        return self.get('transcript.delimiter', ' ')
