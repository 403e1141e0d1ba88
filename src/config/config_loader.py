"""
Configuration loader for the Synergy spatial analysis system.

This module provides the ConfigLoader class that handles loading and validating
the JSON configuration files for multi-environment deployments: the environment
configuration (paths, logging, processing settings) and the layer configuration
(reference layer plus the target layers and their grouping fields).
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional
from functools import lru_cache

from ..exceptions import SynergyConfigurationError, SynergyValidationError
from ..utils import get_logger

ENVIRONMENT_CONFIG_FILE = "environment_config.json"
LAYER_CONFIG_FILE = "layer_config.json"

REQUIRED_ENVIRONMENT_KEYS = ["data_dir", "output_dir", "logging", "processing"]
REQUIRED_TARGET_KEYS = ["name", "file", "group_by_fields"]


class ConfigLoader:
    """
    Configuration loader and validator for the Synergy system.
    
    Loads environment-specific configuration from JSON files, validates the
    required structure and provides dotted-key access to configuration values.
    """
    
    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize the configuration loader.
        
        Args:
            config_dir: Directory containing configuration files (defaults to 'config/')
        """
        self.logger = get_logger(__name__)
        self.config_dir = Path(config_dir) if config_dir else Path("config")
    
    def _read_json(self, file_name: str, description: str) -> Dict[str, Any]:
        config_path = self.config_dir / file_name
        
        if not config_path.exists():
            raise SynergyConfigurationError(
                f"{description} file not found: {config_path}"
            )
        
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SynergyConfigurationError(
                f"Invalid JSON in {description.lower()}: {str(e)}",
                {"path": str(config_path)}
            )
        except OSError as e:
            raise SynergyConfigurationError(
                f"Failed to read {description.lower()}: {str(e)}",
                {"path": str(config_path)}
            )
        
        if not isinstance(data, dict):
            raise SynergyValidationError(
                f"{description} must be a JSON object",
                {"path": str(config_path)}
            )
        return data
    
    @lru_cache(maxsize=2)
    def load_environment_config(self, environment: str) -> Dict[str, Any]:
        """
        Load configuration for a specific environment.
        
        Args:
            environment: Environment name (development/production)
            
        Returns:
            Environment-specific configuration merged over the shared block
            
        Raises:
            SynergyConfigurationError: If the file cannot be read or parsed
            SynergyValidationError: If the configuration structure is invalid
        """
        config_data = self._read_json(ENVIRONMENT_CONFIG_FILE, "Environment configuration")
        self._validate_environment_config(config_data, environment)
        
        # Shared values first, environment-specific values win
        env_config = dict(config_data.get("shared", {}))
        for key, value in config_data["environments"][environment].items():
            if isinstance(value, dict) and isinstance(env_config.get(key), dict):
                merged = dict(env_config[key])
                merged.update(value)
                env_config[key] = merged
            else:
                env_config[key] = value
        
        missing_keys = [key for key in REQUIRED_ENVIRONMENT_KEYS if key not in env_config]
        if missing_keys:
            raise SynergyValidationError(
                f"Missing required keys in {environment} configuration (including shared): {missing_keys}"
            )
        
        self.logger.info(f"Loaded configuration for environment: {environment}")
        return env_config
    
    @lru_cache(maxsize=1)
    def load_layer_config(self) -> Dict[str, Any]:
        """
        Load the reference/target layer configuration.
        
        Returns:
            Dictionary with a ``reference`` layer and a ``target`` layer list
            
        Raises:
            SynergyConfigurationError: If the file cannot be read or parsed
            SynergyValidationError: If the layer configuration is invalid
        """
        layer_data = self._read_json(LAYER_CONFIG_FILE, "Layer configuration")
        self._validate_layer_config(layer_data)
        
        self.logger.info(
            f"Loaded layer configuration with {len(layer_data['target'])} target layer(s)"
        )
        return layer_data
    
    def get_config(self, key: str, environment: str = "development",
                   default: Any = None) -> Any:
        """
        Get a configuration value using a dotted key, e.g. ``processing.batch_size``.
        
        Args:
            key: Dotted path into the environment configuration
            environment: Environment to read from
            default: Value returned when the key is not present
            
        Returns:
            The configuration value or ``default``
        """
        value: Any = self.load_environment_config(environment)
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value
    
    def get_processing_config(self, environment: str) -> Dict[str, Any]:
        """Get the ``processing`` section for an environment."""
        return dict(self.get_config("processing", environment, default={}))
    
    def _validate_environment_config(self, config_data: Dict[str, Any], environment: str) -> None:
        """
        Validate environment configuration structure.
        
        Raises:
            SynergyValidationError: If configuration is invalid
        """
        if "environments" not in config_data:
            raise SynergyValidationError("Missing 'environments' key in configuration")
        
        if environment not in config_data["environments"]:
            available_envs = list(config_data["environments"].keys())
            raise SynergyValidationError(
                f"Environment '{environment}' not found. Available: {available_envs}"
            )
    
    def _validate_layer_config(self, layer_data: Dict[str, Any]) -> None:
        """
        Validate layer configuration structure.
        
        Raises:
            SynergyValidationError: If the layer configuration is invalid
        """
        reference = layer_data.get("reference")
        if not isinstance(reference, dict):
            raise SynergyValidationError("Missing 'reference' layer in layer configuration")
        if "file" not in reference:
            raise SynergyValidationError("Missing 'file' key in reference layer configuration")
        
        targets = layer_data.get("target")
        if not isinstance(targets, list):
            raise SynergyValidationError("Missing 'target' layer list in layer configuration")
        
        for index, target in enumerate(targets):
            if not isinstance(target, dict):
                raise SynergyValidationError(f"Target layer {index} must be an object")
            for key in REQUIRED_TARGET_KEYS:
                if key not in target:
                    raise SynergyValidationError(
                        f"Missing required key '{key}' in target layer {index}",
                        {"layer": target.get("name", index)}
                    )
            if not isinstance(target["group_by_fields"], list):
                raise SynergyValidationError(
                    f"'group_by_fields' of target layer {index} must be a list",
                    {"layer": target["name"]}
                )
    
    def clear_cache(self) -> None:
        """Clear the configuration cache."""
        self.load_environment_config.cache_clear()
        self.load_layer_config.cache_clear()
        self.logger.info("Configuration cache cleared")
