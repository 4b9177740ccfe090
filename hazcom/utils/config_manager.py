"""
Configuration management for the HazCom compliance core.

Handles loading, updating, and persisting configuration including
matching thresholds, training windows, compliance pillar weights,
and the extraction client settings.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Optional
import yaml

logger = logging.getLogger(__name__)

# Default config path relative to project root
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / 'config' / 'hazcom_config.yaml'


class ConfigManager:
    """
    Manages system configuration including thresholds and scoring weights.

    Provides methods to load, update, and persist configuration. Values
    missing from the YAML file fall back to DEFAULT_CONFIG section by section.
    """

    DEFAULT_CONFIG = {
        'matching': {
            'shared_word_threshold': 3,
            'min_token_length': 3,
            'review_confidence': 0.75,
            'default_confidence': 0.5,
        },
        'training': {
            'module_count': 7,
            'refresher_days': 365,
            'due_soon_days': 30,
        },
        'compliance': {
            'weights': {
                'sds': 30,
                'training': 30,
                'labels': 25,
                'documentation': 15,
            },
            'status_bands': {
                'inspection_ready': 90,
                'getting_close': 70,
                'needs_work': 50,
            },
            'max_improvements': 3,
        },
        'sds': {
            'min_cache_confidence': 0.5,
        },
        'extraction': {
            'api_url': 'https://api.anthropic.com/v1/messages',
            'api_version': '2023-06-01',
            'model': 'claude-sonnet-4-20250514',
            'max_tokens': 4000,
            'timeout_seconds': 60,
            'max_retries': 2,
        },
    }

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to YAML configuration file
        """
        self.config_path = Path(config_path) if config_path else None
        self.config: dict[str, Any] = {}

        if self.config_path and self.config_path.exists():
            self.load_config(self.config_path)
        else:
            logger.info("No config file found, using defaults")
            self.config = self._deep_copy_dict(self.DEFAULT_CONFIG)

    def load_config(self, path: Path) -> dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded configuration dictionary

        Raises:
            FileNotFoundError: If config file does not exist
            yaml.YAMLError: If config file is invalid
        """
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded_config = yaml.safe_load(f)

            if not loaded_config:
                logger.warning(f"Empty config file at {path}, using defaults")
                self.config = self._deep_copy_dict(self.DEFAULT_CONFIG)
            else:
                # Merge with defaults to ensure all keys exist
                self.config = self._merge_with_defaults(loaded_config)

            self.config_path = path
            logger.info(f"Loaded configuration from {path}")

            return self.config

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise

    def get_matching_param(self, name: str) -> Any:
        """
        Get a matching parameter by name.

        Raises:
            KeyError: If parameter not found
        """
        return self._get_param('matching', name)

    def get_training_param(self, name: str) -> Any:
        """
        Get a training lifecycle parameter by name.

        Raises:
            KeyError: If parameter not found
        """
        return self._get_param('training', name)

    def get_compliance_param(self, name: str) -> Any:
        """
        Get a compliance scoring parameter by name.

        Raises:
            KeyError: If parameter not found
        """
        return self._get_param('compliance', name)

    def get_sds_param(self, name: str) -> Any:
        """Get an SDS lookup parameter by name."""
        return self._get_param('sds', name)

    def get_extraction_param(self, name: str) -> Any:
        """Get an extraction client parameter by name."""
        return self._get_param('extraction', name)

    def get_weights(self) -> dict[str, float]:
        """
        Get the compliance pillar weights.

        Returns:
            Mapping of pillar name -> weight (percentage points)
        """
        return dict(self.get_compliance_param('weights'))

    def update_weights(self, weights: dict[str, float]) -> None:
        """
        Replace the compliance pillar weights.

        Args:
            weights: Mapping of pillar name -> weight

        Raises:
            ValueError: If weights are negative or do not sum to 100
        """
        if any(value < 0 for value in weights.values()):
            raise ValueError(f"Pillar weights must be non-negative, got {weights}")
        total = sum(weights.values())
        if abs(total - 100) > 1e-6:
            raise ValueError(f"Pillar weights must sum to 100, got {total}")

        old_weights = self.config.setdefault('compliance', {}).get('weights')
        self.config['compliance']['weights'] = dict(weights)
        logger.info(f"Updated pillar weights: {old_weights} -> {weights}")

    def update_matching_param(self, name: str, value: Any) -> None:
        """
        Update a matching parameter.

        Raises:
            ValueError: If review_confidence is out of range
        """
        if name == 'review_confidence' and not 0.0 <= value <= 1.0:
            raise ValueError(f"review_confidence must be between 0 and 1, got {value}")

        if 'matching' not in self.config:
            self.config['matching'] = {}

        old_value = self.config['matching'].get(name)
        self.config['matching'][name] = value

        logger.info(f"Updated matching param '{name}': {old_value} -> {value}")

    def save_config(self, path: Optional[Path] = None) -> None:
        """
        Save configuration to YAML file.

        Args:
            path: Path to save to (uses self.config_path if not provided)

        Raises:
            ValueError: If no path provided and no config_path set
        """
        save_path = path or self.config_path

        if not save_path:
            raise ValueError("No path provided and no config_path set")

        try:
            # Ensure parent directory exists
            save_path.parent.mkdir(parents=True, exist_ok=True)

            with open(save_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(
                    self.config,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    indent=2
                )

            logger.info(f"Saved configuration to {save_path}")

        except Exception as e:
            logger.error(f"Failed to save configuration: {e}")
            raise

    def get_all_config(self) -> dict[str, Any]:
        """Get a copy of the complete configuration dictionary."""
        return self._deep_copy_dict(self.config)

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self.config = self._deep_copy_dict(self.DEFAULT_CONFIG)
        logger.info("Configuration reset to defaults")

    def validate_config(self) -> list[str]:
        """
        Validate the current configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        matching = self.config.get('matching', {})
        threshold = matching.get('shared_word_threshold')
        if not isinstance(threshold, int) or threshold < 1:
            errors.append("shared_word_threshold must be a positive integer")
        review = matching.get('review_confidence')
        if not isinstance(review, (int, float)) or not 0.0 <= review <= 1.0:
            errors.append(f"review_confidence must be between 0 and 1, got {review}")

        training = self.config.get('training', {})
        for name in ('module_count', 'refresher_days', 'due_soon_days'):
            value = training.get(name)
            if not isinstance(value, int) or value < 1:
                errors.append(f"{name} must be a positive integer")
        due_soon = training.get('due_soon_days')
        refresher = training.get('refresher_days')
        if isinstance(due_soon, int) and isinstance(refresher, int) and due_soon >= refresher:
            errors.append("due_soon_days must be shorter than refresher_days")

        weights = self.config.get('compliance', {}).get('weights', {})
        missing = {'sds', 'labels', 'documentation', 'training'} - set(weights)
        if missing:
            errors.append(f"Missing pillar weights: {sorted(missing)}")
        elif abs(sum(weights.values()) - 100) > 1e-6:
            errors.append(f"Pillar weights must sum to 100, got {sum(weights.values())}")

        bands = self.config.get('compliance', {}).get('status_bands', {})
        ordered = [bands.get('inspection_ready'), bands.get('getting_close'), bands.get('needs_work')]
        if None in ordered or not ordered[0] > ordered[1] > ordered[2]:
            errors.append("status_bands must be strictly decreasing: inspection_ready > getting_close > needs_work")

        return errors

    def _get_param(self, section: str, name: str) -> Any:
        if name not in self.config.get(section, {}):
            raise KeyError(f"{section.capitalize()} parameter '{name}' not found in configuration")

        return self.config[section][name]

    def _merge_with_defaults(self, loaded_config: dict) -> dict:
        """Merge loaded config with defaults to ensure all keys exist."""
        merged = self._deep_copy_dict(self.DEFAULT_CONFIG)

        for section, values in loaded_config.items():
            if section in merged and isinstance(values, dict):
                merged[section].update(values)
            else:
                merged[section] = values

        return merged

    def _deep_copy_dict(self, d: dict) -> dict:
        """Deep copy a dictionary."""
        return copy.deepcopy(d)


_default_manager: Optional[ConfigManager] = None


def get_config(config_path: Optional[Path] = None) -> ConfigManager:
    """
    Get a configuration manager.

    With no path, returns a shared manager backed by config/hazcom_config.yaml
    (or the built-in defaults when that file is absent).
    """
    global _default_manager
    if config_path is not None:
        return ConfigManager(config_path)
    if _default_manager is None:
        _default_manager = ConfigManager(DEFAULT_CONFIG_PATH)
    return _default_manager
