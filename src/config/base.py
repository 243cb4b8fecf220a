"""
Base configuration class shared by every component config.
"""

from dataclasses import dataclass, asdict, fields, replace
from typing import Dict, Any, Optional
import os
import yaml


_TRUE_VALUES = ('true', '1', 'yes', 'on')


@dataclass
class BaseConfig:
    """
    Base class for all configuration dataclasses.

    Provides:
    - to_dict() conversion
    - from_dict() factory (unknown keys are ignored)
    - from_env() environment loading
    - from_yaml() file loading
    - with_changes() copy-with-modification
    """

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseConfig':
        """Create config from dictionary."""
        valid_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in (data or {}).items() if k in valid_fields}
        return cls(**filtered)

    @classmethod
    def from_env(cls, prefix: str = "") -> 'BaseConfig':
        """
        Create config from environment variables.

        Only scalar fields (bool/int/float/str) are read; a field `foo_bar`
        maps to `{prefix}FOO_BAR`.

        Args:
            prefix: Environment variable prefix (e.g., "RERANK_")
        """
        data = {}
        for f in fields(cls):
            env_value = os.getenv(f"{prefix}{f.name.upper()}")
            if env_value is None:
                continue

            if f.type in (bool, 'bool'):
                data[f.name] = env_value.lower() in _TRUE_VALUES
            elif f.type in (int, 'int'):
                data[f.name] = int(env_value)
            elif f.type in (float, 'float'):
                data[f.name] = float(env_value)
            elif f.type in (str, 'str'):
                data[f.name] = env_value

        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str, section: Optional[str] = None) -> 'BaseConfig':
        """
        Load config from YAML file.

        Args:
            path: Path to YAML file
            section: Optional section name within the file
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if section:
            data = data.get(section) or {}

        return cls.from_dict(data)

    def with_changes(self, **changes) -> 'BaseConfig':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def merge(self, other: 'BaseConfig') -> 'BaseConfig':
        """
        Merge with another config, other's non-None values take precedence.
        """
        merged = self.to_dict()
        merged.update({k: v for k, v in other.to_dict().items() if v is not None})
        return self.__class__.from_dict(merged)
