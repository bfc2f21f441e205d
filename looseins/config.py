# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Sectioned configuration loaded from YAML or JSON"""

import json
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)

_TRUE = {'1', 'true', 'yes', 'on'}
_FALSE = {'0', 'false', 'no', 'off'}


class Config:
    """
    Section/key configuration accessor with caller-supplied defaults.

    The file holds one mapping per section (BASE, RTK, SINS, GNSS, LOG).
    Section names are case insensitive. Every read returns the default when
    the section or the key is missing.

    Examples:
        >>> cfg = Config.from_file('looseins.yaml')
        >>> cfg.read_float('RTK', 'ratio_threshold', 3.0)
        3.0
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        data = data or {}
        if not isinstance(data, Mapping):
            raise ValueError("Configuration root must be a mapping of sections")
        self._sections = {}
        for name, section in data.items():
            if section is None:
                section = {}
            if not isinstance(section, Mapping):
                raise ValueError(f"Section {name} must be a mapping")
            self._sections[str(name).upper()] = dict(section)

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> 'Config':
        """
        Load configuration from file.

        Parameters:
        -----------
        filepath : str or Path
            Path to configuration file (.yaml, .yml, or .json)

        Raises:
            ValueError: If file format is not supported
            FileNotFoundError: If the specified file doesn't exist
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Configuration file not found: {filepath}")

        if filepath.suffix in ['.yaml', '.yml']:
            with open(filepath) as f:
                data = yaml.safe_load(f)
        elif filepath.suffix == '.json':
            with open(filepath) as f:
                data = json.load(f)
        else:
            raise ValueError(f"Unsupported file format: {filepath.suffix}")

        logger.info(f"Loaded configuration from {filepath}")
        return cls(data)

    def save(self, filepath: Union[str, Path]):
        """Write the configuration as YAML or JSON, chosen by extension"""
        filepath = Path(filepath)
        if filepath.suffix in ['.yaml', '.yml']:
            with open(filepath, 'w') as f:
                yaml.safe_dump(self._sections, f, default_flow_style=False)
        elif filepath.suffix == '.json':
            with open(filepath, 'w') as f:
                json.dump(self._sections, f, indent=2)
        else:
            raise ValueError(f"Unsupported file format: {filepath.suffix}")

    def has(self, section: str, key: str) -> bool:
        return key in self._sections.get(section.upper(), {})

    def section(self, section: str) -> dict:
        """Copy of one section, empty when missing"""
        return dict(self._sections.get(section.upper(), {}))

    def _get(self, section: str, key: str):
        return self._sections.get(section.upper(), {}).get(key)

    def read_string(self, section: str, key: str, default: str = "") -> str:
        value = self._get(section, key)
        return default if value is None else str(value)

    def read_int(self, section: str, key: str, default: int = 0) -> int:
        value = self._get(section, key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"[{section}] {key}={value!r} is not an integer, using {default}")
            return default

    def read_float(self, section: str, key: str, default: float = 0.0) -> float:
        value = self._get(section, key)
        if value is None:
            return default
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f"[{section}] {key}={value!r} is not a number, using {default}")
            return default

    def read_bool(self, section: str, key: str, default: bool = False) -> bool:
        value = self._get(section, key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        logger.warning(f"[{section}] {key}={value!r} is not a boolean, using {default}")
        return default

    def read_list(self, section: str, key: str, default: Optional[List[float]] = None) -> Optional[List[float]]:
        """Numeric list from a YAML/JSON sequence or a comma/space separated string"""
        value = self._get(section, key)
        if value is None:
            return default
        if isinstance(value, str):
            value = value.replace(',', ' ').split()
        try:
            return [float(v) for v in value]
        except (TypeError, ValueError):
            logger.warning(f"[{section}] {key}={value!r} is not a numeric list, using {default}")
            return default
