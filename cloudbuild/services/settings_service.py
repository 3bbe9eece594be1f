# Copyright The Volcano Authors.
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

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from cloudbuild.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class UserSettingsService:
    """Key/value user settings persisted in a YAML file."""

    def __init__(self, settings_file: Path) -> None:
        self.settings_file = Path(settings_file)

    def load_settings(self) -> Dict[str, Any]:
        if not self.settings_file.exists():
            return {}

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in settings file {self.settings_file}: {e}") from e

    def get_settings_value(self, key: str, default: Optional[Any] = None) -> Any:
        return self.load_settings().get(key, default)

    def save_setting(self, key: str, value: Any) -> None:
        settings = self.load_settings()
        settings[key] = value

        self.settings_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.settings_file, 'w', encoding='utf-8') as f:
            yaml.dump(settings, f, default_flow_style=False, indent=2)

        logger.debug(f"Saved setting '{key}' to: {self.settings_file}")
