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

"""
Configuration module for CloudBuild.

Values come from keyword overrides first, then environment variables
(optionally loaded from a .env file), then the defaults in constants.
"""

import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

import cloudbuild.constants as constants
from cloudbuild.exceptions import ConfigurationError
from cloudbuild.utils.helpers import read_token_from_file


# Load environment variables from .env file
load_dotenv()


def get_cloudbuild_home() -> Path:
    return Path.home() / constants.CLOUDBUILD_HOME_DIR_NAME


class CloudConfig(BaseModel):
    """Settings shared by all CloudBuild services."""

    server_url: str = Field(constants.DEFAULT_SERVER_URL, description="Base URL of the build server")
    auth_token: Optional[str] = Field(None, description="Bearer token for the build server")
    poll_interval: float = Field(constants.DEFAULT_POLL_INTERVAL, description="Seconds between status polls")
    poll_timeout: float = Field(constants.DEFAULT_POLL_TIMEOUT, description="Polling budget in seconds")
    request_timeout: float = Field(constants.DEFAULT_REQUEST_TIMEOUT, description="HTTP read timeout")
    connect_timeout: float = Field(constants.DEFAULT_CONNECT_TIMEOUT, description="HTTP connect timeout")
    eula_url: str = Field(constants.DEFAULT_EULA_URL, description="Location of the EULA document")
    settings_file: Path = Field(
        default_factory=lambda: get_cloudbuild_home() / constants.SETTINGS_FILE_NAME,
        description="User settings file",
    )

    @field_validator('server_url', 'eula_url')
    @classmethod
    def validate_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL '{v}' must start with http:// or https://")
        return v.rstrip('/')

    @field_validator('settings_file')
    @classmethod
    def validate_settings_file(cls, v):
        return Path(v).expanduser()

    @field_validator('poll_interval', 'poll_timeout', 'request_timeout', 'connect_timeout')
    @classmethod
    def validate_not_negative(cls, v):
        if v < 0:
            raise ValueError(f"Value {v} must not be negative")
        return v


def load_config(**overrides: Any) -> CloudConfig:
    """
    Build the configuration from overrides and environment variables.

    Args:
        **overrides: Explicit values; None values are ignored

    Returns:
        CloudConfig: Validated configuration

    Raises:
        ConfigurationError: If a value is invalid
    """
    env_values = {
        "server_url": os.getenv(constants.SERVER_URL_ENV),
        "auth_token": os.getenv(constants.AUTH_TOKEN_ENV)
        or read_token_from_file(str(get_cloudbuild_home() / constants.AUTH_TOKEN_FILE_NAME))
        or None,
        "poll_interval": os.getenv(constants.POLL_INTERVAL_ENV),
        "poll_timeout": os.getenv(constants.POLL_TIMEOUT_ENV),
        "request_timeout": os.getenv(constants.REQUEST_TIMEOUT_ENV),
        "connect_timeout": os.getenv(constants.CONNECT_TIMEOUT_ENV),
        "eula_url": os.getenv(constants.EULA_URL_ENV),
        "settings_file": os.getenv(constants.SETTINGS_FILE_ENV),
    }
    env_values.update({k: v for k, v in overrides.items() if v is not None})

    # Filter out None values so defaults apply
    values = {k: v for k, v in env_values.items() if v is not None}

    try:
        return CloudConfig(**values)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
