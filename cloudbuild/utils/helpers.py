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

import re
import sys
from typing import Any, Optional

from cloudbuild.constants import PLATFORMS, SUPPORTED_PLATFORMS
from cloudbuild.exceptions import ValidationError


def read_token_from_file(file_path: str) -> str:
    """Read token from a file

    Args:
        file_path: Path to the token file

    Returns:
        Token string if file exists, else empty string
    """
    try:
        with open(file_path, 'r') as file:
            return file.read().strip()
    except FileNotFoundError:
        return ""


def is_interactive() -> bool:
    """Whether both stdin and stdout are attached to a terminal."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def sanitize_name(name: str) -> str:
    """Keep only characters accepted by the build server in app names."""
    return re.sub(r"[^A-Za-z0-9_-]", "", name or "")


def validate_platform_name(platform: Optional[str]) -> str:
    """Return the canonical platform name for a case-insensitive input.

    Raises:
        ValidationError: If the platform is missing or unsupported
    """
    for supported in SUPPORTED_PLATFORMS:
        if platform and platform.lower() == supported.lower():
            return supported

    raise ValidationError(
        f"Invalid platform {platform}. Valid platforms are {', '.join(SUPPORTED_PLATFORMS)}."
    )


def is_android_platform(platform: str) -> bool:
    return bool(platform) and platform.lower() == PLATFORMS.ANDROID.lower()


def is_ios_platform(platform: str) -> bool:
    return bool(platform) and platform.lower() == PLATFORMS.IOS.lower()


def get_project_id(project_data: Any, platform: str) -> str:
    """Resolve the application identifier for a platform.

    The ``nativescript.id`` entry of package.json is either a plain string or
    a mapping keyed by lower-case platform name.
    """
    nativescript_data = project_data.nativescript_data or {}
    app_id = nativescript_data.get("id")
    if isinstance(app_id, dict):
        return app_id.get(platform.lower()) or project_data.project_id
    return project_data.project_id
