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
Project data service.

Reads the local project's package.json and exposes the fields the build
server needs: project directory, name, application identifier and the
nativescript configuration block.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cloudbuild.exceptions import ValidationError
from cloudbuild.models.project_models import ProjectData

logger = logging.getLogger(__name__)

PACKAGE_JSON_FILE_NAME = "package.json"
NATIVESCRIPT_KEY = "nativescript"


class ProjectDataService:
    """Service for reading local project metadata."""

    def read_json(self, file_path: Path) -> Dict[str, Any]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {file_path}: {e}") from e

    def find_project_dir(self, start_dir: Union[str, Path]) -> Optional[Path]:
        """Closest directory at or above start_dir with a project package.json."""
        current = Path(start_dir).resolve()
        for directory in [current, *current.parents]:
            package_json = directory / PACKAGE_JSON_FILE_NAME
            if package_json.is_file() and NATIVESCRIPT_KEY in self.read_json(package_json):
                return directory
        return None

    def get_project_data(self, project_dir: Union[str, Path]) -> ProjectData:
        """
        Load project data for the project containing project_dir.

        Args:
            project_dir: Project directory or any directory inside it

        Returns:
            ProjectData: Project metadata

        Raises:
            ValidationError: If no project is found or it has no application identifier
        """
        root = self.find_project_dir(project_dir)
        if root is None:
            raise ValidationError(
                f"No project found at or above '{project_dir}' and also it was not specified as a parameter."
            )

        package_json = self.read_json(root / PACKAGE_JSON_FILE_NAME)
        nativescript_data = package_json.get(NATIVESCRIPT_KEY) or {}

        app_id = nativescript_data.get("id")
        if isinstance(app_id, dict):
            app_id = next((value for value in app_id.values() if value), None)
        if not app_id:
            raise ValidationError(f"The {PACKAGE_JSON_FILE_NAME} in {root} does not contain an application identifier.")

        logger.debug(f"Loaded project data from: {root}")

        return ProjectData(
            project_dir=str(root),
            project_name=root.name,
            project_id=app_id,
            nativescript_data=nativescript_data,
        )
