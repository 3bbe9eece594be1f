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
from typing import Any, Dict

from cloudbuild.exceptions import ServerRequestError, TransientNetworkError
from cloudbuild.services.server_code_commit_service import ServerCodeCommitService
from cloudbuild.services.server_project_service import ServerProjectService

logger = logging.getLogger(__name__)


class CloudProjectService:
    """Removes everything the build server keeps for a project."""

    def __init__(
        self,
        server_project_service: ServerProjectService,
        server_code_commit_service: ServerCodeCommitService,
    ) -> None:
        self.server_project_service = server_project_service
        self.server_code_commit_service = server_code_commit_service

    async def cleanup_project(self, app_identifier: str, project_name: str) -> Dict[str, Any]:
        """
        Clean the remote workspace and delete the project's source repository.

        Args:
            app_identifier: Application identifier
            project_name: Project name

        Returns:
            Dict containing cleanup results
        """
        logger.info(f"Cleaning up cloud workspace of {project_name} ({app_identifier}).")
        cleanup_result = await self.server_project_service.cleanup_project_data(app_identifier, project_name)

        repository_deleted = False
        try:
            repository = await self.server_code_commit_service.get_repository(app_identifier)
        except ServerRequestError as e:
            if isinstance(e, TransientNetworkError) or e.status_code != 404:
                raise
            repository = None

        if repository:
            await self.server_code_commit_service.delete_repository(app_identifier)
            repository_deleted = True
            logger.debug(f"Deleted source repository of {app_identifier}")

        return {
            "app_id": app_identifier,
            "project_name": project_name,
            "cleanup": cleanup_result,
            "repository_deleted": repository_deleted,
        }
