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

from typing import Any, Dict, Optional

from cloudbuild.constants import HTTP_METHODS, PROJECT_SERVICE_NAME
from cloudbuild.services.server_request_service import ServerRequestService


class ServerProjectService:
    """Project level operations of the build server."""

    def __init__(self, request_service: ServerRequestService) -> None:
        self.request_service = request_service

    async def cleanup_project_data(self, app_id: str, project_name: str) -> Optional[Dict[str, Any]]:
        body = {"appId": app_id, "projectName": project_name}
        return await self.request_service.call(HTTP_METHODS.POST, PROJECT_SERVICE_NAME, "api/cleanup", body)
