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

from typing import Any, Dict

from cloudbuild.constants import BUILD_SERVICE_NAME, HTTP_METHODS
from cloudbuild.services.server_request_service import ServerRequestService


class ServerBuildService:
    """Starts builds and codesign generations on the build server."""

    def __init__(self, request_service: ServerRequestService) -> None:
        self.request_service = request_service

    async def start_build(self, build_request: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request_service.call(HTTP_METHODS.POST, BUILD_SERVICE_NAME, "api/build", build_request)

    async def generate_codesign_files(self, codesign_request: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request_service.call(HTTP_METHODS.POST, BUILD_SERVICE_NAME, "api/codesign", codesign_request)
