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
Build server request service.

This service sends authenticated JSON requests to the build server's
services (build, code-commit, project) and maps HTTP failures onto the
CloudBuild exception hierarchy.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from cloudbuild.exceptions import ServerRequestError, TransientNetworkError
from cloudbuild.utils.log import TRACE

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = (502, 503, 504)


def raise_for_response(response: httpx.Response, description: str) -> None:
    """Raise the CloudBuild error matching a non-2xx response."""
    if response.is_success:
        return

    logger.log(TRACE, f"{description} failed with {response.status_code}: {response.text}")
    context = {"url": str(response.request.url), "status_code": response.status_code}
    message = f"{description} failed with status {response.status_code} {response.reason_phrase}"
    if response.status_code in TRANSIENT_STATUS_CODES:
        raise TransientNetworkError(message, response.status_code, context)
    raise ServerRequestError(message, response.status_code, context)


class ServerRequestService:
    """Service for calling the build server API."""

    def __init__(self, server_url: str, client: httpx.AsyncClient) -> None:
        self.server_url = server_url.rstrip('/')
        self.client = client

    def get_url(self, service_name: str, url_path: str) -> str:
        return f"{self.server_url}/{service_name}/{url_path.lstrip('/')}"

    async def call(
        self,
        method: str,
        service_name: str,
        url_path: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request to one of the build server services.

        Args:
            method: HTTP method
            service_name: Server service name, the first path segment
            url_path: Path (and query) inside the service
            body: Optional JSON body

        Returns:
            Parsed JSON response, or None for an empty body

        Raises:
            TransientNetworkError: On connection failures and gateway errors
            ServerRequestError: On any other error status
        """
        url = self.get_url(service_name, url_path)
        logger.debug(f"{method} {url}")

        try:
            response = await self.client.request(method, url, json=body)
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"Unable to reach the {service_name} service: {e}",
                context={"url": url},
            ) from e

        raise_for_response(response, f"{method} {service_name}/{url_path}")
        logger.log(TRACE, f"Response from {url}: {response.text}")

        if not response.content:
            return None
        return response.json()
