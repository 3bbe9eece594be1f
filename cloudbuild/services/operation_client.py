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
Remote operation client.

Drives one long-running operation on the build server: submits the request,
polls its status, fetches the result manifest and downloads the result files.
Per-service behaviour (messages, which files to download, log streaming) is
supplied through OperationHooks.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import httpx

from cloudbuild.constants import FORBIDDEN_ERROR_MARKER
from cloudbuild.exceptions import (
    ArtifactDownloadError,
    OperationTimeoutError,
    RemoteOperationFailedError,
    ServerRequestError,
    TransientNetworkError,
    ValidationError,
)
from cloudbuild.models.operation_models import (
    SERVER_STATUS_SUCCESS,
    BuildItem,
    OperationHandle,
    OperationOutcome,
    OperationRequest,
    OperationResult,
    OperationState,
    ServerStatus,
)
from cloudbuild.services.server_request_service import raise_for_response
from cloudbuild.utils.log import TRACE

logger = logging.getLogger(__name__)

SubmitFunc = Callable[[Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]


@dataclass
class OperationHooks:
    """Per-service configuration of the remote operation client."""
    description: str
    failed_error: str
    failed_to_start_error: str
    unavailable_message: str
    dispositions: Tuple[str, ...]
    # Payload keys which must be non-empty before anything is sent
    required_fields: Tuple[str, ...] = ()
    stream_logs: bool = False
    missing_fields_error: str = "Required operation data is missing"


def new_build_id() -> str:
    return str(uuid.uuid4())


def annotate_build_id(err: BaseException, build_id: str) -> BaseException:
    """Attach the build id to an error raised during an operation."""
    if isinstance(err, ValidationError):
        return err
    if getattr(err, "build_id", None) is None:
        err.build_id = build_id
    return err


def artifact_file_names(items: Sequence[BuildItem], platform: str) -> List[str]:
    """Local file names: <platform>-<disposition>[-<n>]<ext>, lower case."""
    seen: Dict[str, int] = {}
    names = []
    for item in items:
        base = f"{platform}-{item.disposition}".lower()
        index = seen.get(base, 0)
        seen[base] = index + 1
        if index:
            base = f"{base}-{index}"
        suffix = PurePosixPath(urlparse(item.url).path).suffix
        names.append(f"{base}{suffix}")
    return names


class RemoteOperationClient:
    """Generic client for one kind of remote long-running operation."""

    def __init__(
        self,
        hooks: OperationHooks,
        storage_client: httpx.AsyncClient,
        poll_interval: float = 2.0,
        poll_timeout: float = 1800.0,
    ) -> None:
        self.hooks = hooks
        self.storage_client = storage_client
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout

    def create_request(self, payload: Dict[str, Any], build_id: Optional[str] = None) -> OperationRequest:
        """Bind a payload to a build id, generating a new one when not given."""
        return OperationRequest(build_id=build_id or new_build_id(), payload=payload)

    def validate_request(self, request: OperationRequest) -> None:
        missing = [name for name in self.hooks.required_fields if not request.payload.get(name)]
        if missing:
            raise ValidationError(
                f"{self.hooks.missing_fields_error}: {', '.join(missing)}.",
                {"missing": missing},
            )

    async def submit(self, request: OperationRequest, send: SubmitFunc) -> OperationHandle:
        """
        Validate and send the request.

        Args:
            request: Request bound to its build id
            send: Coroutine function posting the wire payload to the server

        Returns:
            OperationHandle for the started operation

        Raises:
            ValidationError: If required fields are missing; nothing is sent
            RemoteOperationFailedError: If the server did not start the operation
        """
        self.validate_request(request)

        response = await send(request.to_wire())
        logger.log(TRACE, f"Submit response for build {request.build_id}: {response}")

        if not response or not response.get("resultUrl"):
            raise RemoteOperationFailedError(
                self.hooks.failed_to_start_error,
                reason="The server response does not contain a result location.",
            )

        return OperationHandle(
            build_id=request.build_id,
            result_url=response["resultUrl"],
            logs_url=response.get("logsUrl"),
            status_url=response.get("statusUrl"),
        )

    async def await_completion(self, handle: OperationHandle) -> OperationState:
        """
        Poll the operation until it reaches a terminal state.

        Failed polls are logged and polling continues until the time budget
        is exhausted.

        Returns:
            OperationState.COMPLETED or OperationState.FAILED

        Raises:
            OperationTimeoutError: If the budget runs out first
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.poll_timeout
        logs_offset = 0
        attempts = 0

        while True:
            attempts += 1
            status = None
            try:
                status = await self._check_status(handle)
            except (ServerRequestError, ValueError) as e:
                logger.debug(f"Status check {attempts} for build {handle.build_id} failed: {e}")

            if self.hooks.stream_logs and handle.logs_url:
                logs_offset = await self._print_new_logs(handle, logs_offset)

            if status is not None and status.is_terminal:
                if status.status == SERVER_STATUS_SUCCESS:
                    return OperationState.COMPLETED
                return OperationState.FAILED

            if loop.time() >= deadline:
                raise OperationTimeoutError(
                    f"The {self.hooks.description} did not finish within {self.poll_timeout:g} seconds.",
                    {"attempts": attempts},
                )

            await asyncio.sleep(self.poll_interval)

    async def fetch_result(self, handle: OperationHandle) -> OperationResult:
        """Download and parse the result manifest."""
        response = await self._get(handle.result_url, "Result download")
        data = response.json()
        logger.log(TRACE, f"Result of build {handle.build_id}: {data}")
        return OperationResult.model_validate(data)

    async def fetch_content(self, url: str) -> str:
        """Raw text of a remote object."""
        response = await self._get(url, "Download")
        return response.text

    async def download_artifacts(
        self,
        result: OperationResult,
        destination: Path,
        dispositions: Iterable[str],
        platform: str,
    ) -> List[str]:
        """
        Download the result files matching the dispositions.

        Files are downloaded concurrently; all of them finish, or the failures
        are reported together, before this returns.

        Args:
            result: Result manifest
            destination: Local output directory
            dispositions: Dispositions to download
            platform: Platform used in the local file names

        Returns:
            Local file paths in manifest order

        Raises:
            ArtifactDownloadError: If any download failed
        """
        items = result.items_with(dispositions)
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)

        targets = [destination / name for name in artifact_file_names(items, platform)]
        outcomes = await asyncio.gather(
            *(self._download(item.url, target) for item, target in zip(items, targets)),
            return_exceptions=True,
        )

        failures = [(item.url, outcome) for item, outcome in zip(items, outcomes) if isinstance(outcome, BaseException)]
        if failures:
            for url, error in failures:
                logger.debug(f"Failed to download {url}: {error}")
            raise ArtifactDownloadError(
                f"Failed to download {len(failures)} of {len(items)} result files.", failures
            )

        return [str(target) for target in targets]

    def describe_failure(self, result: OperationResult) -> str:
        """User facing reason of a failed operation."""
        err_text = result.errors or ""
        if FORBIDDEN_ERROR_MARKER in err_text:
            logger.log(TRACE, f"{self.hooks.description} errors: {err_text}")
            return self.hooks.unavailable_message
        return err_text

    def failure_error(self, result: OperationResult) -> RemoteOperationFailedError:
        if result.build_items:
            names = " or ".join(getattr(d, "value", d) for d in self.hooks.dispositions)
            reason = f"No item with disposition {names} found in the server result items"
        else:
            reason = self.describe_failure(result)

        return RemoteOperationFailedError(
            f"{self.hooks.failed_error} Reason is: {reason}.",
            reason=reason,
            errors=result.errors or "",
            stderr=result.stderr,
        )

    async def execute(
        self,
        request: OperationRequest,
        send: SubmitFunc,
        destination: Path,
        platform: str,
    ) -> OperationOutcome:
        """
        Run the whole operation: submit, poll, fetch the result and download files.

        Errors other than ValidationError carry the request's build id.
        """
        try:
            return await self._execute(request, send, destination, platform)
        except Exception as err:
            annotate_build_id(err, request.build_id)
            raise

    async def _execute(
        self,
        request: OperationRequest,
        send: SubmitFunc,
        destination: Path,
        platform: str,
    ) -> OperationOutcome:
        logger.info(f"Starting {self.hooks.description}.")
        handle = await self.submit(request, send)

        timeout_error: Optional[OperationTimeoutError] = None
        try:
            state = await self.await_completion(handle)
        except OperationTimeoutError as e:
            logger.log(TRACE, f"Waiting for build {handle.build_id} failed with err: {e}")
            state = OperationState.TIMED_OUT
            timeout_error = e

        if state == OperationState.FAILED:
            logger.debug(f"Build {handle.build_id} reported failure, checking its result")

        # The result may exist even when the status channel failed or timed out
        try:
            result = await self.fetch_result(handle)
        except (ServerRequestError, ValueError) as e:
            if timeout_error is not None:
                raise timeout_error from e
            if state == OperationState.FAILED:
                raise RemoteOperationFailedError(
                    f"{self.hooks.failed_error} Reason is: the server reported a failure and produced no result.",
                    reason=str(e),
                ) from e
            raise

        items = result.items_with(self.hooks.dispositions)
        if not items:
            if timeout_error is not None:
                timeout_error.context["errors"] = result.errors or ""
                raise timeout_error
            raise self.failure_error(result)

        if timeout_error is not None:
            logger.warning(f"Build {handle.build_id} did not report completion in time, but produced a result.")

        logger.info(f"Finished {self.hooks.description} successfully. Downloading result...")
        output_files_paths = await self.download_artifacts(result, destination, self.hooks.dispositions, platform)
        logger.info(f"The result of {self.hooks.description} successfully downloaded. Files: {output_files_paths}")

        full_output = await self.fetch_content(handle.result_url)

        return OperationOutcome(
            build_id=handle.build_id,
            state=OperationState.COMPLETED if timeout_error is None else OperationState.TIMED_OUT,
            result=result,
            output_files_paths=output_files_paths,
            full_output=full_output,
        )

    async def _check_status(self, handle: OperationHandle) -> ServerStatus:
        if handle.status_url:
            response = await self._get(handle.status_url, "Status check")
            return ServerStatus.model_validate(response.json())

        # Without a status document the operation is done once its result exists
        await self._get(handle.result_url, "Result check")
        return ServerStatus(status=SERVER_STATUS_SUCCESS)

    async def _print_new_logs(self, handle: OperationHandle, offset: int) -> int:
        try:
            content = await self.fetch_content(handle.logs_url)
        except (ServerRequestError, ValueError) as e:
            logger.debug(f"Unable to get logs of build {handle.build_id}: {e}")
            return offset

        # Only complete lines are logged; a partial last line waits for the next poll
        end = content.rfind("\n", offset) + 1
        if end <= offset:
            return offset

        for line in content[offset:end].splitlines():
            if line.strip():
                logger.info(line)
        return end

    async def _get(self, url: str, description: str) -> httpx.Response:
        try:
            response = await self.storage_client.get(url)
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{description} failed: {e}", context={"url": url}) from e

        raise_for_response(response, description)
        return response

    async def _download(self, url: str, target: Path) -> None:
        try:
            async with self.storage_client.stream("GET", url) as response:
                if not response.is_success:
                    await response.aread()
                    raise_for_response(response, f"Download of {target.name}")

                # Keep file IO off the event loop
                f = await asyncio.to_thread(open, target, "wb")
                try:
                    async for chunk in response.aiter_bytes():
                        await asyncio.to_thread(f.write, chunk)
                finally:
                    await asyncio.to_thread(f.close)
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Download of {target.name} failed: {e}", context={"url": url}) from e

        logger.debug(f"Downloaded {url} to {target}")
