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
Unit tests for RemoteOperationClient.

Tests cover:
- Build id generation and propagation
- Result filtering and download order
- Failure reporting, including the service outage message
- Validation before any request is sent
- Polling timeouts and transient polling failures
"""

import asyncio
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import httpx

from cloudbuild.constants import CODESIGN_UNAVAILABLE_MESSAGE
from cloudbuild.exceptions import (
    ArtifactDownloadError,
    OperationTimeoutError,
    RemoteOperationFailedError,
    ValidationError,
)
from cloudbuild.models.operation_models import BuildItem, OperationState
from cloudbuild.runtime.build_runtime import BUILD_HOOKS
from cloudbuild.runtime.codesign_runtime import CODESIGN_HOOKS
from cloudbuild.services.operation_client import RemoteOperationClient, artifact_file_names
from cloudbuild.utils.log import TRACE

STORAGE = "https://storage.test"
RESULT_URL = f"{STORAGE}/result.json"
STATUS_URL = f"{STORAGE}/status.json"
LOGS_URL = f"{STORAGE}/logs.txt"


class FakeStorage:
    """Routes GET requests of the storage client to canned responses."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.requested = []

    def handler(self, request):
        url = str(request.url)
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="Not Found")
        if callable(route):
            return route(request)
        status, content = route
        if isinstance(content, (dict, list)):
            return httpx.Response(status, json=content)
        return httpx.Response(status, content=content)

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def count(self, url):
        return self.requested.count(url)


class FakeServer:
    """Records submitted payloads and answers with a fixed response."""

    def __init__(self, response=None):
        self.response = {"resultUrl": RESULT_URL} if response is None else response
        self.payloads = []

    async def send(self, payload):
        self.payloads.append(payload)
        return self.response


class OperationClientTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.destination = Path(self.tmp.name) / "out"

    def tearDown(self):
        self.tmp.cleanup()

    def make_client(self, storage, hooks=CODESIGN_HOOKS, poll_timeout=5.0):
        client = RemoteOperationClient(hooks, storage.client(), poll_interval=0, poll_timeout=poll_timeout)
        self.addAsyncCleanup(client.storage_client.aclose)
        return client

    def codesign_request(self, client, **overrides):
        payload = {"appId": "org.test.app", "username": "user@test", "password": "secret"}
        payload.update(overrides)
        return client.create_request(payload)


class TestBuildIds(OperationClientTestCase):
    """Test build id generation."""

    def test_build_ids_are_unique(self):
        """Every request gets its own build id."""
        client = self.make_client(FakeStorage())
        ids = {client.create_request({}).build_id for _ in range(50)}
        self.assertEqual(len(ids), 50)

    def test_build_id_is_sent_with_payload(self):
        """The wire payload carries the build id."""
        client = self.make_client(FakeStorage())
        request = client.create_request({"appId": "a"}, build_id="fixed-id")
        self.assertEqual(request.to_wire(), {"appId": "a", "buildId": "fixed-id"})


class TestArtifactFileNames(unittest.TestCase):

    def test_names_follow_platform_and_disposition(self):
        items = [
            BuildItem(disposition="Certificate", url=f"{STORAGE}/a/cert.p12?sig=1"),
            BuildItem(disposition="Provision", url=f"{STORAGE}/a/profile.mobileprovision"),
        ]
        self.assertEqual(
            artifact_file_names(items, "iOS"),
            ["ios-certificate.p12", "ios-provision.mobileprovision"],
        )

    def test_duplicate_dispositions_are_numbered(self):
        items = [
            BuildItem(disposition="Package", url=f"{STORAGE}/app.apk"),
            BuildItem(disposition="Package", url=f"{STORAGE}/app-arm64.apk"),
        ]
        self.assertEqual(artifact_file_names(items, "Android"), ["android-package.apk", "android-package-1.apk"])


class TestSuccessfulOperation(OperationClientTestCase):
    """Test the happy path of a remote operation."""

    async def test_downloads_filtered_items_in_manifest_order(self):
        """Only requested dispositions are downloaded, in manifest order."""
        manifest = {
            "buildItems": [
                {"disposition": "Provision", "url": f"{STORAGE}/profile.mobileprovision"},
                {"disposition": "Package", "url": f"{STORAGE}/app.ipa"},
                {"disposition": "Certificate", "url": f"{STORAGE}/cert.p12"},
            ],
            "errors": "",
            "stdout": "done",
        }
        storage = FakeStorage({
            RESULT_URL: (200, manifest),
            f"{STORAGE}/profile.mobileprovision": (200, b"profile"),
            f"{STORAGE}/cert.p12": (200, b"certificate"),
        })
        server = FakeServer()
        client = self.make_client(storage)
        request = self.codesign_request(client)

        outcome = await client.execute(request, server.send, self.destination, "iOS")

        self.assertEqual(outcome.state, OperationState.COMPLETED)
        self.assertEqual(outcome.build_id, request.build_id)
        self.assertEqual(server.payloads[0]["buildId"], request.build_id)
        self.assertEqual(
            [Path(p).name for p in outcome.output_files_paths],
            ["ios-provision.mobileprovision", "ios-certificate.p12"],
        )
        self.assertEqual(Path(outcome.output_files_paths[0]).read_bytes(), b"profile")
        self.assertEqual(Path(outcome.output_files_paths[1]).read_bytes(), b"certificate")
        self.assertNotIn(f"{STORAGE}/app.ipa", storage.requested)
        self.assertEqual(json.loads(outcome.full_output), manifest)

    async def test_status_document_is_polled_until_terminal(self):
        """Polling continues while the status document is not terminal."""
        statuses = iter(["Building", "Building", "Success"])
        storage = FakeStorage({
            STATUS_URL: lambda request: httpx.Response(200, json={"status": next(statuses)}),
            RESULT_URL: (200, {"buildItems": [{"disposition": "Certificate", "url": f"{STORAGE}/cert.p12"}]}),
            f"{STORAGE}/cert.p12": (200, b"certificate"),
        })
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL})
        client = self.make_client(storage)

        outcome = await client.execute(self.codesign_request(client), server.send, self.destination, "iOS")

        self.assertEqual(outcome.state, OperationState.COMPLETED)
        self.assertEqual(storage.count(STATUS_URL), 3)

    async def test_transient_status_failures_do_not_abort(self):
        """Gateway errors while polling are retried until the status arrives."""
        responses = iter([
            httpx.Response(503, text="Service Unavailable"),
            httpx.Response(502, text="Bad Gateway"),
            httpx.Response(200, json={"status": "Success"}),
        ])
        storage = FakeStorage({
            STATUS_URL: lambda request: next(responses),
            RESULT_URL: (200, {"buildItems": [{"disposition": "Certificate", "url": f"{STORAGE}/cert.p12"}]}),
            f"{STORAGE}/cert.p12": (200, b"certificate"),
        })
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL})
        client = self.make_client(storage)

        outcome = await client.execute(self.codesign_request(client), server.send, self.destination, "iOS")

        self.assertEqual(outcome.state, OperationState.COMPLETED)
        self.assertEqual(len(outcome.output_files_paths), 1)

    async def test_build_logs_are_streamed(self):
        """New log lines are logged while a build is polled."""
        storage = FakeStorage({
            LOGS_URL: (200, b"Compiling sources\nPackaging app\n"),
            RESULT_URL: (200, {"buildItems": [{"disposition": "Package", "url": f"{STORAGE}/app.apk"}]}),
            f"{STORAGE}/app.apk": (200, b"apk"),
        })
        server = FakeServer({"resultUrl": RESULT_URL, "logsUrl": LOGS_URL})
        client = self.make_client(storage, hooks=BUILD_HOOKS)
        request = client.create_request({"appId": "org.test.app", "platform": "Android"})

        with self.assertLogs("cloudbuild.services.operation_client", level="INFO") as logs:
            outcome = await client.execute(request, server.send, self.destination, "Android")

        self.assertTrue(any("Compiling sources" in line for line in logs.output))
        self.assertEqual([Path(p).name for p in outcome.output_files_paths], ["android-package.apk"])

    async def test_partial_log_lines_wait_for_newline(self):
        """A log line still being written is logged once, when it is complete."""
        statuses = iter(["Building", "Building", "Success"])
        logs = iter([b"Compiling sour", b"Compiling sources\nPackag", b"Compiling sources\nPackaging app\n"])
        storage = FakeStorage({
            STATUS_URL: lambda request: httpx.Response(200, json={"status": next(statuses)}),
            LOGS_URL: lambda request: httpx.Response(200, content=next(logs)),
            RESULT_URL: (200, {"buildItems": [{"disposition": "Package", "url": f"{STORAGE}/app.apk"}]}),
            f"{STORAGE}/app.apk": (200, b"apk"),
        })
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL, "logsUrl": LOGS_URL})
        client = self.make_client(storage, hooks=BUILD_HOOKS)
        request = client.create_request({"appId": "org.test.app", "platform": "Android"})

        with self.assertLogs("cloudbuild.services.operation_client", level="INFO") as captured:
            await client.execute(request, server.send, self.destination, "Android")

        messages = [record.getMessage() for record in captured.records]
        self.assertEqual(messages.count("Compiling sources"), 1)
        self.assertEqual(messages.count("Packaging app"), 1)
        self.assertNotIn("Compiling sour", messages)
        self.assertNotIn("Packag", messages)

    async def test_files_are_written_off_the_event_loop(self):
        storage = FakeStorage({
            RESULT_URL: (200, {"buildItems": [{"disposition": "Certificate", "url": f"{STORAGE}/cert.p12"}]}),
            f"{STORAGE}/cert.p12": (200, b"certificate"),
        })
        client = self.make_client(storage)
        real_to_thread = asyncio.to_thread

        with patch("cloudbuild.services.operation_client.asyncio.to_thread", side_effect=real_to_thread) as to_thread:
            outcome = await client.execute(self.codesign_request(client), FakeServer().send, self.destination, "iOS")

        self.assertIs(to_thread.call_args_list[0].args[0], open)
        self.assertEqual(Path(outcome.output_files_paths[0]).read_bytes(), b"certificate")


class TestFailedOperation(OperationClientTestCase):
    """Test failure reporting."""

    async def test_empty_result_reports_server_errors(self):
        """No items means failure with the server's error text; nothing is downloaded."""
        storage = FakeStorage({RESULT_URL: (200, {"buildItems": [], "errors": "Invalid Apple ID credentials"})})
        client = self.make_client(storage)
        request = self.codesign_request(client)

        with self.assertRaises(RemoteOperationFailedError) as ctx:
            await client.execute(request, FakeServer().send, self.destination, "iOS")

        err = ctx.exception
        self.assertEqual(str(err), "Codesign failed. Reason is: Invalid Apple ID credentials.")
        self.assertEqual(err.reason, "Invalid Apple ID credentials")
        self.assertEqual(err.build_id, request.build_id)
        self.assertEqual(set(storage.requested), {RESULT_URL})

    async def test_forbidden_error_is_reported_as_outage(self):
        """A 403 in the server errors becomes the unavailable message; raw text goes to TRACE."""
        raw = "S3 upload failed: 403 Forbidden (request id ABC123)"
        storage = FakeStorage({RESULT_URL: (200, {"buildItems": [], "errors": raw})})
        client = self.make_client(storage)

        with self.assertLogs("cloudbuild.services.operation_client", level=TRACE) as logs:
            with self.assertRaises(RemoteOperationFailedError) as ctx:
                await client.execute(self.codesign_request(client), FakeServer().send, self.destination, "iOS")

        err = ctx.exception
        self.assertIn(CODESIGN_UNAVAILABLE_MESSAGE, str(err))
        self.assertNotIn("403", str(err))
        self.assertEqual(err.errors, raw)
        self.assertTrue(any("ABC123" in record.getMessage() for record in logs.records if record.levelno == TRACE))

    async def test_result_without_matching_items(self):
        """Items of other dispositions only are reported by disposition name."""
        storage = FakeStorage({
            RESULT_URL: (200, {"buildItems": [{"disposition": "Package", "url": f"{STORAGE}/app.ipa"}]}),
        })
        client = self.make_client(storage)

        with self.assertRaises(RemoteOperationFailedError) as ctx:
            await client.execute(self.codesign_request(client), FakeServer().send, self.destination, "iOS")

        self.assertIn(
            "No item with disposition Certificate or Provision found in the server result items",
            str(ctx.exception),
        )

    async def test_failed_status_with_items_still_downloads(self):
        """A Failed status is not final when the manifest lists the requested items."""
        storage = FakeStorage({
            STATUS_URL: (200, {"status": "Failed"}),
            RESULT_URL: (200, {"buildItems": [{"disposition": "Certificate", "url": f"{STORAGE}/cert.p12"}]}),
            f"{STORAGE}/cert.p12": (200, b"certificate"),
        })
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL})
        client = self.make_client(storage)

        outcome = await client.execute(self.codesign_request(client), server.send, self.destination, "iOS")

        self.assertEqual([Path(p).name for p in outcome.output_files_paths], ["ios-certificate.p12"])

    async def test_missing_result_location(self):
        """A submission response without resultUrl means the operation did not start."""
        client = self.make_client(FakeStorage())

        with self.assertRaises(RemoteOperationFailedError) as ctx:
            await client.execute(self.codesign_request(client), FakeServer({}).send, self.destination, "iOS")

        self.assertEqual(str(ctx.exception), CODESIGN_HOOKS.failed_to_start_error)
        self.assertIsNotNone(ctx.exception.build_id)

    async def test_download_failure_is_reported(self):
        """Failed downloads are collected into one error."""
        storage = FakeStorage({
            RESULT_URL: (200, {
                "buildItems": [
                    {"disposition": "Certificate", "url": f"{STORAGE}/cert.p12"},
                    {"disposition": "Provision", "url": f"{STORAGE}/profile.mobileprovision"},
                ],
            }),
            f"{STORAGE}/cert.p12": (200, b"certificate"),
            f"{STORAGE}/profile.mobileprovision": (500, b"Internal Server Error"),
        })
        client = self.make_client(storage)
        request = self.codesign_request(client)

        with self.assertRaises(ArtifactDownloadError) as ctx:
            await client.execute(request, FakeServer().send, self.destination, "iOS")

        self.assertEqual(ctx.exception.context["failed_urls"], [f"{STORAGE}/profile.mobileprovision"])
        self.assertEqual(ctx.exception.build_id, request.build_id)


    async def test_null_build_items_reports_server_errors(self):
        """A null item list is a failed operation, not a malformed manifest."""
        storage = FakeStorage({RESULT_URL: (200, {"buildItems": None, "errors": "Invalid Apple ID"})})
        client = self.make_client(storage)
        request = self.codesign_request(client)

        with self.assertRaises(RemoteOperationFailedError) as ctx:
            await client.execute(request, FakeServer().send, self.destination, "iOS")

        self.assertEqual(str(ctx.exception), "Codesign failed. Reason is: Invalid Apple ID.")
        self.assertEqual(ctx.exception.build_id, request.build_id)

    async def test_null_build_items_with_forbidden_error(self):
        raw = "Upload rejected: 403 Forbidden"
        storage = FakeStorage({RESULT_URL: (200, {"buildItems": None, "errors": raw})})
        client = self.make_client(storage)

        with self.assertRaises(RemoteOperationFailedError) as ctx:
            await client.execute(self.codesign_request(client), FakeServer().send, self.destination, "iOS")

        self.assertIn(CODESIGN_UNAVAILABLE_MESSAGE, str(ctx.exception))
        self.assertEqual(ctx.exception.errors, raw)

    async def test_failed_status_without_result(self):
        """A reported failure without a manifest uses the operation's failure message."""
        storage = FakeStorage({STATUS_URL: (200, {"status": "Failed"})})
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL})
        client = self.make_client(storage)
        request = self.codesign_request(client)

        with self.assertRaises(RemoteOperationFailedError) as ctx:
            await client.execute(request, server.send, self.destination, "iOS")

        self.assertTrue(str(ctx.exception).startswith("Codesign failed. Reason is:"))
        self.assertIn("404", ctx.exception.reason)
        self.assertEqual(ctx.exception.build_id, request.build_id)


class TestValidation(OperationClientTestCase):
    """Test that invalid requests never reach the server."""

    async def test_missing_credentials_send_nothing(self):
        storage = FakeStorage()
        server = FakeServer()
        client = self.make_client(storage)

        with self.assertRaises(ValidationError) as ctx:
            await client.execute(self.codesign_request(client, password=""), server.send, self.destination, "iOS")

        self.assertIn("password", str(ctx.exception))
        self.assertIsNone(ctx.exception.build_id)
        self.assertEqual(server.payloads, [])
        self.assertEqual(storage.requested, [])


class TestTimeout(OperationClientTestCase):
    """Test behaviour when polling runs out of time."""

    async def test_timeout_still_fetches_result_once(self):
        """After a timeout the result is fetched once; without items the timeout is raised."""
        storage = FakeStorage({
            STATUS_URL: (200, {"status": "Building"}),
            RESULT_URL: (200, {"buildItems": [], "errors": "still running"}),
        })
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL})
        client = self.make_client(storage, poll_timeout=0)
        request = self.codesign_request(client)

        with self.assertRaises(OperationTimeoutError) as ctx:
            await client.execute(request, server.send, self.destination, "iOS")

        self.assertEqual(storage.count(RESULT_URL), 1)
        self.assertEqual(ctx.exception.context["errors"], "still running")
        self.assertEqual(ctx.exception.build_id, request.build_id)

    async def test_timeout_with_result_items_proceeds(self):
        """A result produced despite the timeout is still downloaded."""
        storage = FakeStorage({
            STATUS_URL: (200, {"status": "Building"}),
            RESULT_URL: (200, {"buildItems": [{"disposition": "Certificate", "url": f"{STORAGE}/cert.p12"}]}),
            f"{STORAGE}/cert.p12": (200, b"certificate"),
        })
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL})
        client = self.make_client(storage, poll_timeout=0)

        outcome = await client.execute(self.codesign_request(client), server.send, self.destination, "iOS")

        self.assertEqual(outcome.state, OperationState.TIMED_OUT)
        self.assertEqual(len(outcome.output_files_paths), 1)

    async def test_timeout_with_unreachable_result(self):
        """When the result cannot be fetched either, the timeout is reported."""
        storage = FakeStorage({STATUS_URL: (200, {"status": "Building"})})
        server = FakeServer({"resultUrl": RESULT_URL, "statusUrl": STATUS_URL})
        client = self.make_client(storage, poll_timeout=0)

        with self.assertRaises(OperationTimeoutError):
            await client.execute(self.codesign_request(client), server.send, self.destination, "iOS")

        self.assertEqual(storage.count(RESULT_URL), 1)


if __name__ == "__main__":
    unittest.main()
