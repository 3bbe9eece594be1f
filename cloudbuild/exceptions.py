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
Custom exceptions for CloudBuild.
"""

from typing import Any, Dict, List, Optional, Tuple


class CloudBuildError(Exception):
    """Base exception class for all CloudBuild errors"""
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.code = getattr(self, 'code', 500)
        self.build_id: Optional[str] = None


class ValidationError(CloudBuildError):
    """Invalid local input, detected before any network call"""
    code = 400


class ConfigurationError(CloudBuildError):
    """Invalid configuration"""
    code = 400


class ServerRequestError(CloudBuildError):
    """Raised when the build server answers with an error status"""
    code = 502

    def __init__(self, message: str, status_code: int, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.status_code = status_code


class TransientNetworkError(ServerRequestError):
    """Connection failure or gateway error which is worth retrying"""
    code = 503

    def __init__(self, message: str, status_code: int = 0, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code, context)


class RemoteOperationFailedError(CloudBuildError):
    """Raised when the remote operation finished without usable output"""
    code = 502

    def __init__(
        self,
        message: str,
        reason: str = "",
        errors: str = "",
        stderr: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.reason = reason
        self.errors = errors
        self.stderr = stderr


class OperationTimeoutError(CloudBuildError):
    """Polling budget exhausted"""
    code = 504


class ArtifactDownloadError(CloudBuildError):
    """One or more result files could not be downloaded"""
    code = 502

    def __init__(self, message: str, failures: List[Tuple[str, BaseException]]):
        super().__init__(message, {"failed_urls": [url for url, _ in failures]})
        self.failures = failures
