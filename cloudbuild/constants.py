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

SERVER_URL_ENV = "CLOUD_SERVER_URL"
AUTH_TOKEN_ENV = "CLOUD_AUTH_TOKEN"
POLL_INTERVAL_ENV = "CLOUD_POLL_INTERVAL"
POLL_TIMEOUT_ENV = "CLOUD_POLL_TIMEOUT"
REQUEST_TIMEOUT_ENV = "CLOUD_REQUEST_TIMEOUT"
CONNECT_TIMEOUT_ENV = "CLOUD_CONNECT_TIMEOUT"
EULA_URL_ENV = "CLOUD_EULA_URL"
SETTINGS_FILE_ENV = "CLOUD_SETTINGS_FILE"

DEFAULT_SERVER_URL = "http://localhost:8080"
DEFAULT_EULA_URL = "http://localhost:8080/eula/EULA.pdf"
DEFAULT_POLL_INTERVAL = 2.0  # seconds
DEFAULT_POLL_TIMEOUT = 1800.0  # seconds
DEFAULT_REQUEST_TIMEOUT = 120.0  # seconds
DEFAULT_CONNECT_TIMEOUT = 10.0  # seconds

CLOUDBUILD_HOME_DIR_NAME = ".cloudbuild"
AUTH_TOKEN_FILE_NAME = "token"
SETTINGS_FILE_NAME = "settings.yaml"

BUILD_SERVICE_NAME = "build"
CODE_COMMIT_SERVICE_NAME = "code-commit"
PROJECT_SERVICE_NAME = "project"

CLOUD_TEMP_DIR_NAME = ".cloud"
CODESIGN_FILES_DIR_NAME = "codesign"

ACCEPTED_EULA_HASH_KEY = "acceptedEulaHash"
EULA_FILE_NAME = "EULA.pdf"


class HTTP_METHODS:
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class CLOUD_BUILD_CONFIGURATIONS:
    DEBUG = "Debug"
    RELEASE = "Release"


class PLATFORMS:
    ANDROID = "Android"
    IOS = "iOS"


SUPPORTED_PLATFORMS = [PLATFORMS.ANDROID, PLATFORMS.IOS]

# Marker of the storage gateway rejecting requests, reported as a service outage
FORBIDDEN_ERROR_MARKER = "403 Forbidden"

CODESIGN_UNAVAILABLE_MESSAGE = (
    "The Code Signing Assistance service is temporary unavailable. Please try again later."
)
BUILD_UNAVAILABLE_MESSAGE = (
    "The cloud build service is temporary unavailable. Please try again later."
)
