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
This module defines the data models used by the build and codesign runtimes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from cloudbuild.constants import CLOUD_BUILD_CONFIGURATIONS


class ProjectSettings(BaseModel):
    """Project level settings sent with a cloud build."""

    project_dir: str = Field(..., description="Absolute path of the project")
    project_id: str = Field(..., description="Application identifier for the target platform")
    project_name: str = Field(..., description="Project name from package.json")
    nativescript_data: Dict[str, Any] = Field(default_factory=dict, description="The nativescript block of package.json")
    bundle: bool = Field(False, description="Bundle the application code before building")
    clean: bool = Field(False, description="Ignore the remote build cache")
    env: Dict[str, Any] = Field(default_factory=dict, description="Environment passed to the build")


class AndroidBuildData(BaseModel):
    path_to_certificate: str = ""
    certificate_password: Optional[str] = None


class IOSBuildData(BaseModel):
    path_to_certificate: str = ""
    certificate_password: Optional[str] = None
    path_to_provision: str = ""
    build_for_device: bool = True


class BuildData(BaseModel):
    """Everything needed to start a cloud build."""

    project_settings: ProjectSettings
    platform: str
    build_configuration: str = CLOUD_BUILD_CONFIGURATIONS.DEBUG
    android_build_data: AndroidBuildData = Field(default_factory=AndroidBuildData)
    ios_build_data: IOSBuildData = Field(default_factory=IOSBuildData)

    @field_validator('build_configuration')
    @classmethod
    def validate_build_configuration(cls, v):
        supported = [CLOUD_BUILD_CONFIGURATIONS.DEBUG, CLOUD_BUILD_CONFIGURATIONS.RELEASE]
        if v not in supported:
            raise ValueError(f"Build configuration '{v}' is not supported. Supported configurations: {supported}")
        return v


class CodesignData(BaseModel):
    """Input of the code signing files generation."""

    username: Optional[str] = Field(None, description="Apple ID")
    password: Optional[str] = Field(None, description="Apple ID password")
    platform: str = "iOS"
    clean: Optional[bool] = Field(None, description="Defaults to True when not set")
    shared_cloud: bool = False
    attached_devices: List[Dict[str, Any]] = Field(default_factory=list)


class QrData(BaseModel):
    original_url: str


class CodesignResultData(BaseModel):
    build_id: str
    stderr: Optional[str] = None
    stdout: Optional[str] = None
    full_output: str = ""
    output_files_paths: List[str] = Field(default_factory=list)


class BuildResultData(CodesignResultData):
    qr_data: Optional[QrData] = None


@dataclass
class Credentials:
    username: str
    password: str


@dataclass
class CloudBuildOptions:
    """Dataclass for holding build command options."""
    release: bool = False
    emulator: bool = False
    clean: bool = False
    bundle: bool = False
    certificate: Optional[str] = None
    certificate_password: Optional[str] = None
    provision: Optional[str] = None
    key_store_path: Optional[str] = None
    key_store_password: Optional[str] = None
    account_id: Optional[str] = None
    env: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "CloudBuildOptions":
        """Create an instance from a dictionary of options."""
        known = {k: v for k, v in options.items() if k in cls.__dataclass_fields__ and v is not None}
        return cls(**known)
