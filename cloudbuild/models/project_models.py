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

from pydantic import BaseModel, Field


class ProjectData(BaseModel):
    """Local project metadata read from package.json."""

    project_dir: str = Field(..., description="Absolute path of the project")
    project_name: str = Field(..., description="Name of the project directory or package")
    project_id: str = Field(..., description="Application identifier")
    nativescript_data: Dict[str, Any] = Field(default_factory=dict, description="The nativescript block")


class EulaData(BaseModel):
    url: str
    should_accept: bool
