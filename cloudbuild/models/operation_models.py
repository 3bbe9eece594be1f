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
Models exchanged with the build server while a remote operation runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Disposition(str, Enum):
    """Kind of a file produced by a remote operation."""
    CERTIFICATE = "Certificate"
    PROVISION = "Provision"
    PACKAGE = "Package"
    KEYCHAIN = "Keychain"
    CRYPTO_STORE = "CryptoStore"


def disposition_values(dispositions: Iterable[str]) -> Set[str]:
    """Plain string values of dispositions, for membership checks."""
    return {getattr(d, "value", d) for d in dispositions}


class OperationState(str, Enum):
    SUBMITTED = "Submitted"
    POLLING = "Polling"
    COMPLETED = "Completed"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"


# Values of the server status document
SERVER_STATUS_SUCCESS = "Success"
SERVER_STATUS_FAILED = "Failed"


class BuildItem(BaseModel):
    """One output file listed in the result manifest."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Unknown dispositions stay plain strings
    disposition: str
    url: str


class OperationRequest(BaseModel):
    """Opaque request payload correlated by its build id."""
    model_config = ConfigDict(frozen=True)

    build_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        return {**self.payload, "buildId": self.build_id}


class OperationHandle(BaseModel):
    """Submission response, bound to the client generated build id."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    build_id: str = Field(..., alias="buildId")
    result_url: str = Field(..., alias="resultUrl")
    logs_url: Optional[str] = Field(None, alias="logsUrl")
    status_url: Optional[str] = Field(None, alias="statusUrl")


class OperationResult(BaseModel):
    """Result manifest of a finished operation."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    build_items: List[BuildItem] = Field(default_factory=list, alias="buildItems")
    errors: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None

    @field_validator("build_items", mode="before")
    @classmethod
    def validate_build_items(cls, v):
        # Failed operations may report null instead of an empty list
        return [] if v is None else v

    def items_with(self, dispositions: Iterable[str]) -> List[BuildItem]:
        """Items matching any of the dispositions, in manifest order."""
        wanted = disposition_values(dispositions)
        return [item for item in self.build_items if item.disposition in wanted]


class ServerStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status in (SERVER_STATUS_SUCCESS, SERVER_STATUS_FAILED)


@dataclass
class OperationOutcome:
    """Everything a finished operation produced locally and remotely."""
    build_id: str
    state: OperationState
    result: OperationResult
    output_files_paths: List[str] = field(default_factory=list)
    full_output: str = ""
