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
EULA service.

Downloads the end user license agreement of the build service and tracks
whether the user accepted its current revision. A revision is identified by
the SHA-256 of the document.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional, Tuple

import requests

from cloudbuild.constants import ACCEPTED_EULA_HASH_KEY, EULA_FILE_NAME
from cloudbuild.exceptions import ServerRequestError, ValidationError
from cloudbuild.models.project_models import EulaData
from cloudbuild.services.prompter import Prompter
from cloudbuild.services.settings_service import UserSettingsService
from cloudbuild.utils.http import create_session

logger = logging.getLogger(__name__)


class EulaService:
    """Service for EULA download and acceptance."""

    def __init__(
        self,
        eula_url: str,
        settings_service: UserSettingsService,
        session: Optional[requests.Session] = None,
        timeout: Tuple[float, float] = (10.0, 120.0),
    ) -> None:
        self.eula_url = eula_url
        self.settings_service = settings_service
        self.session = session or create_session()
        self.timeout = timeout
        self._eula_hash: Optional[str] = None

    @property
    def eula_file_path(self) -> Path:
        return self.settings_service.settings_file.parent / EULA_FILE_NAME

    def download_eula(self) -> bytes:
        """
        Download the EULA and keep a local copy next to the user settings.

        Raises:
            ServerRequestError: If the document cannot be downloaded
        """
        logger.debug(f"Downloading EULA from {self.eula_url}")
        try:
            response = self.session.get(self.eula_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to download EULA: {e}")
            status_code = e.response.status_code if e.response is not None else 0
            raise ServerRequestError(f"Unable to download the EULA from {self.eula_url}: {e}", status_code) from e

        self.eula_file_path.parent.mkdir(parents=True, exist_ok=True)
        self.eula_file_path.write_bytes(response.content)
        return response.content

    def get_current_eula_hash(self) -> str:
        if self._eula_hash is None:
            self._eula_hash = hashlib.sha256(self.download_eula()).hexdigest()
        return self._eula_hash

    def get_eula_data(self) -> EulaData:
        accepted_hash = self.settings_service.get_settings_value(ACCEPTED_EULA_HASH_KEY)
        should_accept = accepted_hash != self.get_current_eula_hash()
        return EulaData(url=self.eula_url, should_accept=should_accept)

    def accept_eula(self) -> None:
        self.settings_service.save_setting(ACCEPTED_EULA_HASH_KEY, self.get_current_eula_hash())
        logger.info("EULA accepted.")

    def ensure_eula_is_accepted(self, prompter: Prompter, interactive: bool) -> None:
        """
        Make sure the current EULA revision is accepted, asking the user if needed.

        Raises:
            ValidationError: If the EULA is not accepted
        """
        if not self.get_eula_data().should_accept:
            return

        message = (
            f"Please review the End User License Agreement at {self.eula_url} "
            f"(downloaded to {self.eula_file_path})."
        )
        if not interactive:
            raise ValidationError(f"{message} Accept it with 'cloudbuild accept-eula' before using the cloud services.")

        if not prompter.confirm(f"{message} Do you accept it?"):
            raise ValidationError("You cannot use the cloud services without accepting the EULA.")

        self.accept_eula()

    def close(self) -> None:
        self.session.close()
