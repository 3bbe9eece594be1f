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
Unit tests for EulaService.
"""

import hashlib
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

import requests

from cloudbuild.constants import ACCEPTED_EULA_HASH_KEY
from cloudbuild.exceptions import ServerRequestError, ValidationError
from cloudbuild.services.eula_service import EulaService
from cloudbuild.services.settings_service import UserSettingsService

EULA_URL = "https://eula.test/EULA.pdf"
EULA_CONTENT = b"%PDF-1.4 license text"


class TestEulaService(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.settings = UserSettingsService(Path(self.tmp.name) / "settings.yaml")

        response = Mock()
        response.content = EULA_CONTENT
        response.raise_for_status.return_value = None
        self.session = Mock()
        self.session.get.return_value = response

        self.prompter = Mock()
        self.service = EulaService(EULA_URL, self.settings, session=self.session, timeout=(1, 2))

    def tearDown(self):
        self.tmp.cleanup()

    def test_download_keeps_local_copy(self):
        self.service.download_eula()

        self.session.get.assert_called_once_with(EULA_URL, timeout=(1, 2))
        self.assertEqual(self.service.eula_file_path.read_bytes(), EULA_CONTENT)

    def test_hash_is_downloaded_once(self):
        first = self.service.get_current_eula_hash()
        second = self.service.get_current_eula_hash()

        self.assertEqual(first, hashlib.sha256(EULA_CONTENT).hexdigest())
        self.assertEqual(first, second)
        self.session.get.assert_called_once()

    def test_accept_eula_stores_hash(self):
        self.assertTrue(self.service.get_eula_data().should_accept)

        self.service.accept_eula()

        self.assertEqual(
            self.settings.get_settings_value(ACCEPTED_EULA_HASH_KEY), hashlib.sha256(EULA_CONTENT).hexdigest()
        )
        self.assertFalse(self.service.get_eula_data().should_accept)

    def test_changed_eula_must_be_accepted_again(self):
        self.settings.save_setting(ACCEPTED_EULA_HASH_KEY, "old-hash")

        self.assertTrue(self.service.get_eula_data().should_accept)

    def test_accepted_eula_is_not_prompted(self):
        self.service.accept_eula()

        self.service.ensure_eula_is_accepted(self.prompter, interactive=True)

        self.prompter.confirm.assert_not_called()

    def test_interactive_acceptance(self):
        self.prompter.confirm.return_value = True

        self.service.ensure_eula_is_accepted(self.prompter, interactive=True)

        self.prompter.confirm.assert_called_once()
        self.assertFalse(self.service.get_eula_data().should_accept)

    def test_declined_eula(self):
        self.prompter.confirm.return_value = False

        with self.assertRaises(ValidationError):
            self.service.ensure_eula_is_accepted(self.prompter, interactive=True)

        self.assertIsNone(self.settings.get_settings_value(ACCEPTED_EULA_HASH_KEY))

    def test_non_interactive_requires_accept_command(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.ensure_eula_is_accepted(self.prompter, interactive=False)

        self.assertIn("cloudbuild accept-eula", str(ctx.exception))
        self.prompter.confirm.assert_not_called()

    def test_download_failure(self):
        self.session.get.side_effect = requests.exceptions.ConnectionError("unreachable")

        with self.assertRaises(ServerRequestError) as ctx:
            self.service.get_current_eula_hash()

        self.assertEqual(ctx.exception.status_code, 0)


if __name__ == "__main__":
    unittest.main()
