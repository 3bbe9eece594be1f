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

from typing import Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt


class Prompter:
    """Interactive terminal prompts."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def get_string(self, prompt: str, allow_empty: bool = True) -> str:
        while True:
            value = Prompt.ask(prompt, console=self.console, default="", show_default=False)
            if value or allow_empty:
                return value
            self.console.print("[red]A value is required.[/red]")

    def get_password(self, prompt: str) -> str:
        return Prompt.ask(prompt, console=self.console, password=True)

    def confirm(self, prompt: str, default: bool = False) -> bool:
        return Confirm.ask(prompt, console=self.console, default=default)
