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
Main CLI entry point for CloudBuild.

This module defines the command-line interface using Typer, providing
a rich and developer-friendly experience for building and signing
mobile applications in the cloud.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from cloudbuild.config import load_config
from cloudbuild.context import CloudContext, create_context
from cloudbuild.exceptions import ValidationError
from cloudbuild.models.build_models import CloudBuildOptions, CodesignData
from cloudbuild.utils.helpers import is_ios_platform, validate_platform_name
from cloudbuild.utils.log import LOG_LEVELS, configure_logging

# Initialize rich console for beautiful output
console = Console()

# Create the main Typer application
app = typer.Typer(
    name="cloudbuild",
    help="CloudBuild CLI - Build, code sign and clean up mobile applications in the cloud",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def context_factory(server_url: Optional[str] = None) -> CloudContext:
    """Create the service context; replaced in tests."""
    return create_context(load_config(server_url=server_url))


# Version callback
def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        from cloudbuild import __version__
        console.print(f"CloudBuild CLI version: [bold green]{__version__}[/bold green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose output",
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        help=f"Logging level ({', '.join(LOG_LEVELS)})",
    ),
    server_url: Optional[str] = typer.Option(
        None,
        "--server-url",
        help="Build server URL (overrides CLOUD_SERVER_URL)",
    ),
) -> None:
    """CloudBuild CLI - A developer tool for cloud builds of mobile applications."""
    # Set global verbosity level
    configure_logging("debug" if verbose and log_level == "info" else log_level)
    ctx.obj = {"verbose": verbose, "server_url": server_url}


def _parse_env(values: Optional[List[str]]) -> Dict[str, Any]:
    env = {}
    for item in values or []:
        if '=' not in item:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{item}'", param_hint="--env")
        key, value = item.split('=', 1)
        env[key.strip()] = value.strip()
    return env


def _fail(ctx: typer.Context, action: str, error: Exception) -> None:
    console.print(f"❌ Error {action}: [red]{str(error)}[/red]")
    build_id = getattr(error, "build_id", None)
    if build_id:
        console.print(f"🆔 Build ID: [blue]{build_id}[/blue]")
    if (ctx.obj or {}).get("verbose"):
        import traceback
        console.print(traceback.format_exc())
    raise typer.Exit(1)


def _build_options(**options: Any) -> CloudBuildOptions:
    # Filter out None values
    return CloudBuildOptions.from_options({k: v for k, v in options.items() if v is not None})


@app.command()
def build(
    ctx: typer.Context,
    platform: str = typer.Argument(..., help="Target platform (android, ios)"),
    path: str = typer.Option(".", "--path", help="Path to the project directory", show_default=True),
    release: bool = typer.Option(False, "--release", help="Build the Release configuration"),
    emulator: bool = typer.Option(False, "--emulator", help="Build for the iOS simulator"),
    clean: bool = typer.Option(False, "--clean", help="Ignore the remote build cache"),
    bundle: bool = typer.Option(False, "--bundle", help="Bundle the application code"),
    certificate: Optional[str] = typer.Option(None, "--certificate", help="iOS signing certificate (.p12)"),
    certificate_password: Optional[str] = typer.Option(None, "--certificate-password", help="iOS certificate password"),
    provision: Optional[str] = typer.Option(None, "--provision", help="iOS provisioning profile"),
    key_store_path: Optional[str] = typer.Option(None, "--key-store-path", help="Android keystore"),
    key_store_password: Optional[str] = typer.Option(None, "--key-store-password", help="Android keystore password"),
    account_id: Optional[str] = typer.Option(None, "--account-id", help="Account to run the build under"),
    env: Optional[List[str]] = typer.Option(None, "--env", help="Build environment entry KEY=VALUE"),
) -> None:
    """
    Build the application package in the cloud.

    This command sends the project to the build server, waits for the
    build to finish and downloads the resulting package.
    """
    options = _build_options(
        release=release, emulator=emulator, clean=clean, bundle=bundle,
        certificate=certificate, certificate_password=certificate_password, provision=provision,
        key_store_path=key_store_path, key_store_password=key_store_password,
        account_id=account_id, env=_parse_env(env),
    )

    async def run() -> Any:
        async with context_factory(ctx.obj.get("server_url")) as context:
            await asyncio.to_thread(
                context.eula_service.ensure_eula_is_accepted, context.prompter, context.interactive()
            )
            helper = context.build_command_helper(Path(path).resolve())
            build_data = helper.get_cloud_build_data(platform, options)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Building in the cloud...", total=None)
                result = await context.build_runtime().build(
                    build_data.project_settings,
                    build_data.platform,
                    build_data.build_configuration,
                    options.account_id,
                    build_data.android_build_data,
                    build_data.ios_build_data,
                )
                progress.update(task, description="Build completed! ✅")
            return result

    try:
        result = asyncio.run(run())
    except Exception as e:
        _fail(ctx, "building application", e)

    console.print(f"✅ Successfully built application, build [bold green]{result.build_id}[/bold green]")
    for file_path in result.output_files_paths:
        console.print(f"📦 Package: [blue]{file_path}[/blue]")
    if result.qr_data:
        console.print(f"🌐 Download URL: [blue]{result.qr_data.original_url}[/blue]")


@app.command()
def codesign(
    ctx: typer.Context,
    platform: str = typer.Argument(..., help="Target platform (only ios is supported)"),
    apple_id: Optional[str] = typer.Argument(None, help="Apple ID"),
    password: Optional[str] = typer.Argument(None, help="Apple ID password"),
    path: str = typer.Option(".", "--path", help="Path to the project directory", show_default=True),
    clean: bool = typer.Option(True, "--clean/--no-clean", help="Generate new files instead of reusing cached ones"),
    shared_cloud: bool = typer.Option(False, "--shared-cloud", help="Use the shared build cloud"),
) -> None:
    """
    Generate iOS certificate and provisioning profile files in the cloud.

    Missing Apple credentials are prompted for interactively.
    """

    async def run() -> Any:
        target_platform = validate_platform_name(platform)
        if not is_ios_platform(target_platform):
            raise ValidationError(f"Codesign files can be generated only for iOS, not for {target_platform}.")

        async with context_factory(ctx.obj.get("server_url")) as context:
            await asyncio.to_thread(
                context.eula_service.ensure_eula_is_accepted, context.prompter, context.interactive()
            )
            helper = context.build_command_helper(Path(path).resolve())
            credentials = helper.get_apple_credentials([apple_id or "", password or ""])
            codesign_data = CodesignData(
                username=credentials.username,
                password=credentials.password,
                platform=target_platform,
                clean=clean,
                shared_cloud=shared_cloud,
            )
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Generating codesign files...", total=None)
                result = await context.codesign_runtime().generate_codesign_files(codesign_data, Path(path).resolve())
                progress.update(task, description="Codesign files generated! ✅")
            return result

    try:
        result = asyncio.run(run())
    except Exception as e:
        _fail(ctx, "generating codesign files", e)

    console.print(f"✅ Successfully generated codesign files, build [bold green]{result.build_id}[/bold green]")
    for file_path in result.output_files_paths:
        console.print(f"📄 File: [blue]{file_path}[/blue]")


@app.command("publish-build")
def publish_build(
    ctx: typer.Context,
    platform: str = typer.Argument(..., help="Target platform (android, ios)"),
    path: str = typer.Option(".", "--path", help="Path to the project directory", show_default=True),
    certificate: Optional[str] = typer.Option(None, "--certificate", help="iOS signing certificate (.p12)"),
    certificate_password: Optional[str] = typer.Option(None, "--certificate-password", help="iOS certificate password"),
    provision: Optional[str] = typer.Option(None, "--provision", help="iOS provisioning profile"),
    key_store_path: Optional[str] = typer.Option(None, "--key-store-path", help="Android keystore"),
    key_store_password: Optional[str] = typer.Option(None, "--key-store-password", help="Android keystore password"),
    account_id: Optional[str] = typer.Option(None, "--account-id", help="Account to run the build under"),
    clean: bool = typer.Option(False, "--clean", help="Ignore the remote build cache"),
) -> None:
    """
    Build a Release package for publishing and print its download URL.
    """
    options = _build_options(
        release=True, clean=clean,
        certificate=certificate, certificate_password=certificate_password, provision=provision,
        key_store_path=key_store_path, key_store_password=key_store_password, account_id=account_id,
    )

    async def run() -> str:
        async with context_factory(ctx.obj.get("server_url")) as context:
            await asyncio.to_thread(
                context.eula_service.ensure_eula_is_accepted, context.prompter, context.interactive()
            )
            helper = context.build_command_helper(Path(path).resolve())
            return await helper.build_for_publishing_platform(platform, options)

    try:
        package_url = asyncio.run(run())
    except Exception as e:
        _fail(ctx, "building for publishing", e)

    console.print(f"✅ Package ready for publishing: [blue]{package_url}[/blue]")


@app.command("clean-workspace")
def clean_workspace(
    ctx: typer.Context,
    app_id: Optional[str] = typer.Argument(None, help="Application identifier"),
    project_name: Optional[str] = typer.Argument(None, help="Project name"),
    path: str = typer.Option(".", "--path", help="Path to the project directory", show_default=True),
) -> None:
    """
    Clean up the cloud workspace of a project.

    Without arguments the command uses the project in the current directory.
    """
    args = [arg for arg in (app_id, project_name) if arg is not None]

    async def run() -> Dict[str, Any]:
        async with context_factory(ctx.obj.get("server_url")) as context:
            runtime = context.clean_workspace_runtime(Path(path).resolve())
            if not await asyncio.to_thread(runtime.can_execute, args):
                raise ValidationError("The command accepts at most two parameters.")
            return await runtime.execute(args)

    try:
        result = asyncio.run(run())
    except Exception as e:
        _fail(ctx, "cleaning cloud workspace", e)

    table = Table(title="Cloud Workspace Cleanup")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("App Id", result["app_id"])
    table.add_row("Project Name", result["project_name"])
    table.add_row("Repository Deleted", "yes" if result["repository_deleted"] else "no")
    console.print(table)


@app.command("accept-eula")
def accept_eula(ctx: typer.Context) -> None:
    """
    Accept the End User License Agreement of the cloud services.
    """

    async def run() -> str:
        async with context_factory(ctx.obj.get("server_url")) as context:
            await asyncio.to_thread(context.eula_service.accept_eula)
            return str(context.eula_service.eula_file_path)

    try:
        eula_path = asyncio.run(run())
    except Exception as e:
        _fail(ctx, "accepting EULA", e)

    console.print(f"✅ EULA accepted. A copy is stored at [blue]{eula_path}[/blue]")


if __name__ == "__main__":
    app()
