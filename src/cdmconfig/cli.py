"""CLI entrypoint for cdmconfig."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from cdmconfig.actions import ActionConsole
from cdmconfig.config import build_inputs, input_env_var, load_local_env, load_polling_config
from cdmconfig.errors import ConfigurationError

app = typer.Typer(
    name="cdmconfig",
    help="Upload, validate and publish ServiceNow DevOps Config data",
    no_args_is_help=True,
)
console = Console(highlight=False)

# Default config path (relative to package root: src/cdmconfig/cli.py -> repo root)
PACKAGE_ROOT = Path(__file__).parent.parent.parent
DEFAULT_POLLING_CONFIG = PACKAGE_ROOT / "configs" / "polling.yaml"


@app.callback()
def main():
    """Upload, validate and publish ServiceNow DevOps Config data."""
    # Must run before command options read their envvar defaults
    load_local_env()


@app.command()
def run(
    instance_url: Annotated[str, typer.Option(envvar=input_env_var("instance-url"), help="ServiceNow instance URL")],
    username: Annotated[
        str, typer.Option(envvar=input_env_var("devops-integration-username"), help="Integration user")
    ],
    password: Annotated[
        str,
        typer.Option(
            envvar=input_env_var("devops-integration-user-password"),
            help="Integration user password",
            show_default=False,
        ),
    ],
    application_name: Annotated[str, typer.Option(envvar=input_env_var("application-name"))],
    deployable_name: Annotated[str, typer.Option(envvar=input_env_var("deployable-name"))],
    data_format: Annotated[str, typer.Option(envvar=input_env_var("data-format"), help="e.g. json, yaml, ini")],
    config_file_path: Annotated[
        str, typer.Option(envvar=input_env_var("config-file-path"), help="Glob of config files to upload")
    ],
    target: Annotated[
        str, typer.Option(envvar=input_env_var("target"), help="component, collection or deployable")
    ] = "deployable",
    collection_name: Annotated[str | None, typer.Option(envvar=input_env_var("collection-name"))] = None,
    name_path: Annotated[str | None, typer.Option(envvar=input_env_var("name-path"))] = None,
    data_format_attributes: Annotated[
        str | None, typer.Option(envvar=input_env_var("data-format-attributes"))
    ] = None,
    changeset: Annotated[
        str | None, typer.Option(envvar=input_env_var("changeset"), help="Existing changeset number")
    ] = None,
    auto_commit: Annotated[bool, typer.Option(envvar=input_env_var("auto-commit"))] = True,
    auto_validate: Annotated[bool, typer.Option(envvar=input_env_var("auto-validate"))] = True,
    auto_publish: Annotated[bool, typer.Option(envvar=input_env_var("auto-publish"))] = False,
    snapshot_validation_timeout: Annotated[
        str, typer.Option(envvar=input_env_var("snapshot-validation-timeout"), help="Minutes")
    ] = "90",
    terminate_on_policy_validation_failures: Annotated[
        bool, typer.Option(envvar=input_env_var("terminate-on-policy-validation-failures"))
    ] = False,
    output_dir: Annotated[Path, typer.Option(help="Where the report files are written")] = Path("."),
    polling_config: Annotated[
        Path, typer.Option(help="Polling policy config path")
    ] = DEFAULT_POLLING_CONFIG,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug output")] = False,
):
    """Upload config files, then validate, publish and report on the resulting snapshot."""
    from cdmconfig.cdm.client import CdmClient
    from cdmconfig.pipeline.runner import run_pipeline

    action_console = ActionConsole(console=console, verbose=verbose)

    try:
        inputs = build_inputs(
            {
                "instance_url": instance_url,
                "username": username,
                "password": password,
                "target": target,
                "application_name": application_name,
                "deployable_name": deployable_name,
                "collection_name": collection_name,
                "data_format": data_format,
                "auto_commit": auto_commit,
                "auto_validate": auto_validate,
                "auto_publish": auto_publish,
                "config_file_path": config_file_path,
                "name_path": name_path,
                "data_format_attributes": data_format_attributes,
                "snapshot_validation_timeout": snapshot_validation_timeout,
                "changeset": changeset,
                "terminate_on_policy_validation_failures": terminate_on_policy_validation_failures,
            }
        )
        polling = load_polling_config(polling_config)
    except ConfigurationError as e:
        action_console.set_failed(str(e))
        raise typer.Exit(code=1) from e

    console.print(f"[bold]Target: {inputs.instance_url}[/bold]")
    console.print(f"  Application: {inputs.application_name}")
    console.print(f"  Deployable: {inputs.deployable_name}")
    console.print(f"  Config files: {inputs.config_file_path}\n")

    client = CdmClient(inputs.instance_url, inputs.credentials, console=action_console)
    result = run_pipeline(inputs, client, action_console, polling=polling, output_dir=output_dir)

    if not result.succeeded:
        raise typer.Exit(code=1)

    console.print("\n[green]Done.[/green]")
    if result.changeset_number:
        console.print(f"  Changeset: {result.changeset_number}")
    if result.snapshot:
        console.print(f"  Snapshot: {result.snapshot.name}")
    if result.validation_state:
        console.print(f"  Validation: {result.validation_state.value}")
        console.print(f"  Published: {result.published or result.snapshot.published}")


@app.command("normalize-name-path")
def normalize_name_path_cmd(
    name_path: Annotated[str, typer.Argument(help="Plain, slash-delimited or JSON list name path")],
):
    """Print a name path in its canonical form."""
    from cdmconfig.name_path import normalize_name_path

    typer.echo(normalize_name_path(name_path))


@app.command()
def version():
    """Show version information."""
    from cdmconfig import __version__

    console.print(f"cdmconfig version {__version__}")


if __name__ == "__main__":
    app()
