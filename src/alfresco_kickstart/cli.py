"""
CLI module - Command line interface for Alfresco Kickstart

Entry point for the `aks` command using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .bpmn import marshall_workflow
from .config import AppConfig, load_config, validate_config
from .constants import MetadataKeys
from .diagram import generate_diagram
from .errors import KickstartError
from .forms import generate_workflow_form_artifacts, render_form_config, render_task_model
from .naming import (
    base_name,
    bpmn_file_name,
    diagram_file_name,
    form_config_file_name,
    form_config_module_id,
    json_file_name,
    task_model_file_name,
)
from .orchestrator import KickstartOrchestrator, OrchestratorCallbacks, build_orchestrator
from .workflow import parse_workflow_json

console = Console()
app = typer.Typer(
    name="aks",
    help="Alfresco Kickstart - Deploy editor workflows to Alfresco and Share.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Global options callback for version and config
def version_callback(value: bool):
    if value:
        console.print(f"aks version {__version__}")
        raise typer.Exit()


# Type aliases for common options
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]
WorkflowId = Annotated[str, typer.Argument(help="Workflow id (see list)")]


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
):
    """Alfresco Kickstart - Deploy editor workflows to Alfresco and Share."""
    pass


def setup_logging(config: AppConfig) -> None:
    """Route log records to the console and, if enabled, to a log file."""
    handlers: list[logging.Handler] = []
    if config.logging.console_logging:
        handlers.append(RichHandler(console=Console(stderr=True), show_path=False))
    if config.logging.file_logging and config.logging.log_file:
        config.logging.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.logging.log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(level=config.logging.level.upper(), format="%(message)s", handlers=handlers, force=True)


def get_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration and set up logging from it."""
    config = load_config(config_path)
    setup_logging(config)
    return config


def open_orchestrator(config: AppConfig) -> KickstartOrchestrator:
    """Build the orchestrator, exiting on an invalid configuration."""
    errors = validate_config(config)
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {error}")
        raise typer.Exit(1)
    return build_orchestrator(config)


def fail(error: KickstartError) -> typer.Exit:
    console.print(f"[red]Error:[/red] {error.message}")
    return typer.Exit(1)


@app.command()
def deploy(
    source: Annotated[Path, typer.Argument(help="Workflow JSON from the editor", exists=True, dir_okay=False)],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Generate artifacts without uploading")] = False,
    config: ConfigOption = None,
):
    """
    Deploy a workflow.

    Uploads the task model, form config, process image, JSON source and
    process definition. Share form config failures are reported as
    warnings; the workflow still runs with default forms.

    [bold]Examples:[/bold]

        aks deploy expense-approval.json

        aks deploy expense-approval.json --dry-run
    """
    cfg = get_config(config)
    json_source = source.read_text(encoding="utf-8")

    try:
        workflow = parse_workflow_json(json_source)
    except KickstartError as e:
        raise fail(e) from None

    workflow_id = base_name(workflow.name)
    console.print(f"\n[bold]Workflow:[/bold] {workflow.name}")
    console.print(f"  Id:       {workflow_id}")
    console.print(f"  Tasks:    {len(workflow.tasks)} ({len(workflow.user_tasks())} user tasks)")
    console.print()

    if dry_run:
        _show_dry_run(cfg, workflow, workflow_id)
        return

    def on_step_start(step: str, description: str):
        console.print(f"  {description}...")

    def on_step_complete(step: str, success: bool):
        if not success:
            console.print(f"  [yellow]![/yellow] {step} completed with warnings")

    def on_artifact_uploaded(path: str):
        console.print(f"  [green]✓[/green] {path}")

    callbacks = OrchestratorCallbacks(
        on_step_start=on_step_start,
        on_step_complete=on_step_complete,
        on_artifact_uploaded=on_artifact_uploaded,
    )

    with open_orchestrator(cfg) as orchestrator:
        try:
            result = orchestrator.deploy(workflow, {MetadataKeys.WORKFLOW_JSON_SOURCE: json_source}, callbacks)
        except KickstartError as e:
            raise fail(e) from None

    console.print()
    if result.partial:
        console.print(f"[yellow]Deployed with warnings:[/yellow] {result.workflow_id}")
        for warning in result.warnings:
            console.print(f"  [yellow]•[/yellow] {warning}")
    else:
        console.print(f"[green]Deployed:[/green] {result.workflow_id}")

    for task_name, form_key in result.form_keys.items():
        console.print(f"  [dim]{task_name}: {form_key}[/dim]")


def _show_dry_run(cfg: AppConfig, workflow, workflow_id: str) -> None:
    workflow.id = workflow_id
    for task in workflow.user_tasks():
        task.assignee = cfg.deploy.default_assignee

    try:
        forms = generate_workflow_form_artifacts(workflow)
        task_model = render_task_model(forms.type_definitions)
        form_config = render_form_config(form_config_module_id(workflow_id), workflow_id, forms.form_configs)
        diagram = generate_diagram(workflow)
        process_xml = marshall_workflow(workflow, diagram.layout)
    except KickstartError as e:
        raise fail(e) from None

    table = Table(title="Documents to upload")
    table.add_column("Document", style="cyan")
    table.add_column("Folder", style="dim")
    table.add_column("Size", justify="right")

    folders = cfg.folders
    table.add_row(task_model_file_name(workflow_id), folders.models, f"{len(task_model)} B")
    table.add_row(form_config_file_name(workflow_id), folders.workflow_definitions, f"{len(form_config)} B")
    table.add_row(diagram_file_name(workflow_id), folders.workflow_definitions, f"{len(diagram.image)} B")
    table.add_row(json_file_name(workflow_id), folders.workflow_definitions, "-")
    table.add_row(bpmn_file_name(workflow_id), folders.workflow_definitions, f"{len(process_xml)} B")
    console.print(table)

    console.print(f"  Share module: {form_config_module_id(workflow_id)}")
    for task_name, form_key in forms.form_keys.items():
        console.print(f"  [dim]{task_name}: {form_key}[/dim]")
    console.print("\n[dim]Dry run - nothing uploaded. Remove --dry-run to deploy.[/dim]")


@app.command("list")
def list_workflows(config: ConfigOption = None):
    """List deployed workflows."""
    cfg = get_config(config)

    with open_orchestrator(cfg) as orchestrator:
        try:
            workflows = orchestrator.list_workflows()
        except KickstartError as e:
            raise fail(e) from None

    if not workflows:
        console.print("No workflows deployed")
        return

    table = Table(title="Deployed Workflows")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Created", style="dim")

    for info in workflows:
        created = info.create_time.strftime("%Y-%m-%d %H:%M") if info.create_time else "-"
        table.add_row(info.id, info.name, created)

    console.print(table)


@app.command()
def info(
    workflow_id: WorkflowId,
    counts: Annotated[bool, typer.Option("--counts", help="Include the number of running instances")] = False,
    config: ConfigOption = None,
):
    """Show one deployed workflow."""
    cfg = get_config(config)

    with open_orchestrator(cfg) as orchestrator:
        try:
            workflow = orchestrator.get_workflow(workflow_id, include_counts=counts)
        except KickstartError as e:
            raise fail(e) from None

    table = Table(title=f"Workflow: {workflow.id}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Id", workflow.id)
    table.add_row("Name", workflow.name)
    table.add_row("Created", workflow.create_time.isoformat() if workflow.create_time else "-")
    if workflow.runtime_instance_count is not None:
        table.add_row("Running instances", str(workflow.runtime_instance_count))

    console.print(table)


@app.command()
def delete(
    workflow_id: WorkflowId,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    config: ConfigOption = None,
):
    """
    Delete a deployed workflow.

    Running instances are deleted first, then every deployed document
    and the Share form config.

    [bold]Examples:[/bold]

        aks delete expense_approval

        aks delete expense_approval --yes
    """
    cfg = get_config(config)

    if not yes and not typer.confirm(f"Delete '{workflow_id}' and all its running instances?"):
        console.print("Cancelled")
        raise typer.Exit(1)

    def on_drain_round(round_number: int, count: int):
        console.print(f"  Round {round_number}: deleting {count} instances...")

    def on_document_removed(removal):
        if removal.removed:
            console.print(f"  [green]✓[/green] {removal.path}")
        elif removal.missing:
            console.print(f"  [dim]- {removal.path} (not found)[/dim]")
        else:
            console.print(f"  [red]✗[/red] {removal.path}")

    callbacks = OrchestratorCallbacks(on_drain_round=on_drain_round, on_document_removed=on_document_removed)

    with open_orchestrator(cfg) as orchestrator:
        try:
            result = orchestrator.delete(workflow_id, callbacks)
        except KickstartError as e:
            raise fail(e) from None

    console.print()
    console.print(
        f"Instances deleted: {result.instances_deleted} ({result.drain_rounds} rounds), "
        f"documents removed: {len(result.removed)}"
    )
    if result.partial:
        console.print(f"[yellow]Deleted with warnings:[/yellow] {result.workflow_id}")
        for warning in result.warnings:
            console.print(f"  [yellow]•[/yellow] {warning}")
        raise typer.Exit(1)
    console.print(f"[green]Deleted:[/green] {result.workflow_id}")


@app.command()
def source(workflow_id: WorkflowId, config: ConfigOption = None):
    """Print the stored JSON source of a workflow."""
    cfg = get_config(config)

    with open_orchestrator(cfg) as orchestrator:
        try:
            text = orchestrator.get_metadata(workflow_id, MetadataKeys.WORKFLOW_JSON_SOURCE)
        except KickstartError as e:
            raise fail(e) from None

    console.print_json(text)


@app.command()
def bpmn(workflow_id: WorkflowId, config: ConfigOption = None):
    """Print the deployed process definition XML."""
    cfg = get_config(config)

    with open_orchestrator(cfg) as orchestrator:
        try:
            xml = orchestrator.get_bpmn_xml(workflow_id)
        except KickstartError as e:
            raise fail(e) from None

    console.print(xml, markup=False, highlight=False)


@app.command()
def image(
    workflow_id: WorkflowId,
    output: Annotated[Path, typer.Option("--output", "-o", help="PNG file to write", dir_okay=False)],
    config: ConfigOption = None,
):
    """Download the process image."""
    cfg = get_config(config)

    with open_orchestrator(cfg) as orchestrator:
        try:
            data = orchestrator.get_process_image(workflow_id)
        except KickstartError as e:
            raise fail(e) from None

    output.write_bytes(data)
    console.print(f"[green]Saved:[/green] {output} ({len(data)} bytes)")


@app.command("set-image")
def set_image(
    workflow_id: WorkflowId,
    image_file: Annotated[Path, typer.Argument(help="PNG image", exists=True, dir_okay=False)],
    config: ConfigOption = None,
):
    """Replace the process image shown for a workflow."""
    cfg = get_config(config)

    with open_orchestrator(cfg) as orchestrator:
        try:
            path = orchestrator.set_process_image(workflow_id, image_file.read_bytes())
        except KickstartError as e:
            raise fail(e) from None

    console.print(f"[green]Stored:[/green] {path}")


@app.command()
def check(config: ConfigOption = None):
    """Validate configuration and show the endpoints in use."""
    cfg = get_config(config)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="dim")

    table.add_row("Repository", cfg.repository.browser_url)
    table.add_row("User", cfg.repository.user)
    table.add_row("Alfresco", cfg.endpoints.alfresco_base_url)
    table.add_row("Share", cfg.endpoints.share_base_url)
    table.add_row("Workflow definitions", cfg.folders.workflow_definitions)
    table.add_row("Models", cfg.folders.models)
    table.add_row("Default assignee", cfg.deploy.default_assignee)

    console.print(table)

    errors = validate_config(cfg)
    if errors:
        console.print("\n[red]Configuration errors:[/red]")
        for error in errors:
            console.print(f"  {error}")
        raise typer.Exit(1)
    console.print("\n[green]Configuration OK[/green]")


def main_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
