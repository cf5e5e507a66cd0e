"""CLI entry point for docrefresh.

Commands:
    docrefresh update                 # Refresh every configured document group
    docrefresh update --doc exchange  # Refresh selected groups
    docrefresh update --path DIR --name NAME --tag TAG
                                      # Refresh an ad-hoc group
    docrefresh report                 # Rebuild the report from persisted logs
    docrefresh list                   # Show configured document groups
    docrefresh add NAME PATH          # Add a document group to the config
"""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from docrefresh import __version__
from docrefresh.click_group import DocRefreshGroup, exit_with_error
from docrefresh.config_manager import ConfigError, ConfigManager, DocRefreshConfig
from docrefresh.file_discovery import FileDiscoveryError
from docrefresh.log_parser import LogParseError, LogParseService
from docrefresh.log_store import LogStore, LogStoreError
from docrefresh.markdown_service import MarkdownService, WorkspaceCleanupError
from docrefresh.models import DocumentGroup
from docrefresh.modules.dependency_installer import CmdletDependenciesService, check_powershell
from docrefresh.powershell_service import PowerShellService
from docrefresh.task_queue import TaskQueueError

logger = logging.getLogger(__name__)
console = Console()


def build_service(config: DocRefreshConfig) -> MarkdownService:
    """Wire a MarkdownService and its collaborators from configuration."""
    powershell = PowerShellService(executable=config.powershell_executable, timeout=config.timeout)
    return MarkdownService(
        powershell=powershell,
        log_store=LogStore(config.log_path),
        log_parser=LogParseService(config.log_path, console=console),
        dependencies=CmdletDependenciesService(powershell, config.docs),
        ignore_files=config.ignore_files,
    )


def resolve_groups(
    config: DocRefreshConfig,
    doc_names: tuple[str, ...],
    path: str | None,
    name: str | None,
    tags: tuple[str, ...],
    dependencies: tuple[str, ...],
) -> list[DocumentGroup]:
    """Pick the groups to refresh from CLI options and config.

    Raises:
        ConfigError: If the selection is invalid or empty
    """
    if path:
        if not name:
            raise ConfigError("--name is required with --path")
        if doc_names:
            raise ConfigError("--path cannot be combined with --doc")
        return [
            DocumentGroup(name=name, path=path, meta_tags=tags, dependencies=dependencies)
        ]

    if doc_names:
        return [config.get_doc_group(n) for n in doc_names]

    if not config.docs:
        raise ConfigError(
            "No document groups configured. Add [[docs]] entries to "
            f"{ConfigManager.DEFAULT_CONFIG_FILE} or use --path/--name."
        )
    return list(config.docs)


@click.group(cls=DocRefreshGroup)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__)
def cli(verbose: bool):
    """docrefresh - refresh PowerShell cmdlet reference pages with platyPS.

    Finds cmdlet Markdown files, filters them by ignore list and
    applicability tag, and runs Update-MarkdownHelp on each one, keeping
    the logs for auditing.

    \b
    Examples:
        docrefresh update
        docrefresh update --doc exchange
        docrefresh update --path ./docs --name Get-Foo --tag "Exchange Online"
        docrefresh report
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")


@cli.command()
@click.option("--config", help="Config file path", type=click.Path())
@click.option("--doc", "doc_names", multiple=True, help="Configured group to refresh (repeatable)")
@click.option("--path", help="Root of an ad-hoc group", type=click.Path(file_okay=False))
@click.option("--name", help="Name of the ad-hoc group", type=str)
@click.option("--tag", "tags", multiple=True, help="Applicability tag (repeatable)")
@click.option(
    "--dependency", "dependencies", multiple=True, help="PowerShell module to install (repeatable)"
)
def update(
    config: str | None,
    doc_names: tuple[str, ...],
    path: str | None,
    name: str | None,
    tags: tuple[str, ...],
    dependencies: tuple[str, ...],
):
    """Refresh document groups with Update-MarkdownHelp.

    \b
    Examples:
        docrefresh update
        docrefresh update --doc exchange --doc teams
        docrefresh update --path ./docs --name Get-Foo --tag "Exchange Online"
    """
    try:
        doc_config = ConfigManager.load_config(config)
        groups = resolve_groups(doc_config, doc_names, path, name, tags, dependencies)
    except ConfigError as e:
        exit_with_error(str(e))
        return

    if not check_powershell(doc_config.powershell_executable):
        exit_with_error(
            f"PowerShell executable not found: {doc_config.powershell_executable}\n"
            "Install PowerShell 7: https://aka.ms/powershell"
        )
        return

    service = build_service(doc_config)
    discovery_failed = False

    for doc in groups:
        try:
            queued = service.update_md(doc)
            click.echo(f"{doc.name}: {queued} file(s) queued")
        except FileDiscoveryError as e:
            discovery_failed = True
            logger.error(f"Skipping {doc.name}: {e}")

    try:
        outcomes = service.finish()
    except (TaskQueueError, WorkspaceCleanupError, LogStoreError, LogParseError) as e:
        exit_with_error(str(e))
        return

    click.echo(f"Processed {len(outcomes)} file(s)")
    if discovery_failed:
        exit_with_error("One or more document groups could not be read")


@cli.command()
@click.option("--config", help="Config file path", type=click.Path())
def report(config: str | None):
    """Rebuild the combined report from persisted logs."""
    try:
        doc_config = ConfigManager.load_config(config)
        LogParseService(doc_config.log_path, console=console).parse_all()
    except (ConfigError, LogParseError) as e:
        exit_with_error(str(e))


@cli.command(name="list")
@click.option("--config", help="Config file path", type=click.Path())
def list_groups(config: str | None):
    """Show configured document groups."""
    try:
        doc_config = ConfigManager.load_config(config)
    except ConfigError as e:
        exit_with_error(str(e))
        return

    if not doc_config.docs:
        click.echo("No document groups configured.")
        return

    table = Table(title="Document Groups")
    table.add_column("Name", style="cyan")
    table.add_column("Path", style="green")
    table.add_column("Tags", style="yellow")
    table.add_column("Dependencies")

    for doc in doc_config.docs:
        table.add_row(
            doc.name, doc.path, ", ".join(doc.meta_tags) or "-", ", ".join(doc.dependencies) or "-"
        )

    console.print(table)


@cli.command(name="add")
@click.argument("name")
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--tag", "tags", multiple=True, help="Applicability tag (repeatable)")
@click.option(
    "--dependency", "dependencies", multiple=True, help="PowerShell module to install (repeatable)"
)
@click.option("--config", help="Config file path", type=click.Path())
def add_group(
    name: str,
    path: str,
    tags: tuple[str, ...],
    dependencies: tuple[str, ...],
    config: str | None,
):
    """Add a document group to the configuration.

    \b
    Examples:
        docrefresh add exchange ./docs/exchange --tag "Exchange Online"
        docrefresh add teams ./docs/teams --dependency MicrosoftTeams
    """
    try:
        doc_config = ConfigManager.load_config(config)
        if any(doc.name == name for doc in doc_config.docs):
            raise ConfigError(f"Document group already exists: {name}")

        doc_config.docs.append(
            DocumentGroup(
                name=name,
                path=str(Path(path).expanduser().resolve()),
                meta_tags=tags,
                dependencies=dependencies,
            )
        )
        saved_path = ConfigManager.save_config(doc_config, config)
    except ConfigError as e:
        exit_with_error(str(e))
        return

    click.echo(f"Added document group '{name}' to {saved_path}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
