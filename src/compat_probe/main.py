import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .cli_config import (
    MATCH_POLICIES,
    ProbeConfig,
    apply_config_data,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    validate_config_values,
)
from .coordinate import ArtifactCoordinate
from .diagnostics import CompilationDiagnostic, DiagnosticExtractor
from .error_handling import CompatProbeError, ConfigurationError, setup_error_handling
from .pipeline import CompatibilityExperiment, ExperimentResult
from .reporting import OUTPUT_FORMATS, DiagnosticReporter, render_json, render_text
from .structured_logging import configure_logging

console = Console(stderr=True)


def _apply_logging(config: ProbeConfig, verbose: bool) -> None:
    level = "INFO" if verbose else config.logging.log_level
    configure_logging(level)
    setup_error_handling(log_level=logging.INFO if verbose else logging.WARNING)


def _check_output_options(output_format: str, output_file: Optional[str]) -> None:
    if output_file and output_format.lower() == "table":
        raise click.UsageError(
            "--output-file supports the text and json formats only, not table"
        )


def output_results(
    diagnostics: List[CompilationDiagnostic],
    output_format: str,
    output_file: Optional[str],
    title: str,
    result: Optional[ExperimentResult] = None,
) -> None:
    """Render diagnostics to stdout or, for text and json, to ``output_file``."""
    if output_file:
        if output_format == "json":
            content = render_json(diagnostics, result)
        else:
            content = render_text(diagnostics)
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(content + "\n")
        console.print(f"✅ Results saved to {output_file}", style="green")
        return

    DiagnosticReporter().report(diagnostics, output_format, title, result)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file (.json or .toml)",
)
@click.pass_context
def cli(ctx, version, config_path):
    """
    🔬 compat-probe: compile a client against a new library version

    Rewrites the client's pom.xml to depend on the new version, runs Maven
    and reports every compilation error as a structured diagnostic.
    """
    if version:
        click.echo(f"compat-probe version {__version__}")
        ctx.exit()

    if config_path:
        try:
            load_config(Path(config_path))
        except ConfigurationError as e:
            raise click.ClickException(str(e))

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("client")
@click.option("--group", "-g", required=True, help="groupId of the library to upgrade")
@click.option("--artifact", "-a", required=True, help="artifactId of the library to upgrade")
@click.option("--old-version", required=True, help="Version the client was built against")
@click.option("--new-version", required=True, help="Version to compile the client against")
@click.option(
    "--workdir",
    type=click.Path(file_okay=False),
    help="Extraction directory (default: archive name in the current directory)",
)
@click.option("--maven", help="Maven executable (default from config or 'mvn')")
@click.option("--repository", help="Remote Maven repository URL")
@click.option("--local-repo", type=click.Path(file_okay=False), help="Local artifact cache directory")
@click.option(
    "--on-missing",
    type=click.Choice(MATCH_POLICIES, case_sensitive=False),
    help="What to do when the dependency is not declared exactly once",
)
@click.option(
    "--output-format",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format for diagnostics",
)
@click.option("--output-file", "-o", type=click.Path(), help="Save results to file (text or json)")
@click.option("--verbose", "-v", is_flag=True, help="Emit structured progress events on stderr")
def run(
    client: str,
    group: str,
    artifact: str,
    old_version: str,
    new_version: str,
    workdir: Optional[str],
    maven: Optional[str],
    repository: Optional[str],
    local_repo: Optional[str],
    on_missing: Optional[str],
    output_format: str,
    output_file: Optional[str],
    verbose: bool,
) -> None:
    """
    Run the compatibility experiment for CLIENT.

    CLIENT is a local JAR path or a group:artifact:version coordinate
    downloaded from the remote repository.

    Examples:

      compat-probe run guava-client-0.0.1.jar -g com.google.guava -a guava --old-version 17.0 --new-version 18.0

      compat-probe run maracas-data:comp-changes-client:0.0.1 -g maracas-data -a comp-changes --old-version 0.0.1 --new-version 0.0.2
    """
    _check_output_options(output_format, output_file)
    config = get_config()
    if maven:
        config.build.maven_executable = maven
    if repository:
        config.resolver.repository_url = repository
    if local_repo:
        config.resolver.local_repository = local_repo
    if on_missing:
        config.mutation.on_missing = on_missing.lower()
    _apply_logging(config, verbose)

    experiment = CompatibilityExperiment(config)
    target = Path(workdir) if workdir else None

    try:
        if Path(client).is_file():
            result = experiment.run_from_archive(
                Path(client), group, artifact, old_version, new_version, target
            )
        else:
            try:
                coordinate = ArtifactCoordinate.parse(client)
            except ValueError as e:
                raise click.BadParameter(
                    f"{e}; not an existing file either", param_hint="CLIENT"
                )
            result = experiment.run_from_coordinate(
                coordinate, group, artifact, old_version, new_version, target
            )
    except CompatProbeError as e:
        raise click.ClickException(str(e))

    if verbose:
        console.print(
            f"Maven build finished with exit status {result.exit_status}", style="dim"
        )

    output_results(
        result.diagnostics,
        output_format.lower(),
        output_file,
        f"{client} against {group}:{artifact}:{new_version} (was {old_version})",
        result,
    )


@cli.command()
@click.argument("log_file", type=click.File("r", encoding="utf-8", errors="replace"))
@click.option(
    "--output-format",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format for diagnostics",
)
@click.option("--output-file", "-o", type=click.Path(), help="Save results to file (text or json)")
def extract(log_file, output_format: str, output_file: Optional[str]) -> None:
    """
    Extract diagnostics from a saved Maven console log.

    Use '-' to read the log from standard input.
    """
    _check_output_options(output_format, output_file)
    source_name = getattr(log_file, "name", "<stdin>")
    extractor = DiagnosticExtractor(source_name=source_name)
    diagnostics = extractor.extract(log_file)
    output_results(diagnostics, output_format.lower(), output_file, source_name)


@cli.command()
def info():
    """Show how an experiment works and usage examples."""
    info_text = """
[bold blue]🔬 What an experiment does:[/bold blue]

1. Unpacks the client JAR (downloaded first when given as a coordinate)
2. Copies the client's embedded pom.xml to the extraction root
3. Adds maven-dependency-plugin (unpacks the client's sources artifact)
   and build-helper-maven-plugin (adds them as a source root)
4. Bumps the library dependency to the new version
5. Runs [green]mvn clean compile --fail-at-end[/green]
6. Parses the error summary into structured diagnostics

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]COMPAT_PROBE_MAVEN[/cyan] - Maven executable
• [cyan]COMPAT_PROBE_REPOSITORY_URL[/cyan] - Remote Maven repository
• [cyan]COMPAT_PROBE_LOCAL_REPOSITORY[/cyan] - Local artifact cache directory
• [cyan]COMPAT_PROBE_ON_MISSING[/cyan] - ignore | fail
• [cyan]COMPAT_PROBE_LOG_LEVEL[/cyan] - Structured log level

[bold blue]📄 Configuration Files:[/bold blue]

• [green].compat-probe.json[/green] / [green].compat-probe.toml[/green] - Project-level config
• [green]~/.config/compat-probe/config.json[/green] - User-level config

[bold blue]💡 Usage Examples:[/bold blue]

  compat-probe run client.jar -g com.google.guava -a guava --old-version 17.0 --new-version 18.0
  compat-probe run org.example:client:1.0 -g org.example -a lib --old-version 1 --new-version 2 --output-format json
  mvn clean compile --fail-at-end | compat-probe extract -
"""
    console.print(
        Panel(
            info_text,
            title="[bold]compat-probe[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".compat-probe.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        config_path.write_text(create_sample_config(), encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    console.print("\n[bold cyan]🏗️  Build:[/bold cyan]")
    console.print(f"  Maven Executable: {current.build.maven_executable}")
    console.print(f"  Goals: {' '.join(current.build.goals)}")
    console.print(f"  Descriptor: {current.build.descriptor_name}")

    console.print("\n[bold cyan]🌐 Resolver:[/bold cyan]")
    console.print(f"  Repository: {current.resolver.repository_url}")
    console.print(f"  Local Repository: {current.resolver.local_repository}")
    console.print(f"  Connect Timeout: {current.resolver.connect_timeout}s")
    console.print(f"  Read Timeout: {current.resolver.read_timeout}s")

    console.print("\n[bold cyan]✏️  Mutation:[/bold cyan]")
    console.print(f"  On Missing Dependency: {current.mutation.on_missing}")
    console.print(f"  Replace Existing Plugins: {current.mutation.replace_existing_plugins}")
    console.print(f"  Extracted Sources: {current.mutation.extracted_sources_dir}", markup=False)

    console.print("\n[bold cyan]📝 Logging:[/bold cyan]")
    console.print(f"  Log Level: {current.logging.log_level}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if config_data is None:
        raise click.ClickException(f"Could not load config from {config_file}")

    candidate = ProbeConfig()
    apply_config_data(candidate, config_data)
    errors = validate_config_values(candidate)
    if errors:
        for error in errors:
            console.print(f"  • {error}", style="red")
        raise click.ClickException(f"Configuration file {config_file} is invalid")

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


def main() -> None:
    cli()


if __name__ == "__main__":
    sys.exit(main())
