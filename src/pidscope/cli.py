"""CLI commands for pidscope."""

import json
import sys
from pathlib import Path

import click

from pidscope.config import Config

SECTION_CHOICES = ["all", "process", "threads", "sockets"]

PROMPT_BANNER = "*" * 75


def _load_config(path: Path | None) -> Config:
    from pidscope.logging import configure

    try:
        config = Config.load(path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    configure(config)
    return config


def _make_inspector(config: Config):
    from pidscope.inspector import Inspector
    from pidscope.provider import ProcfsProvider

    provider = ProcfsProvider(
        proc_root=config.proc_root,
        page_size=config.report.page_size,
        affinity_cpus=config.report.affinity_cpus,
    )
    return Inspector(provider, config.report)


def _sections(name: str):
    from pidscope.inspector import ALL_SECTIONS, Section

    if name == "all":
        return ALL_SECTIONS
    return frozenset({Section(name)})


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file",
)


@click.group()
@click.version_option(package_name="pidscope")
def main() -> None:
    """Inspect the memory layout, threads and sockets of a process."""
    pass


@main.command()
@click.argument("pid")
@click.option(
    "--section",
    "-s",
    type=click.Choice(SECTION_CHOICES),
    default="all",
    help="Report section to show",
)
@click.option("--json", "as_json", is_flag=True, help="Output structured JSON")
@config_option
def report(pid: str, section: str, as_json: bool, config_path: Path | None) -> None:
    """Print the report for PID."""
    from pidscope.inspector import InvalidPidError, parse_pid

    config = _load_config(config_path)
    try:
        pid_value = parse_pid(pid)
    except InvalidPidError as e:
        click.echo(str(e))
        sys.exit(1)

    result = _make_inspector(config).inspect(pid_value, _sections(section))
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(result.render(), nl=False)


@main.command()
@config_option
def interactive(config_path: Path | None) -> None:
    """Prompt for PIDs and print a report for each until end of input."""
    from pidscope.inspector import PidSelection

    config = _load_config(config_path)
    inspector = _make_inspector(config)
    selection = PidSelection()

    click.echo(PROMPT_BANNER)
    click.echo("pidscope: memory, thread and socket info for a process")
    click.echo(PROMPT_BANNER)
    stdin = click.get_text_stream("stdin")
    while True:
        click.echo("Enter the process id: ", nl=False)
        line = stdin.readline()
        if not line:
            click.echo()
            break
        selection.write(line.strip())
        click.echo("The process info is here:")
        click.echo(inspector.render_text(selection.text), nl=False)


@main.command()
@click.argument("pid", required=False)
@config_option
def tui(pid: str | None, config_path: Path | None) -> None:
    """Launch the interactive report viewer."""
    from pidscope.app import run_app

    config = _load_config(config_path)
    run_app(_make_inspector(config), pid)


@main.command("config-init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@config_option
def config_init(force: bool, config_path: Path | None) -> None:
    """Write the default configuration file."""
    config = Config()
    path = config_path or config.config_path
    if path.exists() and not force:
        click.echo(f"Config already exists at {path} (use --force to overwrite)")
        return
    config.save(path)
    click.echo(f"Created config at {path}")
