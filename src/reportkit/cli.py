
import sys
from typing import Optional
import typer
import yaml
from pydantic import ValidationError
from .config import load_config, AppConfig
from .logging import setup_logging
from .runners.runner import TestRunner, SuiteLoadError, load_suite
from .reporters.junit import XmlReportsWritingListener
from .reporters.console import ConsoleReporter

app = typer.Typer(add_completion=False, help="reportkit - run test suites and write JUnit XML reports")

def _load(config: Optional[str]) -> AppConfig:
    try:
        return load_config(config)
    except (OSError, ValidationError, yaml.YAMLError) as e:
        typer.echo(f"Invalid configuration {config}: {e}", err=True)
        raise typer.Exit(code=2)

def _engines(suite: str):
    try:
        return load_suite(suite)
    except SuiteLoadError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)

@app.command()
def run(
    suite: str = typer.Argument(..., help="Test suite module, e.g. environment or mypkg.suites.smoke"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    output_dir: Optional[str] = typer.Option(None, "--out", "-o", help="Directory for XML reports"),
    list_tests: bool = typer.Option(False, "--list", help="List tests without running"),
):
    cfg = _load(config)
    setup_logging(cfg.log_level)
    if output_dir:
        cfg.reports.directory = output_dir
    engines = _engines(suite)

    if list_tests:
        _echo_ids(engines)
        raise typer.Exit(code=0)

    console = ConsoleReporter()
    xml = XmlReportsWritingListener.from_config(cfg.reports, out=sys.stderr)
    TestRunner([xml, console], parallelism=cfg.runner.parallelism).run(engines)
    typer.echo(f"Done. {console.passed} passed, {console.failed} failed, "
               f"{console.errors} errors, {console.skipped} skipped.")
    raise typer.Exit(code=0 if console.failed == 0 and console.errors == 0 else 1)

@app.command("list")
def list_(suite: str = typer.Argument(..., help="Test suite module")):
    _echo_ids(_engines(suite))

def _echo_ids(engines) -> None:
    for identifier in TestRunner().discover(engines):
        typer.echo(identifier.unique_id)

if __name__ == "__main__":
    app()
