"""Main CLI entry point for monodoc."""

import asyncio
import json
import signal
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .backends.parsers.ts_parser import TSParser
from .cache import CacheStore
from .config import Config
from .errors import AnalysisError, CacheError, ConfigurationError
from .fileio import read_source
from .generator.context_builder import ContextBuilder
from .generator.file_processor import select_declarations
from .generator.orchestrator import DocumentationOrchestrator
from .generator.quality import QualityAnalyzer
from .generator.report import write_report
from .llm.client import GenerationClient
from .llm.litellm_provider import LiteLLMProvider
from .llm.rate_limiting import ConcurrencyGate, RateGovernor
from .logging_setup import configure_logging
from .output import render_analysis, render_quality, render_stats
from .scanner.changes import ChangeDetector, as_target_pattern
from .scanner.workspace import WorkspaceAnalyzer

console = Console()

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG = 2


def load_config(root: Path, config_path: Optional[str]) -> Config:
    """Config file if given, else ``monodoc.yaml`` in root, else environment."""
    if config_path:
        return Config.from_file(Path(config_path), base_dir=root)
    default_file = root / "monodoc.yaml"
    if default_file.is_file():
        return Config.from_file(default_file, base_dir=root)
    return Config.from_env(base_dir=root)


async def _run_with_signals(orchestrator: DocumentationOrchestrator):
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.request_stop)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on some platforms
            pass
    try:
        return await orchestrator.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


@click.group()
@click.version_option(__version__, prog_name="monodoc")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """monodoc - Generate JSDoc comments for a JS/TS monorepo with AI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML config file")
@click.option("--target", "-t", "targets", multiple=True, help="Only process paths matching this pattern")
@click.option("--changed", is_flag=True, help="Only process JS/TS files git reports as changed")
@click.option("--since", metavar="REF", help="Compare against this git ref with --changed (default HEAD~1)")
@click.option("--dry-run", is_flag=True, help="Report intended changes without writing files")
@click.option("--no-embed", is_flag=True, help="Skip the embedding-based relationship index")
@click.option("--force-overwrite", is_flag=True, help="Replace existing doc comments")
@click.option("--no-merge-existing", is_flag=True, help="Replace rather than merge existing doc comments")
@click.option("--model", "-m", help="Generation model id from the config")
@click.option("--plugin", "-p", "plugins", multiple=True, help="Plugin to enable ('api', 'react' or module:Class)")
@click.option("--report/--no-report", default=True, help="Write a JSON report")
@click.pass_context
def generate(
    ctx: click.Context,
    root: str,
    config_path: Optional[str],
    targets: tuple[str, ...],
    changed: bool,
    since: Optional[str],
    dry_run: bool,
    no_embed: bool,
    force_overwrite: bool,
    no_merge_existing: bool,
    model: Optional[str],
    plugins: tuple[str, ...],
    report: bool,
):
    """Generate documentation for every documentable declaration.

    Examples:
        monodoc generate . --dry-run
        monodoc generate ./repo -t "packages/core/**" --model anthropic-sonnet
        monodoc generate . --changed --since main
    """
    root_path = Path(root).resolve()
    try:
        config = load_config(root_path, config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)

    configure_logging(config.output.log_level, ctx.obj.get("verbose", False))

    config.target_paths = list(targets) or config.target_paths
    if changed:
        try:
            files = ChangeDetector(config.base_dir).changed_files(since)
        except AnalysisError as e:
            click.echo(f"Cannot list changed files: {e}", err=True)
            ctx.exit(EXIT_FAILURES)
        if not files:
            click.echo("No changed JS/TS files, nothing to document")
            ctx.exit(EXIT_OK)
        click.echo(f"Documenting {len(files)} changed file(s)")
        config.target_paths = [as_target_pattern(config.base_dir, f) for f in files]
    config.dry_run = dry_run or config.dry_run
    config.disable_embeddings = no_embed or config.disable_embeddings
    config.force_overwrite = force_overwrite or config.force_overwrite
    config.no_merge_existing = no_merge_existing or config.no_merge_existing
    if model:
        config.ai.default_generation_model_id = model
    for plugin in plugins:
        if plugin not in config.plugins:
            config.plugins.append(plugin)

    orchestrator = DocumentationOrchestrator(config)
    try:
        stats = asyncio.run(_run_with_signals(orchestrator))
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)

    render_stats(stats, console)
    if report:
        report_dir = config.output.report_dir
        if not report_dir.is_absolute():
            report_dir = config.base_dir / report_dir
        path = write_report(stats, report_dir, config.output.report_file_name)
        console.print(f"Report: {path}")

    ctx.exit(EXIT_FAILURES if stats.failed_docs else EXIT_OK)


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML config file")
@click.pass_context
def analyze(ctx: click.Context, root: str, config_path: Optional[str]):
    """Show discovered packages and batches without calling any model."""
    root_path = Path(root).resolve()
    try:
        config = load_config(root_path, config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)

    configure_logging(config.output.log_level, ctx.obj.get("verbose", False))
    analysis = WorkspaceAnalyzer(config).analyze()
    render_analysis(analysis, console)


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML config file")
@click.option("--model", "-m", help="Generation model id from the config")
@click.pass_context
def estimate(ctx: click.Context, root: str, config_path: Optional[str], model: Optional[str]):
    """Estimate prompt tokens and cost for a full run."""
    root_path = Path(root).resolve()
    try:
        config = load_config(root_path, config_path)
        config.get_model(model or config.ai.default_generation_model_id)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)

    configure_logging(config.output.log_level, ctx.obj.get("verbose", False))
    analysis = WorkspaceAnalyzer(config).analyze()
    parser = TSParser()
    builder = ContextBuilder(config, analysis.symbol_map)
    # The client is only used for estimates here, so no request is ever sent
    client = GenerationClient(
        config, LiteLLMProvider(), RateGovernor(ConcurrencyGate(1, "estimate"))
    )

    nodes = 0
    tokens = 0
    cost = 0.0
    for batch in analysis.batches:
        for path in batch.files:
            rel_path = path.resolve().relative_to(config.base_dir.resolve()).as_posix()
            try:
                outline = parser.parse(rel_path, read_source(path))
            except (OSError, UnicodeDecodeError) as e:
                click.echo(f"Skipping {rel_path}: {e}", err=True)
                continue
            for declaration in select_declarations(outline.declarations, config.docs):
                context = builder.build(declaration, outline, analysis.package_for(path))
                result = client.estimate_cost(context, model)
                nodes += 1
                tokens += result["estimated_tokens"]
                cost += result["estimated_cost"]

    console.print(f"{nodes} nodes, ~{tokens} prompt tokens, ~${cost:.4f} estimated prompt cost")


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML config file")
@click.option("--target", "-t", "targets", multiple=True, help="Only check paths matching this pattern")
@click.option("--min-score", type=click.FloatRange(0, 100), help="Exit 1 when the overall score is below this")
@click.option("--json", "json_path", type=click.Path(dir_okay=False), help="Also write the report as JSON")
@click.pass_context
def quality(
    ctx: click.Context,
    root: str,
    config_path: Optional[str],
    targets: tuple[str, ...],
    min_score: Optional[float],
    json_path: Optional[str],
):
    """Score the doc comments already in the workspace. Never calls a model.

    Examples:
        monodoc quality .
        monodoc quality . --min-score 60 --json quality.json
    """
    root_path = Path(root).resolve()
    try:
        config = load_config(root_path, config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)

    configure_logging(config.output.log_level, ctx.obj.get("verbose", False))
    config.target_paths = list(targets) or config.target_paths
    # Usages are irrelevant to scoring
    config.docs.include_symbol_references = False

    analysis = WorkspaceAnalyzer(config).analyze()
    files = [path for batch in analysis.batches for path in batch.files]
    report = QualityAnalyzer(config).analyze(files)
    render_quality(report, console)

    if json_path:
        data = report.model_dump(mode="json")
        data.update(score=report.score, coverage=report.coverage, issue_counts=report.issue_counts())
        Path(json_path).write_text(json.dumps(data, indent=2), encoding="utf-8")
        console.print(f"Report: {json_path}")

    if min_score is not None and report.score < min_score:
        click.echo(f"Quality score {report.score:.1f} is below {min_score:.1f}", err=True)
        ctx.exit(EXIT_FAILURES)


@cli.command("clear-cache")
@click.argument("root", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML config file")
@click.pass_context
def clear_cache(ctx: click.Context, root: str, config_path: Optional[str]):
    """Delete every cached generation result."""
    root_path = Path(root).resolve()
    try:
        config = load_config(root_path, config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)

    cache_dir = config.performance.cache_dir
    if not cache_dir.is_absolute():
        cache_dir = config.base_dir / cache_dir
    store = CacheStore(cache_dir, version=config.cache_version(__version__))
    try:
        removed = asyncio.run(store.clear())
    except CacheError as e:
        click.echo(f"Cache error: {e}", err=True)
        ctx.exit(EXIT_FAILURES)
    click.echo(f"Removed {removed} cache entries from {cache_dir}")


if __name__ == "__main__":
    cli()
