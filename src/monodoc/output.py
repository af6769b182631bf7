"""Rich rendering of run summaries for the terminal."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import ProcessingStats, QualityReport
from .scanner.workspace import WorkspaceAnalysis

MAX_ERRORS_SHOWN = 20
MAX_QUALITY_FILES_SHOWN = 30


def render_stats(stats: ProcessingStats, console: Console) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(justify="right")

    rows = [
        ("Packages", stats.total_packages),
        ("Batches", f"{stats.processed_batches}/{stats.total_batches}"),
        ("Files processed", f"{stats.processed_files}/{stats.total_files}"),
        ("Files modified" + (" (would)" if stats.dry_run else ""), stats.modified_files),
        ("Lines added / removed", f"+{stats.lines_added} / -{stats.lines_removed}"),
        ("Nodes considered", stats.total_nodes_considered),
        ("Docs generated", stats.successful_docs),
        ("Docs skipped", stats.skipped_docs),
        ("Docs failed", stats.failed_docs),
        ("Cache hits", stats.cache_hits),
        ("Provider calls", stats.provider_calls),
        ("Embeddings ok / failed", f"{stats.embedding_successes} / {stats.embedding_failures}"),
        ("Relationships found", stats.total_relationships_discovered),
        ("Duration", f"{stats.duration_seconds or 0:.1f}s"),
    ]
    for label, value in rows:
        table.add_row(label, str(value))

    title = "Dry run summary" if stats.dry_run else "Run summary"
    if stats.interrupted:
        title += " (interrupted)"
    border = "red" if stats.failed_docs or stats.errors else "green"
    console.print(Panel(table, title=title, border_style=border))

    if stats.errors:
        errors = Table(title=f"Errors ({len(stats.errors)})", show_lines=False)
        errors.add_column("File", overflow="fold")
        errors.add_column("Node")
        errors.add_column("Error", overflow="fold")
        for entry in stats.errors[:MAX_ERRORS_SHOWN]:
            errors.add_row(entry.file, entry.node_name or "-", entry.error)
        console.print(errors)
        if len(stats.errors) > MAX_ERRORS_SHOWN:
            console.print(f"... and {len(stats.errors) - MAX_ERRORS_SHOWN} more, see the report file")


def render_analysis(analysis: WorkspaceAnalysis, console: Console) -> None:
    packages = Table(title=f"Packages ({len(analysis.packages)})")
    packages.add_column("Name", no_wrap=True)
    packages.add_column("Kind", no_wrap=True)
    packages.add_column("Priority", justify="right", no_wrap=True)
    packages.add_column("Path", overflow="fold")
    for package in analysis.packages:
        packages.add_row(package.name, package.kind.value, f"{package.priority:.1f}", str(package.path))
    console.print(packages)

    console.print(
        Panel(
            f"{analysis.total_files} files in {len(analysis.batches)} batches, "
            f"{len(analysis.symbol_map)} symbols indexed",
            title="Workspace",
            border_style="cyan",
        )
    )


def render_quality(report: QualityReport, console: Console) -> None:
    """Worst files first, then the totals."""
    files = sorted(report.files, key=lambda f: f.score)
    table = Table(title=f"Documentation quality ({len(files)} files)")
    table.add_column("File", overflow="fold")
    table.add_column("Score", justify="right", no_wrap=True)
    table.add_column("Documented", justify="right", no_wrap=True)
    table.add_column("Issues", justify="right", no_wrap=True)
    for file in files[:MAX_QUALITY_FILES_SHOWN]:
        issues = sum(len(n.issues) for n in file.nodes)
        table.add_row(file.path, f"{file.score:.1f}", f"{file.documented}/{len(file.nodes)}", str(issues))
    console.print(table)
    if len(files) > MAX_QUALITY_FILES_SHOWN:
        console.print(f"... and {len(files) - MAX_QUALITY_FILES_SHOWN} more files")

    lines = [
        f"Score {report.score:.1f}/100",
        f"Coverage {report.coverage:.1f}% ({report.documented_nodes}/{report.total_nodes} nodes)",
    ]
    for kind, count in sorted(report.issue_counts().items(), key=lambda item: -item[1]):
        lines.append(f"{kind}: {count}")
    border = "green" if report.score >= 70 else "yellow" if report.score >= 40 else "red"
    console.print(Panel("\n".join(lines), title="Quality summary", border_style=border))
