"""Pipeline orchestrator: index then resolve one publication date."""

import json
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
import psycopg
from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import Config
from ..db import ArticleIndexRepository, Database, PublicationRepository, ResolutionStore
from ..detection import DuplicateChecker
from ..indexing import ArticleIndexer, IndexReport
from ..models import Selection
from ..resolution import ComparisonProvider, ResolutionEngine, ResolutionReport

console = Console()


class PipelineStage:
    """One pipeline step and the report it produced."""

    def __init__(self, name: str, description: str) -> None:
        self.name = name
        self.description = description
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.report: Optional[BaseModel] = None
        self.error: Optional[str] = None

    @property
    def ran(self) -> bool:
        return self.started_at is not None

    @property
    def success(self) -> bool:
        return self.finished_at is not None and self.error is None

    @property
    def duration(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return self.finished_at - self.started_at

    @property
    def stats(self) -> Dict[str, Any]:
        """Report counters without the per-article outcomes."""
        if self.report is None:
            return {}
        return self.report.model_dump(mode="json", exclude={"outcomes"})

    def begin(self) -> None:
        console.print(f"\n[bold]{self.description}...[/bold]")
        self.started_at = time.monotonic()

    def finish(self, report: Optional[BaseModel] = None, error: Optional[str] = None) -> None:
        self.finished_at = time.monotonic()
        if report is not None:
            self.report = report
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ran": self.ran,
            "success": self.success,
            "duration": round(self.duration, 3),
            "error": self.error,
            "stats": self.stats,
        }

    def describe(self) -> str:
        """One-line summary for the pipeline table."""
        if self.error:
            return self.error
        if isinstance(self.report, IndexReport):
            return (
                f"{self.report.indexed} indexed, {self.report.skipped} skipped, "
                f"{self.report.invalid} invalid"
            )
        if isinstance(self.report, ResolutionReport):
            decisions = self.report.decisions
            return (
                f"{decisions.get('NEW', 0)} new, {decisions.get('UPDATE', 0)} update, "
                f"{decisions.get('SKIP', 0)} skip, {self.report.pending} pending"
            )
        return ""


class PipelineOrchestrator:
    """Run indexing and resolution for one date."""

    def __init__(
        self,
        config: Config,
        db: Database,
        provider: ComparisonProvider,
        index_repo: Optional[ArticleIndexRepository] = None,
        publication_repo: Optional[PublicationRepository] = None,
        store: Optional[ResolutionStore] = None,
    ) -> None:
        """
        Initialize pipeline orchestrator.

        Args:
            config: Loaded settings (detection thresholds, weights, workspace)
            db: Open store handle
            provider: Comparison provider for BORDERLINE pairs
            index_repo: Index repository
            publication_repo: Upstream publication source
            store: Resolution store
        """
        self.config = config
        self.db = db
        self.provider = provider
        self.index_repo = index_repo or ArticleIndexRepository()
        self.publication_repo = publication_repo or PublicationRepository()
        self.store = store or ResolutionStore()
        self.index_stage = PipelineStage("index", "Indexing entities and CVEs")
        self.resolve_stage = PipelineStage("resolve", "Resolving duplicates")
        self.started_at: Optional[float] = None

    @property
    def stages(self) -> List[PipelineStage]:
        return [self.index_stage, self.resolve_stage]

    @property
    def succeeded(self) -> bool:
        return all(stage.success for stage in self.stages)

    def _elapsed(self) -> float:
        return time.monotonic() - self.started_at if self.started_at is not None else 0.0

    def run(self, run_date: date, force: bool = False) -> bool:
        """
        Index and resolve one publication date.

        The resolve stage only runs when indexing finished without a storage
        error. Stage reports and LLM usage are written to
        ``<workspace>/runs/<date>/pipeline_stats.json``.

        Returns:
            True if every stage succeeded
        """
        self.started_at = time.monotonic()
        selection = Selection.for_date(run_date)

        console.print(Panel.fit(
            f"🔎 Security news duplicate resolution\n"
            f"Date: {run_date} • Force: {'yes' if force else 'no'}",
            style="bold blue",
        ))

        try:
            self._index(selection, force)
            if self.index_stage.success:
                self._resolve(selection, force)
        except psycopg.Error as e:
            console.print(f"[red]Storage error: {e}[/red]")
            for stage in self.stages:
                if stage.ran and stage.finished_at is None:
                    stage.finish(error=f"storage error: {e}")
        finally:
            stats_file = self._save_stats(run_date)
            self._print_summary(run_date, stats_file)

        return self.succeeded

    def _index(self, selection: Selection, force: bool) -> None:
        stage = self.index_stage
        stage.begin()
        report = ArticleIndexer(self.db, self.index_repo, self.publication_repo).index(selection, force=force)
        stage.finish(report, error="storage error during indexing" if report.aborted else None)

    def _resolve(self, selection: Selection, force: bool) -> None:
        stage = self.resolve_stage
        stage.begin()
        checker = DuplicateChecker(
            self.db,
            weights=self.config.weights,
            detection=self.config.get_detection_config(),
            index_repo=self.index_repo,
        )
        engine = ResolutionEngine(self.db, checker, self.provider, store=self.store)
        report = engine.resolve(selection, force=force)
        stage.finish(report, error="storage error during resolution" if report.aborted else None)

    def _save_stats(self, run_date: date) -> Path:
        stats = {
            "date": run_date.isoformat(),
            "completed_at": pendulum.now("UTC").to_iso8601_string(),
            "duration": round(self._elapsed(), 3),
            "success": self.succeeded,
            "llm": self.provider.get_usage_stats(),
            "stages": {stage.name: stage.to_dict() for stage in self.stages},
        }

        stats_file = self.config.get_run_dir(run_date) / "pipeline_stats.json"
        with open(stats_file, "w") as f:
            json.dump(stats, f, indent=2, default=str)
        return stats_file

    def _print_summary(self, run_date: date, stats_file: Path) -> None:
        table = Table(title="Pipeline Summary")
        table.add_column("Stage", style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Duration", style="yellow")
        table.add_column("Details", style="dim")

        for stage in self.stages:
            if not stage.ran:
                status = "[dim]-[/dim]"
            else:
                status = "[green]✓[/green]" if stage.success else "[red]✗[/red]"
            duration = f"{stage.duration:.1f}s" if stage.ran else "-"
            table.add_row(stage.name.title(), status, duration, stage.describe())

        console.print()
        console.print(table)

        if self.succeeded:
            console.print(Panel(
                f"[green]✅ {run_date} resolved[/green]\n\n"
                f"Duration: {self._elapsed():.1f} seconds\n"
                f"Stats: {stats_file}",
                style="green",
            ))
        else:
            failed = [stage.name for stage in self.stages if not stage.success]
            console.print(Panel(
                f"[red]❌ Pipeline failed for {run_date}[/red]\n\n"
                f"Failed or skipped stages: {', '.join(failed)}\n"
                f"Stats: {stats_file}",
                style="red",
            ))
