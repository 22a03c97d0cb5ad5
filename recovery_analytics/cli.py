"""Command-line interface for the recovery analytics engine."""

import logging
import click
from datetime import datetime
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape
from rich import box

from .config import config
from .exceptions import RecoveryAnalyticsError
from .loaders import load_samples, load_workouts
from .analysis import (
    BaselineEngine,
    CorrelationAnalyzer,
    DailyScoreEngine,
    IllnessDetector,
    Metric,
    OvertrainingRiskAssessor,
    StressCalculator,
    TrainingPhaseDetector,
    WellnessDetector,
)
from .analysis.overtraining import RiskLevel
from .db import ScoreRepository, get_db

console = Console()

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MODERATE: "yellow",
    RiskLevel.HIGH: "red",
    RiskLevel.CRITICAL: "bold red",
}


def _parse_date(value):
    if value is None:
        return None
    return datetime.strptime(value, "%Y-%m-%d").date()


def _fmt(value, pattern="{:.0f}"):
    return "-" if value is None else pattern.format(value)


def _recovery_style(score) -> str:
    if score is None:
        return "dim"
    elif score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    elif score >= 40:
        return "orange3"
    return "red"


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL from the environment")
def cli(log_level):
    """Daily recovery, sleep and strain scoring."""
    level = (log_level or config.LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


@cli.command()
@click.option("--samples", "samples_path", required=True, type=click.Path(exists=True), help="Daily samples CSV")
@click.option("--workouts", "workouts_path", type=click.Path(exists=True), help="Workouts CSV")
@click.option("--user-id", default=config.DEFAULT_USER_ID, help="User ID for stored scores")
@click.option("--days", default=14, help="Number of recent days to display")
@click.option("--full", is_flag=True, help="Recompute every day instead of replaying from the first change")
def score(samples_path, workouts_path, user_id, days, full):
    """Compute daily scores and store them."""
    console.print(Panel.fit("📈 Daily Scores", style="bold blue"))

    samples = load_samples(samples_path)
    workouts = load_workouts(workouts_path) if workouts_path else []

    engine = DailyScoreEngine()
    repository = ScoreRepository(user_id=user_id)

    stored = [] if full else repository.load()
    if stored:
        from_date = engine.find_invalidated(repository.fingerprints(), samples, workouts)
        if from_date is None:
            console.print("[green]✅ Stored scores are up to date.[/green]")
            scores = stored
        else:
            console.print(f"[yellow]Inputs changed from {from_date}, replaying...[/yellow]")
            repository.invalidate_from(from_date)
            scores = engine.replay_from(stored, from_date, samples, workouts)
    else:
        repository.clear()
        scores = engine.run(samples, workouts)

    repository.save(scores)

    if not scores:
        console.print("[yellow]No data to score.[/yellow]")
        return

    table = Table(title=f"Last {min(days, len(scores))} days", box=box.ROUNDED)
    table.add_column("Date", style="cyan")
    table.add_column("Recovery", justify="right")
    table.add_column("Sleep", justify="right")
    table.add_column("Strain", justify="right")
    table.add_column("TSS", justify="right", style="magenta")
    table.add_column("CTL", justify="right", style="blue")
    table.add_column("ATL", justify="right", style="red")
    table.add_column("TSB", justify="right")
    table.add_column("Confidence", style="dim")

    for s in scores[-days:]:
        table.add_row(
            s.date.isoformat(),
            f"[{_recovery_style(s.recovery)}]{_fmt(s.recovery)}[/]",
            _fmt(s.sleep),
            _fmt(s.strain, "{:.1f}"),
            f"{s.daily_tss:.0f}",
            f"{s.ctl:.1f}",
            f"{s.atl:.1f}",
            f"{s.tsb:+.1f}",
            s.strain_confidence or "",
        )

    console.print(table)


@cli.command()
@click.option("--samples", "samples_path", required=True, type=click.Path(exists=True), help="Daily samples CSV")
@click.option("--as-of", default=None, help="Date to compute baselines for (YYYY-MM-DD)")
def baseline(samples_path, as_of):
    """Show personal baselines and short-term trends."""
    samples = load_samples(samples_path)
    if not samples:
        console.print("[yellow]No samples found.[/yellow]")
        return

    as_of = _parse_date(as_of) or max(s.date for s in samples)
    engine = BaselineEngine()
    baselines = engine.compute_all(samples, as_of)

    table = Table(title=f"Baselines as of {as_of}", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Median", justify="right")
    table.add_column("Mean", justify="right")
    table.add_column("Std", justify="right")
    table.add_column("Samples", justify="right")
    table.add_column("Trend")
    table.add_column("Stability")

    for metric in Metric:
        b = baselines.get(metric)
        if b is None:
            table.add_row(metric.name, "-", "-", "-", "-", "[dim]insufficient data[/dim]", "")
            continue
        trend = engine.detect_trend(metric, samples, as_of)
        cv = engine.coefficient_of_variation(metric, samples, as_of)
        table.add_row(
            metric.name,
            f"{b.median:.1f}",
            f"{b.mean:.1f}",
            f"{b.std_deviation:.1f}",
            str(b.sample_count),
            f"{trend.direction.value} ({trend.magnitude_percent:+.1f}%)" if trend else "-",
            engine.classify_stability(cv).value if cv is not None else "-",
        )

    console.print(table)


@cli.command()
@click.option("--user-id", default=config.DEFAULT_USER_ID, help="User ID for stored scores")
@click.option("--window", default=config.RISK_WINDOW_DAYS, help="Days to assess")
def risk(user_id, window):
    """Assess overtraining risk from stored scores."""
    scores = ScoreRepository(user_id=user_id).load()
    assessment = OvertrainingRiskAssessor().assess(scores, window=window)

    if assessment is None:
        console.print(f"[yellow]Assessment unavailable: need at least {config.RISK_MIN_HISTORY_DAYS} "
                      f"days of scores (have {len(scores)}).[/yellow]")
        return

    style = RISK_STYLES[assessment.risk_level]
    console.print(Panel.fit(
        f"[{style}]{assessment.risk_level.value.upper()}[/] risk: {assessment.risk_score:.0f}/100\n\n"
        f"{assessment.recommendation}",
        title="⚠️  Overtraining Risk",
        style="bold",
    ))

    table = Table(title="Top factors", box=box.SIMPLE)
    table.add_column("Factor", style="cyan")
    table.add_column("Severity", justify="right")
    table.add_column("Detail")
    for factor in assessment.factors:
        table.add_row(factor.name, f"{factor.severity:.1f}", factor.description)
    console.print(table)


@cli.command()
@click.option("--workouts", "workouts_path", required=True, type=click.Path(exists=True), help="Workouts CSV")
@click.option("--user-id", default=config.DEFAULT_USER_ID, help="User ID for stored scores")
@click.option("--as-of", default=None, help="Evaluation date (YYYY-MM-DD)")
def phase(workouts_path, user_id, as_of):
    """Detect the current training phase."""
    workouts = load_workouts(workouts_path)
    history = [s.load_state for s in ScoreRepository(user_id=user_id).load()]
    result = TrainingPhaseDetector().detect(workouts, history, as_of=_parse_date(as_of))

    if result is None:
        console.print(f"[yellow]Not enough data: phase detection needs {config.PHASE_MIN_WEEKS} weeks "
                      "of history.[/yellow]")
        return

    ramp = f"{result.ctl_ramp_per_week:+.1f}/week" if result.ctl_ramp_per_week is not None else "-"
    console.print(Panel.fit(
        f"[bold]{result.phase.value.upper()}[/bold] (confidence {result.confidence:.0%})\n\n"
        f"Weekly TSS: {result.weekly_tss:.0f}\n"
        f"Intensity: {result.low_intensity_percent:.0f}% low / {result.mid_intensity_percent:.0f}% mid / "
        f"{result.high_intensity_percent:.0f}% high\n"
        f"CTL ramp: {ramp}\n\n"
        f"{result.recommendation}",
        title="🗓️  Training Phase",
    ))
    for note in result.notes:
        console.print(f"[dim]• {note}[/dim]")


@cli.command()
@click.option("--samples", "samples_path", required=True, type=click.Path(exists=True), help="Daily samples CSV")
@click.option("--user-id", default=config.DEFAULT_USER_ID, help="User ID for stored scores")
@click.option("--as-of", default=None, help="Date to check (YYYY-MM-DD)")
def wellness(samples_path, user_id, as_of):
    """Check stress, illness signals and sustained metric changes."""
    samples = load_samples(samples_path)
    if not samples:
        console.print("[yellow]No samples found.[/yellow]")
        return

    as_of = _parse_date(as_of) or max(s.date for s in samples)
    scores = [s for s in ScoreRepository(user_id=user_id).load() if s.date <= as_of]
    today = next((s for s in scores if s.date == as_of), None)

    if scores:
        stress = StressCalculator().timeline(scores)[-1]
        style = "red" if stress.is_elevated else "green"
        console.print(Panel.fit(
            f"Acute: [bold]{stress.acute_stress}[/bold]  Chronic: [{style}]{stress.chronic_stress}[/]  "
            f"Threshold: {stress.threshold}",
            title=f"Stress ({stress.date})",
        ))
        for contributor in stress.contributors:
            console.print(f"[dim]• {contributor.description}[/dim]")
    else:
        console.print("[dim]No stored scores; run 'score' first for stress.[/dim]")

    indicator = IllnessDetector().detect(samples, as_of, scores)
    if indicator is None:
        console.print("[green]No illness signals.[/green]")
    else:
        signals = ", ".join(f"{s.type.value} ({s.deviation_percent:+.0f}%)" for s in indicator.signals)
        console.print(Panel.fit(
            f"[bold]{indicator.severity.value.upper()}[/bold] (confidence {indicator.confidence:.0%})\n"
            f"Signals: {signals}\n\n{indicator.recommendation}",
            title="🤒 Body stress signals",
            style="yellow",
        ))

    alert = WellnessDetector().detect(samples, as_of, recovery=today.recovery if today else None)
    if alert is None:
        console.print("[green]No sustained metric changes.[/green]")
    else:
        metrics = ", ".join(m.name for m in alert.affected_metrics)
        console.print(f"[bold red]{alert.severity.value.upper()} wellness alert[/bold red]: "
                      f"{metrics} off baseline for {alert.trend_days} days")


@cli.command()
@click.option("--workouts", "workouts_path", required=True, type=click.Path(exists=True), help="Workouts CSV")
@click.option("--user-id", default=config.DEFAULT_USER_ID, help="User ID for stored scores")
@click.option("--max-lag", default=7, help="Longest lag in days for the leading-indicator scan")
def correlate(workouts_path, user_id, max_lag):
    """Correlate recovery with the power ridden that day."""
    scores = ScoreRepository(user_id=user_id).load()
    workouts = load_workouts(workouts_path)
    analyzer = CorrelationAnalyzer()

    try:
        result = analyzer.recovery_vs_performance(scores, workouts)
    except RecoveryAnalyticsError as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        return

    table = Table(title="Recovery vs. average power", box=box.ROUNDED)
    table.add_column("Measure", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Pearson r", f"{result.coefficient:.2f}")
    table.add_row("R²", f"{result.r_squared:.2f}")
    table.add_row("Workouts", str(result.sample_size))
    table.add_row("Significance", result.significance.value)
    table.add_row("p-value", _fmt(result.p_value, "{:.3f}"))
    if result.trend_line is not None:
        table.add_row("Trend line", f"y = {result.trend_line.slope:.2f}x + {result.trend_line.intercept:.1f}")
    console.print(table)
    console.print(analyzer.insight(result, "recovery", "average power"))

    # Missing recovery days stay in the series so lags remain in calendar days
    recoveries = [s.recovery for s in scores]
    tss = [s.daily_tss for s in scores]
    indicator = analyzer.lagged(recoveries, tss, max_lag=max_lag)
    if indicator is not None and indicator.result.significance.value != "none":
        console.print(f"\n[black]Leading indicator: recovery tracks training stress "
                      f"{indicator.optimal_lag_days} day(s) later (r = {indicator.result.coefficient:.2f}, "
                      f"{indicator.predictive_power}).[/black]")


@cli.command()
@click.option("--user-id", default=None, help="Only clear scores for this user")
def reset(user_id):
    """Delete stored scores."""
    console.print(Panel.fit("⚠️  Reset Scores", style="bold yellow"))

    if not click.confirm("This will delete stored scores. Are you sure?"):
        console.print("[black]Operation cancelled.[/black]")
        return

    if user_id:
        deleted = ScoreRepository(user_id=user_id).clear()
        console.print(f"[green]✅ Deleted {deleted} scores for {user_id}.[/green]")
        return

    get_db().reset()
    console.print("[green]✅ Database reset successfully![/green]")


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[orange3]Operation cancelled by user.[/orange3]")
    except RecoveryAnalyticsError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")


if __name__ == "__main__":
    main()
