"""
MatheZoo CLI - inspect the diagnostic and progression engine from a terminal.

Usage:
    mathezoo diagnose attempts.json        # Cognitive snapshot for recorded attempts
    mathezoo generate sum_constancy -d 3   # Print a task package
    mathezoo detect + 7 8 --time 2000      # Timing-only strategy guess
    mathezoo simulate --attempts 200       # Run a simulated learner
    mathezoo levels                        # Level names and stages
"""

from __future__ import annotations

import dataclasses
import json
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from mathezoo.adaptive.diagnostic_engine import DiagnosisConfig, DiagnosticEngine
from mathezoo.adaptive.strategy_detector import StrategyDetector
from mathezoo.core.arithmetic import build_attempt
from mathezoo.core.exceptions import MathezooError
from mathezoo.core.models import TaskAttempt
from mathezoo.core.tables import LEVEL_NAMES
from mathezoo.generation.task_packages import PATTERNS, TaskPackageGenerator
from mathezoo.pipeline import LearnerSession, LearnerState
from mathezoo.progression.level_state_machine import (
    icon_tier,
    level_theme,
    number_range_for_level,
    stage_for_level,
)
from mathezoo.progression.representation import describe_representation_level

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="mathezoo",
    help="MatheZoo - adaptive diagnosis and level progression for early arithmetic",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    raise typer.Exit(code=1)


def _load_attempts(path: Path) -> list[TaskAttempt]:
    """Attempts from a JSON list or an object with an "attempts" list."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        _fail(f"cannot read {path}: {e}")
    if isinstance(data, dict):
        data = data.get("attempts", [])
    return [TaskAttempt.from_dict(record) for record in data]


# =============================================================================
# Diagnosis
# =============================================================================


@app.command()
def diagnose(
    file: Annotated[Path, typer.Argument(help="JSON file with recorded attempts")],
    prior: Annotated[
        int | None, typer.Option("--prior", "-p", help="Previous ZPD level (1-5)")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw snapshot")] = False,
) -> None:
    """
    Diagnose a learner from recorded attempts.

    Examples:
        mathezoo diagnose attempts.json
        mathezoo diagnose attempts.json --prior 4 --json
    """
    try:
        attempts = _load_attempts(file)
    except MathezooError as e:
        _fail(str(e))

    engine = DiagnosticEngine(DiagnosisConfig.from_settings(get_settings()))
    prior_snapshot = None
    if prior is not None:
        prior_snapshot = engine.diagnose([])
        prior_snapshot.zpd_level = prior

    detector = StrategyDetector()
    labeled = [
        a if a.strategy_used else dataclasses.replace(a, strategy_used=detector.detect_attempt(a).label.value)
        for a in attempts
    ]
    snapshot = engine.diagnose(labeled, prior_snapshot)

    if as_json:
        console.print_json(json.dumps(snapshot.to_dict()))
        return

    console.print(
        Panel(
            f"[bold cyan]ZPD level {snapshot.zpd_level}[/]\n"
            f"Recommended difficulty: {snapshot.recommended_difficulty}\n"
            f"Recommended strategies: {', '.join(snapshot.recommended_strategies)}\n"
            f"Attempts analyzed: {len(attempts)}",
            title="Diagnosis",
            border_style="cyan",
        )
    )

    table = Table(title="Profiles")
    table.add_column("Dimension", style="cyan")
    table.add_column("Summary")
    table.add_row(
        "Process",
        f"representations {snapshot.process.preferred_representations}, "
        f"flexibility {snapshot.process.representation_flexibility:.2f}, "
        f"systematics {snapshot.process.step_systematics:.2f}",
    )
    table.add_row(
        "Strategy",
        f"dominant {snapshot.strategy.dominant_strategy}, "
        f"flexibility {snapshot.strategy.strategy_flexibility:.2f}",
    )
    table.add_row(
        "Time",
        f"{snapshot.time.average_ms:.0f} ms ± {snapshot.time.std_dev_ms:.0f}, {snapshot.time.trend.value}",
    )
    table.add_row(
        "Pattern",
        f"mastered {snapshot.pattern.mastered_patterns or '-'}, "
        f"struggling {snapshot.pattern.struggling_patterns or '-'}",
    )
    table.add_row(
        "Emotion",
        f"frustration {snapshot.emotion.frustration:.1f}, "
        f"confidence {snapshot.emotion.confidence:.2f}, "
        f"persistence {snapshot.emotion.persistence:.1f}",
    )
    console.print(table)


# =============================================================================
# Tasks & Strategies
# =============================================================================


@app.command()
def generate(
    pattern: Annotated[str, typer.Argument(help=f"One of: {', '.join(PATTERNS)}")],
    difficulty: Annotated[int, typer.Option("--difficulty", "-d", help="Difficulty 1-5")] = 3,
    number_range: Annotated[int, typer.Option("--range", "-r", help="Number range")] = 20,
    strategy: Annotated[
        str, typer.Option("--strategy", "-s", help="Strategy hint for error_pattern / mixed_practice")
    ] = "counting_on",
    seed: Annotated[int | None, typer.Option("--seed", help="Random seed")] = None,
) -> None:
    """
    Print a task package.

    Examples:
        mathezoo generate sum_constancy -d 1
        mathezoo generate inverse_operations -r 100
    """
    generator = TaskPackageGenerator(random.Random(seed))
    try:
        package = generator.generate(pattern, difficulty, number_range, strategy)
    except MathezooError as e:
        _fail(str(e))

    table = Table(title=f"{package.pattern} (difficulty {package.difficulty}, range {package.number_range})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task", style="cyan")
    table.add_column("Answer", justify="right")
    table.add_column("Type")
    for i, task in enumerate(package.tasks, 1):
        table.add_row(str(i), str(task), str(task.correct_answer), task.task_type)
    console.print(table)
    console.print(f"[dim]Target strategy: {package.target_strategy}[/]")


@app.command()
def detect(
    operation: Annotated[str, typer.Argument(help="+ / - (or add / sub)")],
    number1: Annotated[int, typer.Argument(help="First operand")],
    number2: Annotated[int, typer.Argument(help="Second operand")],
    time_ms: Annotated[float, typer.Option("--time", "-t", help="Solve time in ms")] = 5000.0,
) -> None:
    """
    Guess the strategy from timing and number structure alone.

    Examples:
        mathezoo detect + 7 8 --time 2000
        mathezoo detect sub 14 6 -t 9000
    """
    try:
        result = StrategyDetector().detect_from_timing(operation, number1, number2, time_ms)
    except MathezooError as e:
        _fail(str(e))

    console.print(f"[bold]{result.label.value}[/] (confidence {result.confidence:.2f})")
    for indicator in result.indicators:
        console.print(f"  [dim]- {indicator}[/]")


# =============================================================================
# Simulation
# =============================================================================


@app.command()
def simulate(
    attempts: Annotated[int, typer.Option("--attempts", "-n", help="Number of attempts")] = 200,
    accuracy: Annotated[float, typer.Option("--accuracy", "-a", help="Chance of a correct answer")] = 0.9,
    review_rate: Annotated[
        float, typer.Option("--review-rate", help="Chance of revisiting an earlier level")
    ] = 0.1,
    seed: Annotated[int | None, typer.Option("--seed", help="Random seed")] = None,
) -> None:
    """
    Run a simulated learner through the full pipeline.

    Wrong answers are off by one, like a typical counting slip. Tasks on
    earlier levels (review) surface knowledge gaps.
    """
    if not 0.0 <= accuracy <= 1.0:
        _fail("accuracy must be between 0 and 1")

    rng = random.Random(seed)
    session = LearnerSession(get_settings())
    session.generator.rng = rng
    state = LearnerState()
    clock = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    milestones, gaps = [], 0
    queue = []
    for _ in range(attempts):
        if not queue:
            package = session.next_package(state)
            if not package.tasks:
                _fail(f"no tasks for {package.pattern} at range {package.number_range}")
            queue = list(package.tasks)
        task = queue.pop(0)
        correct = rng.random() < accuracy
        answer = task.correct_answer if correct else task.correct_answer + 1
        level = state.progression.current_level
        if level > 1 and rng.random() < review_rate:
            level = rng.randint(1, level - 1)
        attempt = build_attempt(
            task.operation,
            task.number1,
            task.number2,
            answer,
            time_taken_ms=rng.uniform(1500, 12000),
            number_range=task.number_range,
            task_type=task.task_type,
            level=level,
            created_at=clock,
        )
        result = session.process_attempt(state, attempt, now=clock)
        state = result.state
        clock += timedelta(seconds=30)
        if result.milestone:
            milestones.append(result.milestone)
        if result.gap:
            gaps += 1

    snapshot = state.snapshot or session.diagnose(state)
    progression = state.progression
    console.print(
        Panel(
            f"Attempts: {progression.total_tasks} ({progression.total_correct} correct)\n"
            f"Level: {progression.current_level} - {LEVEL_NAMES.get(progression.current_level, '')}\n"
            f"Milestones: {len(milestones)}\n"
            f"Knowledge gaps: {gaps}\n"
            f"Representation level: {progression.representation_level} "
            f"({describe_representation_level(progression.representation_level)})\n"
            f"ZPD level: {snapshot.zpd_level}",
            title="Simulation",
            border_style="green",
        )
    )
    if milestones:
        table = Table(title="Milestones")
        table.add_column("Level", justify="right")
        table.add_column("Title", style="cyan")
        table.add_column("Icon")
        for event in milestones:
            table.add_row(str(event.level), event.title, event.icon)
        console.print(table)


@app.command()
def levels(
    stage: Annotated[int | None, typer.Option("--stage", help="Only show one stage")] = None,
) -> None:
    """Print the level table with stages and number ranges."""
    table = Table(title="Levels")
    table.add_column("Level", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Theme")
    table.add_column("Stage", justify="right")
    table.add_column("Range", justify="right")
    table.add_column("Icon")
    for level, name in LEVEL_NAMES.items():
        if stage is not None and stage_for_level(level) != stage:
            continue
        table.add_row(
            str(level),
            name,
            level_theme(level),
            str(stage_for_level(level)),
            str(number_range_for_level(level)),
            icon_tier(level),
        )
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """
    MatheZoo - adaptive diagnosis and level progression for early arithmetic.
    """
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="10 MB")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
