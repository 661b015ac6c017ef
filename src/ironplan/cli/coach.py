#!/usr/bin/env python3
"""
Ironplan CLI

Internal Codename: JUDGMENT-DAY
Command-line interface for the planning engine.

Usage:
    ironplan macro --user USER --start DATE --weeks WEEKS [--age AGE] [--goal GOAL]
    ironplan week --user USER
    ironplan targets --user USER MUSCLE... [--week WEEK]
    ironplan readiness --user USER --readiness N --motivation N [--sore MUSCLE=LEVEL]...
    ironplan plan --user USER --intent INTENT --muscles GROUP... [--seed SEED]
    ironplan log-session --user USER
    ironplan transition --user USER
    ironplan stalls HISTORY_FILE
    ironplan import-exercises --user USER EXERCISES_FILE

State lives in a JSON file (--state) unless --postgres is given.
"""

import json
import logging
import sys
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from ironplan import mappers
from ironplan.config import EngineConfig
from ironplan.errors import AlignmentFailure, IronplanError
from ironplan.judgment_day import (
    MesocycleLifecycle,
    SessionPlanner,
    VolumeLandmarkRamp,
    characteristics_for_week,
    compute_fatigue_score,
    detect_stalls,
    fatigue_rationale,
    format_plan_text,
    generate_macro_cycle,
    get_current_meso_week,
    suggest_intervention,
)
from ironplan.repository import InMemoryRepository
from ironplan.types import (
    ExerciseSession,
    LoggedSet,
    PerformanceSignals,
    PrimaryGoal,
    ReadinessSignal,
    SessionIntent,
    SubjectiveReadiness,
    TrainingAge,
    WearableSnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = 'ironplan_state.json'


def _fail(message: str):
    click.echo(f"❌ {message}")
    sys.exit(1)


def _parse_pairs(pairs: Tuple[str, ...], cast) -> Dict[str, object]:
    """Parse KEY=VALUE options."""
    parsed = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'")
        try:
            parsed[key.strip()] = cast(value)
        except ValueError:
            raise click.BadParameter(f"Invalid value in '{pair}'") from None
    return parsed


@contextmanager
def open_repository(ctx: click.Context):
    """Repository for the command; the state file is saved only on success."""
    if ctx.obj['postgres']:
        from ironplan.postgres_client import PostgresPlanningRepository
        repo = PostgresPlanningRepository()
        try:
            yield repo
        finally:
            repo.close()
    else:
        state = ctx.obj['state']
        repo = InMemoryRepository.load(state)
        yield repo
        repo.save(state)


def _active(repo, user: str):
    meso = repo.get_active_mesocycle(user)
    if meso is None:
        _fail(f"No active mesocycle for {user}. Run 'ironplan macro' first.")
    return meso


@click.group()
@click.option('--state', type=click.Path(dir_okay=False, path_type=Path),
              default=DEFAULT_STATE_FILE, show_default=True, help='JSON state file')
@click.option('--postgres', is_flag=True, help='Use Postgres ($IRONPLAN_POSTGRES_DSN) instead of the state file')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Engine config YAML (default: packaged ironplan.yaml or $IRONPLAN_CONFIG)')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
@click.pass_context
def cli(ctx, state: Path, postgres: bool, config_path: Optional[Path], verbose: bool):
    """
    Ironplan - Periodization and Session Planning

    JUDGMENT-DAY: Your workout, decided.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    ctx.ensure_object(dict)
    try:
        config = EngineConfig.from_yaml(config_path)
    except IronplanError as e:
        _fail(f"Configuration error: {e}")
    ctx.obj.update(state=state, postgres=postgres, config=config)


@cli.command()
@click.option('--user', required=True, help='User id')
@click.option('--start', 'start_str', type=str, help='Start date (YYYY-MM-DD), default: today')
@click.option('--weeks', default=12, show_default=True, help='Macro cycle length in weeks')
@click.option('--age', type=click.Choice([a.value for a in TrainingAge]), default='intermediate', show_default=True)
@click.option('--goal', type=click.Choice([g.value for g in PrimaryGoal]), default='hypertrophy', show_default=True)
@click.option('--sessions', default=3, show_default=True, help='Sessions per week')
@click.pass_context
def macro(ctx, user: str, start_str: Optional[str], weeks: int, age: str, goal: str, sessions: int):
    """Generate and store a macro cycle."""
    start = date.fromisoformat(start_str) if start_str else date.today()

    with open_repository(ctx) as repo:
        try:
            generated = generate_macro_cycle(
                user_id=user,
                start_date=start,
                duration_weeks=weeks,
                training_age=TrainingAge(age),
                primary_goal=PrimaryGoal(goal),
                sessions_per_week=sessions,
            )
            stored = repo.save_macro_cycle(generated)
        except IronplanError as e:
            _fail(f"Error generating macro cycle: {e}")

        click.echo("=" * 60)
        click.echo(f"MACRO CYCLE {stored.id}: {stored.start_date} to {stored.end_date}")
        click.echo("=" * 60)
        for meso in stored.mesocycles:
            marker = " (active)" if meso.is_active else ""
            click.echo(f"\nMesocycle {meso.meso_number}{marker}: {meso.focus}")
            for block in meso.blocks:
                click.echo(
                    f"  Weeks {block.start_week + 1}-{block.end_week}: "
                    f"{block.block_type.value} ({block.volume_target.value} volume, "
                    f"{block.intensity_bias.value})"
                )
        click.echo("\n" + "=" * 60)


@cli.command()
@click.option('--user', required=True, help='User id')
@click.pass_context
def week(ctx, user: str):
    """Show the current mesocycle week and effort targets."""
    config = ctx.obj['config']

    with open_repository(ctx) as repo:
        meso = _active(repo, user)
        lifecycle = MesocycleLifecycle(repo, config.lifecycle, VolumeLandmarkRamp(config.ramp))
        current = get_current_meso_week(meso)
        band = lifecycle.get_rir_target(meso, current)
        chars = characteristics_for_week(meso, current)

        click.echo("=" * 60)
        click.echo("IRONPLAN TRAINING STATUS")
        click.echo("=" * 60)
        click.echo(f"\nMesocycle: {meso.meso_number} ({meso.id})")
        click.echo(f"State: {meso.state.value}")
        click.echo(f"Week: {current} of {meso.duration_weeks}")
        click.echo(f"Accumulation sessions: {meso.accumulation_sessions_completed}")
        click.echo(f"Deload sessions: {meso.deload_sessions_completed}")
        click.echo(f"\nTarget RIR: {band.min}-{band.max} (RPE {10 - band.max}-{10 - band.min})")
        click.echo(f"Reps per set: {chars['reps_per_set'][0]}-{chars['reps_per_set'][1]}")
        click.echo(f"Rest: {chars['rest_seconds']}s")
        click.echo(f"Focus: {chars['focus']}")
        click.echo("\n" + "=" * 60)


@cli.command()
@click.option('--user', required=True, help='User id')
@click.option('--week', 'week_number', type=int, help='Week of the mesocycle (default: current)')
@click.argument('muscles', nargs=-1, required=True)
@click.pass_context
def targets(ctx, user: str, week_number: Optional[int], muscles: Tuple[str, ...]):
    """Weekly set targets for MUSCLES."""
    config = ctx.obj['config']

    with open_repository(ctx) as repo:
        meso = _active(repo, user)
        lifecycle = MesocycleLifecycle(repo, config.lifecycle, VolumeLandmarkRamp(config.ramp))
        current = week_number or get_current_meso_week(meso)

        click.echo(f"\nWeek {current} of {meso.duration_weeks}")
        click.echo(f"\nMuscle               | Sets")
        click.echo("─" * 30)
        for muscle in muscles:
            sets = lifecycle.get_weekly_volume_target(meso, muscle, current)
            click.echo(f"{muscle:20} | {sets:4}")


@cli.command()
@click.option('--user', required=True, help='User id')
@click.option('--readiness', 'readiness_level', type=click.IntRange(1, 5), required=True, help='1=exhausted, 5=great')
@click.option('--motivation', type=click.IntRange(1, 5), required=True, help='1=none, 5=eager')
@click.option('--stress', type=click.IntRange(1, 5), help='1=low, 5=high')
@click.option('--sore', multiple=True, help='MUSCLE=LEVEL (1 none, 2 moderate, 3 very sore)')
@click.option('--rpe-deviation', type=float, default=0.0, help='Avg actual minus target RPE')
@click.option('--stalls', 'stall_count', type=int, default=0, help='Exercises currently stalled')
@click.option('--compliance', type=click.FloatRange(0, 1), default=1.0, help='Share of prescribed sets completed')
@click.option('--recovery', type=float, help='Wearable recovery 0-100')
@click.option('--strain', type=float, default=0.0, help='Wearable strain 0-21')
@click.option('--hrv', type=float, default=0.0, help='HRV in ms')
@click.option('--sleep', 'sleep_quality', type=float, default=0.0, help='Sleep performance 0-100')
@click.pass_context
def readiness(ctx, user, readiness_level, motivation, stress, sore, rpe_deviation,
              stall_count, compliance, recovery, strain, hrv, sleep_quality):
    """Record a readiness check-in and show the fatigue score."""
    config = ctx.obj['config']

    try:
        wearable = None
        if recovery is not None:
            wearable = WearableSnapshot(recovery=recovery, strain=strain, hrv=hrv, sleep_quality=sleep_quality)
        signal = ReadinessSignal(
            user_id=user,
            timestamp=datetime.now(timezone.utc),
            subjective=SubjectiveReadiness(
                readiness=readiness_level,
                motivation=motivation,
                soreness=_parse_pairs(sore, int),
                stress=stress,
            ),
            performance=PerformanceSignals(
                rpe_deviation=rpe_deviation,
                stall_count=stall_count,
                volume_compliance_rate=compliance,
            ),
            wearable=wearable,
        )
    except IronplanError as e:
        _fail(f"Invalid check-in: {e}")

    with open_repository(ctx) as repo:
        repo.save_readiness_signal(signal)

    score = compute_fatigue_score(signal, config.fatigue)
    click.echo(f"\n{fatigue_rationale(score)}")
    if score.per_muscle:
        click.echo("\nPer muscle:")
        for muscle, value in sorted(score.per_muscle.items()):
            click.echo(f"  {muscle:20} {value:.0%}")


@cli.command()
@click.option('--user', required=True, help='User id')
@click.option('--intent', type=click.Choice([i.value for i in SessionIntent]), help='Session focus')
@click.option('--muscles', multiple=True, required=True, help='Target muscle group (repeatable)')
@click.option('--seed', default=0, show_default=True, help='Selection tie-break seed')
@click.option('--count', type=int, help='Number of exercises')
@click.option('--equipment', multiple=True, help='Available equipment (repeatable)')
@click.option('--goal', type=click.Choice([g.value for g in PrimaryGoal]), help='Training goal bias')
@click.option('--minutes', type=int, help='Time budget in minutes')
@click.option('--exclude-recent', type=int, help='Skip exercises used within N days')
@click.option('--load', 'loads', multiple=True, help='EXERCISE_ID=LBS working load (repeatable)')
@click.pass_context
def plan(ctx, user, intent, muscles, seed, count, equipment, goal, minutes, exclude_recent, loads):
    """Generate a session plan."""
    config = ctx.obj['config']

    with open_repository(ctx) as repo:
        planner = SessionPlanner(repo, config)
        try:
            result = planner.plan_session(
                user_id=user,
                intent=SessionIntent(intent) if intent else None,
                target_muscle_groups=list(muscles),
                now=datetime.now(timezone.utc),
                seed=seed,
                exercise_count=count,
                available_equipment=list(equipment) or None,
                training_goal=PrimaryGoal(goal) if goal else None,
                time_budget_minutes=minutes,
                exclude_recent_days=exclude_recent,
                target_loads=_parse_pairs(loads, float),
            )
        except IronplanError as e:
            _fail(f"Error generating plan: {e}")

        if isinstance(result, AlignmentFailure):
            _fail(f"Could not build a {result.intent} session: {result.error}")

        click.echo(format_plan_text(result.plan, result))


@cli.command('log-session')
@click.option('--user', required=True, help='User id')
@click.pass_context
def log_session(ctx, user: str):
    """Count a completed session and apply lifecycle transitions."""
    config = ctx.obj['config']

    with open_repository(ctx) as repo:
        meso = _active(repo, user)
        repo.increment_session_counter(meso.id)
        lifecycle = MesocycleLifecycle(repo, config.lifecycle, VolumeLandmarkRamp(config.ramp))
        current = lifecycle.transition(meso.id)

        click.echo(
            f"✓ Session logged. Mesocycle {current.meso_number} ({current.id}) "
            f"{current.state.value}, week {get_current_meso_week(current)}"
        )


@cli.command()
@click.option('--user', required=True, help='User id')
@click.pass_context
def transition(ctx, user: str):
    """Apply lifecycle thresholds to the active mesocycle."""
    config = ctx.obj['config']

    with open_repository(ctx) as repo:
        meso = _active(repo, user)
        lifecycle = MesocycleLifecycle(repo, config.lifecycle, VolumeLandmarkRamp(config.ramp))
        current = lifecycle.transition(meso.id)

        if current.id != meso.id:
            click.echo(f"✓ Mesocycle {meso.id} completed; now on {current.id} (#{current.meso_number})")
        elif current.state != meso.state:
            click.echo(f"✓ Mesocycle {meso.id} moved to {current.state.value}")
        else:
            click.echo(f"Mesocycle {meso.id} unchanged ({current.state.value})")


@cli.command()
@click.argument('history_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def stalls(ctx, history_file: Path):
    """
    Detect stalled exercises in a JSON training history.

    The file holds a list of {exercise_id, exercise_name, performed_at,
    sets: [{reps, load}]}.
    """
    config = ctx.obj['config']

    with open(history_file) as f:
        raw = json.load(f)

    try:
        history = [
            ExerciseSession(
                exercise_id=str(entry['exercise_id']),
                exercise_name=entry.get('exercise_name') or str(entry['exercise_id']),
                performed_at=datetime.fromisoformat(entry['performed_at']),
                sets=tuple(LoggedSet(reps=int(s['reps']), load=float(s['load'])) for s in entry['sets']),
            )
            for entry in raw
        ]
    except (KeyError, TypeError, ValueError) as e:
        _fail(f"Malformed history file: {e}")

    found = detect_stalls(history, config.stalls)

    click.echo("=" * 60)
    click.echo("STALL CHECK")
    click.echo("=" * 60)
    if not found:
        click.secho("\n✓ No stalled exercises", fg='green')
    for stall in found:
        suggestion = suggest_intervention(stall)
        click.secho(f"\n⚠  {stall.exercise_name}: {stall.level}", fg='yellow')
        click.echo(f"   {suggestion.action}")
        click.echo(f"   {suggestion.rationale}")
    click.echo("\n" + "=" * 60)


@cli.command('import-exercises')
@click.option('--user', required=True, help='User id')
@click.argument('exercises_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_exercises(ctx, user: str, exercises_file: Path):
    """Load a JSON list of exercises into the state file's pool for USER."""
    if ctx.obj['postgres']:
        _fail("import-exercises only works with the JSON state file")

    with open(exercises_file) as f:
        rows = json.load(f)

    with open_repository(ctx) as repo:
        try:
            pool = [mappers.exercise_from_row(r) for r in rows]
        except (KeyError, TypeError) as e:
            _fail(f"Malformed exercise file: {e}")
        repo.exercises[user] = pool
        click.echo(f"✓ Imported {len(pool)} exercises for {user}")


if __name__ == '__main__':
    cli()
