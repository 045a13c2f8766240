"""
Command Line Interface for carltm.
"""

import asyncio
import click
from pathlib import Path
from .version import VERSION
from .config import CarlConfig
from .completion import check_intent_completion, get_completion_percentage
from .data.validate import validate_project
from .orchestrator import CompletionOrchestrator
from .scope import SCOPE_DIRECTORIES, state_path_for


def _orchestrator(ctx, propagate=True) -> CompletionOrchestrator:
    return CompletionOrchestrator(ctx.obj['config'], propagate=propagate)


@click.group()
@click.version_option(version=VERSION, prog_name="carltm")
@click.option('--root', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Repository root (defaults to $CARL_ROOT or the current directory)')
@click.pass_context
def main(ctx, root):
    """
    carltm - completion tracking for hierarchical CARL work items.

    Archives completed intents into completed/ and rolls completion up
    through epics, features, stories and technical tasks.
    """
    ctx.ensure_object(dict)
    ctx.obj['config'] = CarlConfig.from_env(root)


@main.command()
@click.pass_context
def status(ctx):
    """Show the project layout and how many records each scope holds."""
    config = ctx.obj['config']
    click.echo("🔧 carltm")
    click.echo(f"📦 Version: {VERSION}")
    click.echo("")

    if not config.project_dir.exists():
        click.echo(f"❌ No CARL project found at {config.project_dir}")
        return

    click.echo("📁 Project Status:")
    click.echo(f"   📍 Location: {config.project_dir}")
    for scope_dir in SCOPE_DIRECTORIES:
        active = config.project_dir / scope_dir
        completed = active / "completed"
        active_count = len(list(active.glob("*.intent.carl"))) if active.exists() else 0
        completed_count = len(list(completed.glob("*.intent.carl"))) if completed.exists() else 0
        click.echo(f"   📋 {scope_dir}: {active_count} active, {completed_count} completed")


@main.command()
@click.argument('intent_path', type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def check(ctx, intent_path):
    """Report whether an intent is ready to be archived."""
    orchestrator = _orchestrator(ctx)

    async def run():
        result = await check_intent_completion(orchestrator.store, intent_path)
        percentage = None
        if result.state_path is not None:
            percentage = await get_completion_percentage(orchestrator.store, result.state_path)
        return result, percentage

    result, percentage = asyncio.run(run())
    if result.completed:
        click.echo(f"✅ {intent_path.name} is completed ({percentage}%)")
    elif result.state_data is None:
        click.echo(f"⚠️  {intent_path.name}: {result.reason}")
    else:
        click.echo(f"📋 {intent_path.name} is in progress ({percentage}%)")


@main.command()
@click.argument('intent_paths', nargs=-1, type=click.Path(dir_okay=False, path_type=Path))
@click.option('--full', is_flag=True, help='Review every active intent in the project')
@click.option('--propagate/--no-propagate', default=True, help='Roll completion up to parents')
@click.pass_context
def review(ctx, intent_paths, full, propagate):
    """Archive completed intents (the given ones, or all with --full)."""
    if not intent_paths and not full:
        click.echo("💡 Pass intent paths or use --full to review the whole project")
        return

    orchestrator = _orchestrator(ctx, propagate)
    if full:
        click.echo("🔍 Full project review mode - scanning all intents")
        processed = asyncio.run(orchestrator.full_project_review())
    else:
        processed = asyncio.run(orchestrator.detect_and_process_completions(intent_paths))

    if processed:
        click.echo(f"✅ Processed {processed} completion(s)")
    else:
        click.echo("📋 No completions detected")


@main.command()
@click.argument('intent_path', type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def recalc(ctx, intent_path):
    """Recalculate a parent's completion from its children and roll it upward."""
    orchestrator = _orchestrator(ctx)
    results = asyncio.run(orchestrator.aggregation.propagate(intent_path))

    if not results or not results[0].success:
        reason = results[0].reason if results else "nothing to recalculate"
        click.echo(f"❌ Recalculation failed: {reason}")
        return

    first = results[0]
    if first.changed:
        click.echo(f"📊 {intent_path.name}: {first.old_percentage}% → {first.new_percentage}%")
    else:
        click.echo(f"ℹ️  {intent_path.name}: no change ({first.old_percentage}%)")
    for result in results[1:]:
        if result.changed:
            click.echo(f"   ⬆️  ancestor: {result.old_percentage}% → {result.new_percentage}%")


@main.command()
@click.pass_context
def graph(ctx):
    """Print the resolved work item hierarchy."""
    orchestrator = _orchestrator(ctx)

    async def load():
        hierarchy = await orchestrator.index.build_hierarchical_map()
        percentages = {
            path: await get_completion_percentage(orchestrator.store, state_path_for(path))
            for path in hierarchy.nodes
        }
        return hierarchy, percentages

    hierarchy, percentages = asyncio.run(load())

    if not len(hierarchy):
        click.echo("📭 No intent records found")
        return

    project_dir = ctx.obj['config'].project_dir

    def show(path, depth, seen):
        relationship = hierarchy.get(path)
        percentage = percentages.get(path)
        label = path.relative_to(project_dir) if path.is_relative_to(project_dir) else path
        suffix = "" if percentage is None else f" ({percentage}%)"
        click.echo(f"{'   ' * depth}📌 {label}{suffix}")
        if path in seen:
            click.echo(f"{'   ' * (depth + 1)}⚠️  cycle")
            return
        for child in relationship.child_paths if relationship else []:
            show(child, depth + 1, seen | {path})

    roots = [path for path, rel in hierarchy.nodes.items() if rel.parent_path is None]
    for root in sorted(roots):
        show(root, 0, frozenset())


@main.command()
@click.pass_context
def validate(ctx):
    """Check every intent and state record against its schema."""
    orchestrator = _orchestrator(ctx)
    try:
        problems = asyncio.run(validate_project(orchestrator.index))
    except Exception as e:
        click.echo(f"❌ Error validating records: {e}")
        return

    if not problems:
        click.echo("✅ All records are valid")
        return

    for path, errors in problems.items():
        click.echo(f"❌ {path}")
        for error in errors:
            click.echo(f"   • {error}")
    ctx.exit(1)


if __name__ == "__main__":
    main()
