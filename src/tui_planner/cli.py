"""CLI entry point using Click."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date, timedelta
from pathlib import Path

import click

from tui_planner.logging_setup import level_from_name, setup_logging


class _DefaultGroup(click.Group):
    """Insert 'run' when the first arg is not a registered subcommand."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.no_args_is_help = False  # bare `tui-planner` opens the app

    def invoke(self, ctx):
        if not ctx._protected_args and not ctx.args:
            ctx._protected_args = ["run"]
        return super().invoke(ctx)

    def resolve_command(self, ctx, args):
        cmd_name = args[0] if args else None
        if cmd_name and cmd_name in self.commands:
            return super().resolve_command(ctx, args)
        return super().resolve_command(ctx, ["run"] + list(args))


def build_sample_tree(today: date):
    """A small starter plan with dates relative to *today*."""
    from tui_planner.models import Task

    def d(offset: int) -> date:
        return today + timedelta(days=offset)

    return (
        Task(
            "Design",
            start_date=d(0),
            end_date=d(5),
            subtasks=(
                Task("Requirements", start_date=d(0), end_date=d(2)),
                Task("Technical review", start_date=d(3), end_date=d(5)),
            ),
        ),
        Task(
            "Build",
            start_date=d(6),
            end_date=d(20),
            subtasks=(
                Task("Core development", start_date=d(6), end_date=d(15)),
                Task("Testing", start_date=d(16), end_date=d(20)),
            ),
        ),
        Task("Write release notes"),
    )


def _project_dir(path: str) -> Path:
    project_dir = Path(path).resolve()
    if not project_dir.is_dir():
        click.echo(f"Error: '{project_dir}' is not a directory.", err=True)
        raise SystemExit(1)
    return project_dir


def _load_tree(project_dir: Path, owner: str | None):
    """Read one owner's tree without locking the store."""
    from tui_planner.config import load_config, store_dir
    from tui_planner.errors import StoreError
    from tui_planner.filelock import is_locked
    from tui_planner.store import JsonFileStore

    config = load_config(project_dir)
    store = JsonFileStore(store_dir(project_dir, config))
    if is_locked(store.directory):
        click.echo("Note: the project is open in another process; showing its last save.", err=True)
    try:
        tree = asyncio.run(store.load_tree(owner or config.owner_id))
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    return config, tree


def _mutate(project_dir: Path, owner: str | None, action: Callable) -> None:
    """Run *action(sync)* against the locked store and wait for the save.

    *action* may raise click.ClickException to reject the change.
    """
    from tui_planner.config import load_config, store_dir
    from tui_planner.errors import PlannerError
    from tui_planner.store import JsonFileStore
    from tui_planner.sync import SyncAdapter

    config = load_config(project_dir)
    errors: list[str] = []

    async def _run() -> None:
        with JsonFileStore(store_dir(project_dir, config)) as store:
            sync = SyncAdapter(
                store,
                owner or config.owner_id,
                on_error=lambda message, exc: errors.append(message),
            )
            try:
                await sync.load()
                action(sync)
                await sync.drain()
            finally:
                sync.close()

    try:
        asyncio.run(_run())
    except PlannerError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    if errors:
        for message in errors:
            click.echo(f"Error: {message}", err=True)
        raise SystemExit(1)


@click.group(cls=_DefaultGroup)
@click.option("--no-color", is_flag=True, help="Disable color output")
@click.version_option(package_name="tui-planner")
@click.pass_context
def main(ctx, no_color: bool) -> None:
    """TUI Planner - hierarchical tasks on a Gantt chart in the terminal."""
    ctx.ensure_object(dict)
    ctx.obj["no_color"] = no_color
    setup_logging(console_level=logging.WARNING)


@main.command()
@click.argument("path", default=".", type=click.Path())
@click.option("--owner", default=None, help="Owner id whose tasks to open")
@click.option("--memory", is_flag=True, help="Use an empty in-memory store; nothing is saved")
@click.option("--log-level", default=None, help="Log file level (DEBUG, INFO, ...)")
@click.pass_context
def run(ctx, path: str, owner: str | None, memory: bool, log_level: str | None) -> None:
    """Open the planner for the project in PATH."""
    from tui_planner.app import PlannerApp
    from tui_planner.config import CONFIG_DIR, load_settings
    from tui_planner.store import MemoryStore

    project_dir = Path(path).resolve()
    if not project_dir.exists():
        if click.confirm(f"'{project_dir}' does not exist. Create it?"):
            project_dir.mkdir(parents=True, exist_ok=True)
            click.echo(f"Created {project_dir}")
        else:
            raise SystemExit(0)
    elif not project_dir.is_dir():
        click.echo(f"Error: '{project_dir}' is not a directory.", err=True)
        raise SystemExit(1)

    settings = load_settings(project_dir)
    level = level_from_name(log_level or settings.get("log_level", "INFO"))
    # The terminal belongs to the app; log to the file only
    setup_logging(log_dir=project_dir / CONFIG_DIR, console_level=None, file_level=level)

    app = PlannerApp(
        project_dir=project_dir,
        owner_id=owner,
        store=MemoryStore() if memory else None,
        no_color=ctx.obj["no_color"],
    )
    app.run()
    if app.return_code:
        raise SystemExit(app.return_code)


@main.command("init")
@click.argument("path", default=".", type=click.Path())
@click.option("--name", prompt="Project name", default="My Project", help="Project name")
@click.option("--owner", default="local", help="Owner id for the task document")
def init_cmd(path: str, name: str, owner: str) -> None:
    """Initialize a new project (config.toml + a sample plan)."""
    from tui_planner.config import CONFIG_DIR, CONFIG_FILE, save_config, store_dir
    from tui_planner.errors import StoreError
    from tui_planner.models import ProjectConfig
    from tui_planner.store import JsonFileStore

    project_dir = Path(path).resolve()
    config_path = project_dir / CONFIG_DIR / CONFIG_FILE
    if config_path.exists():
        click.echo(f"Project already initialized: {config_path}", err=True)
        raise SystemExit(1)

    project_dir.mkdir(parents=True, exist_ok=True)
    config = ProjectConfig(name=name, owner_id=owner)
    save_config(project_dir, config)
    click.echo(f"Created {config_path}")

    try:
        with JsonFileStore(store_dir(project_dir, config)) as store:
            asyncio.run(store.save_tree(owner, build_sample_tree(date.today())))
            click.echo(f"Created {store.path_for(owner)}")
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"\nProject initialized at {project_dir}")
    click.echo("Run 'tui-planner' to open the project.")


@main.command("tree")
@click.argument("path", default=".", type=click.Path())
@click.option("--owner", default=None, help="Owner id whose tasks to show")
@click.pass_context
def tree_cmd(ctx, path: str, owner: str | None) -> None:
    """Print the task tree."""
    from rich.console import Console
    from rich.markup import escape
    from rich.tree import Tree

    from tui_planner.models import format_date

    config, tree = _load_tree(_project_dir(path), owner)
    console = Console(no_color=ctx.obj["no_color"], highlight=False)
    if not tree:
        console.print("No tasks.")
        return

    def _label(task) -> str:
        text = f"{task.status_icon} {escape(task.name)} [dim]({task.id})[/dim]"
        if task.is_scheduled:
            text += (
                f"  {format_date(task.start_date, config.date_format)}"
                f" → {format_date(task.end_date, config.date_format)}"
            )
        return text

    def _add(branch, tasks) -> None:
        for task in tasks:
            _add(branch.add(_label(task)), task.subtasks)

    root = Tree(f"[bold]{escape(config.name or 'Tasks')}[/bold]")
    _add(root, tree)
    console.print(root)


@main.command("progress")
@click.argument("path", default=".", type=click.Path())
@click.option("--owner", default=None, help="Owner id whose tasks to count")
def progress_cmd(path: str, owner: str | None) -> None:
    """Print how many tasks are completed."""
    from tui_planner.tree import calculate_progress

    _, tree = _load_tree(_project_dir(path), owner)
    progress = calculate_progress(tree)
    click.echo(f"{progress.completed}/{progress.total} ({progress.percent:.0f}%)")


@main.command("shift", context_settings={"ignore_unknown_options": True})
@click.argument("task_id")
@click.argument("days", type=int)
@click.option("--path", "path", default=".", type=click.Path(), help="Project directory")
@click.option("--owner", default=None, help="Owner id whose tasks to change")
def shift_cmd(task_id: str, days: int, path: str, owner: str | None) -> None:
    """Move a scheduled task and its scheduled subtasks by DAYS."""
    from tui_planner.gesture import build_drag_updates
    from tui_planner.tree import find_task

    shifted: list[int] = []

    def _shift(sync) -> None:
        task = find_task(sync.tree, task_id)
        if task is None:
            raise click.ClickException(f"no task with id {task_id!r}")
        if not task.is_scheduled:
            raise click.ClickException(f"task {task_id!r} has no dates")
        updates = build_drag_updates(task, days)
        if updates:
            sync.update_many(updates)
        shifted.append(len(updates))

    _mutate(_project_dir(path), owner, _shift)
    if shifted and shifted[0]:
        click.echo(f"Shifted {shifted[0]} task(s) by {days} day(s).")
    else:
        click.echo("Nothing to shift.")


@main.command("reparent")
@click.argument("task_id")
@click.option("--parent", "parent_id", default=None, help="New parent id (omit for top level)")
@click.option("--path", "path", default=".", type=click.Path(), help="Project directory")
@click.option("--owner", default=None, help="Owner id whose tasks to change")
def reparent_cmd(task_id: str, parent_id: str | None, path: str, owner: str | None) -> None:
    """Move a task, with its subtasks, under another task."""
    from tui_planner.errors import ReparentCycleError
    from tui_planner.tree import check_reparent, find_task

    def _reparent(sync) -> None:
        if find_task(sync.tree, task_id) is None:
            raise click.ClickException(f"no task with id {task_id!r}")
        if parent_id is not None and find_task(sync.tree, parent_id) is None:
            raise click.ClickException(f"no task with id {parent_id!r}")
        try:
            check_reparent(sync.tree, task_id, parent_id)
        except ReparentCycleError as e:
            raise click.ClickException(str(e))
        sync.reparent(task_id, parent_id)

    _mutate(_project_dir(path), owner, _reparent)
    click.echo(f"Moved {task_id} under {parent_id or 'the top level'}.")


@main.command("move")
@click.argument("task_id")
@click.option("--to-owner", "to_owner", required=True, help="Owner id that receives the task")
@click.option("--path", "path", default=".", type=click.Path(), help="Project directory")
@click.option("--owner", default=None, help="Owner id the task is taken from")
def move_cmd(task_id: str, to_owner: str, path: str, owner: str | None) -> None:
    """Move a task, with its subtasks, to the top level of another owner's tree."""
    from tui_planner.config import load_config, store_dir
    from tui_planner.errors import PlannerError
    from tui_planner.store import JsonFileStore
    from tui_planner.tree import find_task, move_task_between_trees

    project_dir = _project_dir(path)
    config = load_config(project_dir)
    source_owner = owner or config.owner_id
    if to_owner == source_owner:
        raise click.ClickException(f"task {task_id!r} already belongs to {to_owner}")

    async def _run() -> None:
        with JsonFileStore(store_dir(project_dir, config)) as store:
            source = await store.load_tree(source_owner)
            target = await store.load_tree(to_owner)
            if find_task(source, task_id) is None:
                raise click.ClickException(f"no task with id {task_id!r}")
            if find_task(target, task_id) is not None:
                raise click.ClickException(f"{to_owner} already has a task with id {task_id!r}")
            source, target = move_task_between_trees(source, target, task_id)
            # Target first: a failure in between leaves a copy, never a loss
            await store.save_tree(to_owner, target)
            await store.save_tree(source_owner, source)

    try:
        asyncio.run(_run())
    except PlannerError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Moved {task_id} from {source_owner} to {to_owner}.")
