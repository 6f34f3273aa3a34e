"""ccontrol: display and update live cluster state.

Usage:
    ccontrol show node [NAME]
    ccontrol show partition [NAME]
    ccontrol show job [JOB_ID]
    ccontrol show config
    ccontrol update job --job ID [--time-limit D-HH:MM:SS] [--priority N]
    ccontrol update node --name NODE --state {drain,resume} [--reason TEXT]
"""

from __future__ import annotations

import sys
from typing import Annotated, List, Optional

import cyclopts

from .. import control, query
from ..commands import validate_invocation
from ..values import parse_time_limit
from .app import ConfigOption, VerboseOption, _get_version, run
from .formatters import (
    flatten,
    print_lines,
    print_not_found,
    print_success,
    render_node,
    render_partition,
    render_task,
)
from .utils import get_backend, operator_uid, setup_logging

app = cyclopts.App(
    name="ccontrol",
    help="Display and modify the state of a Crane cluster.",
    version=_get_version(),
)

show_app = cyclopts.App(name="show", help="Display the state of nodes, partitions, jobs or the configuration.")
update_app = cyclopts.App(name="update", help="Modify jobs or nodes.")

app.command(show_app)
app.command(update_app)


@show_app.command(name="node")
def show_node(
    name: Annotated[
        Optional[str],
        cyclopts.Parameter(help="Node name; all nodes when omitted."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display the state of nodes."""
    setup_logging(verbose)
    validate_invocation(("show", "node"), {"name": name})
    with get_backend(config) as backend:
        nodes = query.query_nodes(backend, name or "")

    if not nodes:
        print_not_found(f"Node {name} not found." if name else "No node is available.")
        return
    print_lines(render_node(node) for node in nodes)


@show_app.command(name="partition")
def show_partition(
    name: Annotated[
        Optional[str],
        cyclopts.Parameter(help="Partition name; all partitions when omitted."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display the state of partitions."""
    setup_logging(verbose)
    validate_invocation(("show", "partition"), {"name": name})
    with get_backend(config) as backend:
        partitions = query.query_partitions(backend, name or "")

    if not partitions:
        print_not_found(f"Partition {name} not found." if name else "No partition is available.")
        return
    print_lines(render_partition(partition) for partition in partitions)


@show_app.command(name="job")
def show_job(
    job: Annotated[
        Optional[int],
        cyclopts.Parameter(help="Job id; all running jobs when omitted."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display jobs."""
    setup_logging(verbose)
    validate_invocation(("show", "job"), {"job": job})
    with get_backend(config) as backend:
        tasks = query.query_tasks(backend, job)

    if not tasks:
        print_not_found("No job is running." if job is None else f"Job {job} is not running.")
        return
    print_lines(render_task(task) for task in tasks)


@show_app.command(name="config")
def show_config(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print the configuration file as flattened ``key.path = value`` lines."""
    setup_logging(verbose)
    validate_invocation(("show", "config"), {})
    print_lines(flatten(control.load_config_tree(config)))


@update_app.command(name="job")
def update_job(
    job: Annotated[
        Optional[int],
        cyclopts.Parameter(name=["--job", "-J"], help="Job id."),
    ] = None,
    time_limit: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--time-limit", "-T"], help="New time limit, HH:MM:SS or D-HH:MM:SS."),
    ] = None,
    priority: Annotated[
        Optional[int],
        cyclopts.Parameter(name=["--priority", "-P"], help="New job priority."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Change the time limit or priority of a job."""
    setup_logging(verbose)
    validate_invocation(
        ("update", "job"),
        {"job": job, "time-limit": time_limit, "priority": priority},
    )
    if time_limit is not None:
        parse_time_limit(time_limit)
    with get_backend(config) as backend:
        if time_limit is not None:
            control.change_task_time_limit(backend, job, time_limit, operator_uid())
            print_success("Change time limit success.")
        if priority is not None:
            control.change_task_priority(backend, job, priority, operator_uid())
            print_success("Change priority success.")


@update_app.command(name="node")
def update_node(
    name: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--name", "-n"], help="Node name."),
    ] = None,
    state: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--state", "-t"], help="New state: drain or resume."),
    ] = None,
    reason: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--reason", "-r"], help="Reason for draining the node."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Drain or resume a node."""
    setup_logging(verbose)
    validate_invocation(("update", "node"), {"name": name, "state": state, "reason": reason})
    control.resolve_node_state(state, reason or "")
    with get_backend(config) as backend:
        control.change_node_state(backend, name, state, reason or "")
    print_success("Change node state success.")


def main(tokens: Optional[List[str]] = None) -> int:
    """Run ccontrol and return its exit code."""
    return run(app, tokens)


def cli() -> None:
    """Console-script entry point for ccontrol."""
    sys.exit(main())
