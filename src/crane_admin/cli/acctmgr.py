"""cacctmgr: manage accounts, users and QoS policies.

Usage:
    cacctmgr add {account,user,qos} --name NAME [options]
    cacctmgr delete {account,user,qos} NAME
    cacctmgr modify {account,user,qos} --name NAME [modifications]
    cacctmgr show {account,user,qos}
    cacctmgr find {account,user,qos} NAME
    cacctmgr block {account,user} NAME
    cacctmgr unblock {account,user} NAME
"""

from __future__ import annotations

import sys
from typing import Annotated, List, Optional

import cyclopts

from .. import accounting, query
from ..commands import validate_invocation
from ..models import EntityKind
from ..modify import apply_changes
from ..resolver import (
    AccountModifyFlags,
    ListOperationFlags,
    QosModifyFlags,
    UserModifyFlags,
    resolve_account_changes,
    resolve_qos_changes,
    resolve_user_changes,
)
from ..values import MAX_DURATION_SECONDS, UNLIMITED_UINT32, split_list
from .app import ConfigOption, VerboseOption, _get_version, run
from .formatters import (
    parse_format,
    print_account_tree,
    print_accounts_table,
    print_lines,
    print_not_found,
    print_qos_table,
    print_success,
    print_users_table,
    render_format_string,
)
from .utils import get_backend, operator_uid, setup_logging

app = cyclopts.App(
    name="cacctmgr",
    help="Manage accounts, users and QoS policies of a Crane cluster.",
    version=_get_version(),
)

add_app = cyclopts.App(name="add", help="Add a new account, user or QoS.")
delete_app = cyclopts.App(name="delete", help="Delete an account, user or QoS.")
modify_app = cyclopts.App(name="modify", help="Modify attributes of an account, user or QoS.")
show_app = cyclopts.App(name="show", help="Display all records of an entity kind.")
find_app = cyclopts.App(name="find", help="Display one account, user or QoS.")
block_app = cyclopts.App(name="block", help="Block an account or a user.")
unblock_app = cyclopts.App(name="unblock", help="Unblock an account or a user.")

app.command(add_app)
app.command(delete_app, name=["delete", "remove"])
app.command(modify_app)
app.command(show_app, name=["show", "list"])
app.command(find_app, name=["find", "search", "query"])
app.command(block_app)
app.command(unblock_app)

NameOption = Annotated[
    Optional[str],
    cyclopts.Parameter(name=["--name", "-N"], help="Name of the entity."),
]
DescriptionOption = Annotated[
    Optional[str],
    cyclopts.Parameter(name=["--description", "-D"], help="Set the description."),
]
DefaultQosOption = Annotated[
    Optional[str],
    cyclopts.Parameter(name=["--default-qos", "-Q"], help="Set the default QoS."),
]
ForceOption = Annotated[
    bool,
    cyclopts.Parameter(name=["--force", "-F"], negative=(), help="Forced operation."),
]
SetPartitionOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name="--set_allowed_partition",
        help="Overwrite allowed partitions (comma separated list).",
    ),
]
AddPartitionOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name="--add_allowed_partition",
        help="Add partitions to the allowed partition list (comma separated list).",
    ),
]
DeletePartitionOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name="--delete_allowed_partition",
        help="Delete partitions from the allowed partition list (comma separated list).",
    ),
]
SetQosOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name="--set_allowed_qos_list",
        help="Overwrite the allowed QoS list (comma separated list).",
    ),
]
AddQosOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name="--add_allowed_qos_list",
        help="Add QoS to the allowed QoS list (comma separated list).",
    ),
]
DeleteQosOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name="--delete_allowed_qos_list",
        help="Delete QoS from the allowed QoS list (comma separated list).",
    ),
]
PriorityOption = Annotated[
    Optional[int],
    cyclopts.Parameter(name=["--priority", "-P"], help="Job priority of the QoS."),
]
MaxJobsOption = Annotated[
    Optional[int],
    cyclopts.Parameter(name=["--max_jobs_per_user", "-J"], help="Maximum number of jobs per user."),
]
MaxCpusOption = Annotated[
    Optional[int],
    cyclopts.Parameter(name=["--max_cpus_per_user", "-c"], help="Maximum number of CPUs per user."),
]
MaxTimeOption = Annotated[
    Optional[int],
    cyclopts.Parameter(
        name=["--max_time_limit_per_task", "-T"],
        help="Maximum time limit per job, in seconds.",
    ),
]
AccountOption = Annotated[
    Optional[str],
    cyclopts.Parameter(name=["--account", "-A"], help="Account the user belongs to."),
]


def _split(value: Optional[str]) -> List[str]:
    return split_list(value) if value else []


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


@add_app.command(name="account")
def add_account(
    name: NameOption = None,
    description: DescriptionOption = None,
    parent: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--parent", "-P"], help="Parent account."),
    ] = None,
    partition: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--partition", "-p"], help="Allowed partitions (comma separated list)."),
    ] = None,
    default_qos: DefaultQosOption = None,
    qos: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--qos", "-q"], help="Allowed QoS list (comma separated list)."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Add a new account."""
    setup_logging(verbose)
    validate_invocation(
        ("add", "account"),
        {
            "name": name,
            "description": description,
            "parent": parent,
            "partition": partition,
            "default-qos": default_qos,
            "qos": qos,
        },
    )
    record = accounting.build_account(
        name=name,
        description=description or "",
        parent=parent or "",
        partitions=_split(partition),
        default_qos=default_qos or "",
        qos_list=_split(qos),
    )
    with get_backend(config) as backend:
        accounting.add_entity(backend, EntityKind.ACCOUNT, record)
    print_success(f"Add account {name} success.")


@add_app.command(name="user")
def add_user(
    name: NameOption = None,
    account: AccountOption = None,
    partition: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--partition", "-p"], help="Allowed partitions (comma separated list)."),
    ] = None,
    level: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--level", "-L"], help="Admin level (none/operator/admin)."),
    ] = None,
    coordinate: Annotated[
        bool,
        cyclopts.Parameter(
            name=["--coordinate", "-c"],
            negative=(),
            help="Make the user a coordinator of the account.",
        ),
    ] = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Add a user to an account."""
    setup_logging(verbose)
    validate_invocation(
        ("add", "user"),
        {
            "name": name,
            "account": account,
            "partition": partition,
            "level": level,
            "coordinate": coordinate,
        },
    )
    record = accounting.build_user(
        name=name,
        account=account,
        partitions=_split(partition),
        level=level or "none",
        coordinator=coordinate,
    )
    with get_backend(config) as backend:
        accounting.add_entity(backend, EntityKind.USER, record)
    print_success(f"Add user {name} to account {account} success.")


@add_app.command(name="qos")
def add_qos(
    name: NameOption = None,
    description: DescriptionOption = None,
    priority: PriorityOption = None,
    max_jobs_per_user: MaxJobsOption = None,
    max_cpus_per_user: MaxCpusOption = None,
    max_time_limit_per_task: MaxTimeOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Add a new QoS policy. Unset limits are unlimited."""
    setup_logging(verbose)
    validate_invocation(
        ("add", "qos"),
        {
            "name": name,
            "description": description,
            "priority": priority,
            "max_jobs_per_user": max_jobs_per_user,
            "max_cpus_per_user": max_cpus_per_user,
            "max_time_limit_per_task": max_time_limit_per_task,
        },
    )
    record = accounting.build_qos(
        name=name,
        description=description or "",
        priority=priority if priority is not None else 0,
        max_jobs_per_user=UNLIMITED_UINT32 if max_jobs_per_user is None else max_jobs_per_user,
        max_cpus_per_user=UNLIMITED_UINT32 if max_cpus_per_user is None else max_cpus_per_user,
        max_time_limit_per_task=(
            MAX_DURATION_SECONDS if max_time_limit_per_task is None else max_time_limit_per_task
        ),
    )
    with get_backend(config) as backend:
        accounting.add_entity(backend, EntityKind.QOS, record)
    print_success(f"Add qos {name} success.")


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


@delete_app.command(name="account")
def delete_account(
    name: Annotated[str, cyclopts.Parameter(help="Account to delete.")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Delete an account."""
    setup_logging(verbose)
    validate_invocation(("delete", "account"), {"name": name})
    with get_backend(config) as backend:
        accounting.delete_entity(backend, EntityKind.ACCOUNT, name)
    print_success(f"Remove account {name} success.")


@delete_app.command(name="user")
def delete_user(
    name: Annotated[str, cyclopts.Parameter(help="User to delete.")],
    account: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--account", "-A"], help="Remove the user from this account only."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Delete a user, or remove it from one account."""
    setup_logging(verbose)
    validate_invocation(("delete", "user"), {"name": name, "account": account})
    with get_backend(config) as backend:
        accounting.delete_entity(backend, EntityKind.USER, name, account=account or "")
    print_success(f"Remove user {name} success.")


@delete_app.command(name="qos")
def delete_qos(
    name: Annotated[str, cyclopts.Parameter(help="QoS to delete.")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Delete a QoS policy."""
    setup_logging(verbose)
    validate_invocation(("delete", "qos"), {"name": name})
    with get_backend(config) as backend:
        accounting.delete_entity(backend, EntityKind.QOS, name)
    print_success(f"Remove qos {name} success.")


# ---------------------------------------------------------------------------
# modify
# ---------------------------------------------------------------------------


def _print_modified(kind: EntityKind, name: str, outcome) -> None:
    attributes = ", ".join(change.attribute for change in outcome.applied)
    print_success(f"Modify {kind.value} {name} success ({attributes}).")


@modify_app.command(name="account")
def modify_account(
    name: NameOption = None,
    description: DescriptionOption = None,
    default_qos: DefaultQosOption = None,
    set_allowed_partition: SetPartitionOption = None,
    add_allowed_partition: AddPartitionOption = None,
    delete_allowed_partition: DeletePartitionOption = None,
    set_allowed_qos_list: SetQosOption = None,
    add_allowed_qos_list: AddQosOption = None,
    delete_allowed_qos_list: DeleteQosOption = None,
    force: ForceOption = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Modify an account. Each attribute change is sent separately, in a fixed order."""
    setup_logging(verbose)
    validate_invocation(
        ("modify", "account"),
        {
            "name": name,
            "description": description,
            "default-qos": default_qos,
            "set_allowed_partition": set_allowed_partition,
            "add_allowed_partition": add_allowed_partition,
            "delete_allowed_partition": delete_allowed_partition,
            "set_allowed_qos_list": set_allowed_qos_list,
            "add_allowed_qos_list": add_allowed_qos_list,
            "delete_allowed_qos_list": delete_allowed_qos_list,
            "force": force,
        },
    )
    changes = resolve_account_changes(
        AccountModifyFlags(
            description=description,
            partitions=ListOperationFlags(
                set=set_allowed_partition,
                add=add_allowed_partition,
                delete=delete_allowed_partition,
            ),
            qos_list=ListOperationFlags(
                set=set_allowed_qos_list,
                add=add_allowed_qos_list,
                delete=delete_allowed_qos_list,
            ),
            default_qos=default_qos,
        )
    )
    with get_backend(config) as backend:
        outcome = apply_changes(backend, EntityKind.ACCOUNT, name, changes, operator_uid(), force=force)
    _print_modified(EntityKind.ACCOUNT, name, outcome)


@modify_app.command(name="user")
def modify_user(
    name: NameOption = None,
    partition: Annotated[
        Optional[str],
        cyclopts.Parameter(
            name=["--partition", "-p"],
            help="Partition the change applies to (default: all partitions).",
        ),
    ] = None,
    account: Annotated[
        Optional[str],
        cyclopts.Parameter(
            name=["--account", "-A"],
            help="Account the change applies to (default: the user's default account).",
        ),
    ] = None,
    default_qos: DefaultQosOption = None,
    admin_level: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--admin_level", "-L"], help="Set admin level (none/operator/admin)."),
    ] = None,
    set_allowed_partition: SetPartitionOption = None,
    add_allowed_partition: AddPartitionOption = None,
    delete_allowed_partition: DeletePartitionOption = None,
    set_allowed_qos_list: SetQosOption = None,
    add_allowed_qos_list: AddQosOption = None,
    delete_allowed_qos_list: DeleteQosOption = None,
    force: ForceOption = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Modify a user within an account."""
    setup_logging(verbose)
    validate_invocation(
        ("modify", "user"),
        {
            "name": name,
            "partition": partition,
            "account": account,
            "default-qos": default_qos,
            "admin_level": admin_level,
            "set_allowed_partition": set_allowed_partition,
            "add_allowed_partition": add_allowed_partition,
            "delete_allowed_partition": delete_allowed_partition,
            "set_allowed_qos_list": set_allowed_qos_list,
            "add_allowed_qos_list": add_allowed_qos_list,
            "delete_allowed_qos_list": delete_allowed_qos_list,
            "force": force,
        },
    )
    changes = resolve_user_changes(
        UserModifyFlags(
            partitions=ListOperationFlags(
                set=set_allowed_partition,
                add=add_allowed_partition,
                delete=delete_allowed_partition,
            ),
            qos_list=ListOperationFlags(
                set=set_allowed_qos_list,
                add=add_allowed_qos_list,
                delete=delete_allowed_qos_list,
            ),
            default_qos=default_qos,
            admin_level=admin_level,
        )
    )
    with get_backend(config) as backend:
        outcome = apply_changes(
            backend,
            EntityKind.USER,
            name,
            changes,
            operator_uid(),
            account=account or "",
            partition=partition or "",
            force=force,
        )
    _print_modified(EntityKind.USER, name, outcome)


@modify_app.command(name="qos")
def modify_qos(
    name: NameOption = None,
    description: DescriptionOption = None,
    priority: PriorityOption = None,
    max_jobs_per_user: MaxJobsOption = None,
    max_cpus_per_user: MaxCpusOption = None,
    max_time_limit_per_task: MaxTimeOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Modify a QoS policy."""
    setup_logging(verbose)
    validate_invocation(
        ("modify", "qos"),
        {
            "name": name,
            "description": description,
            "priority": priority,
            "max_jobs_per_user": max_jobs_per_user,
            "max_cpus_per_user": max_cpus_per_user,
            "max_time_limit_per_task": max_time_limit_per_task,
        },
    )
    changes = resolve_qos_changes(
        QosModifyFlags(
            description=description,
            priority=priority,
            max_jobs_per_user=max_jobs_per_user,
            max_cpus_per_user=max_cpus_per_user,
            max_time_limit_per_task=max_time_limit_per_task,
        )
    )
    with get_backend(config) as backend:
        outcome = apply_changes(backend, EntityKind.QOS, name, changes, operator_uid())
    _print_modified(EntityKind.QOS, name, outcome)


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@show_app.command(name="account")
def show_account(
    noheader: Annotated[
        bool,
        cyclopts.Parameter(name=["--noheader", "-n"], negative=(), help="Do not print the header line."),
    ] = False,
    output_format: Annotated[
        Optional[str],
        cyclopts.Parameter(
            name=["--format", "-o"],
            help=(
                "Output format. Fields are %n name, %d description, %P allowed partitions, "
                "%Q default QoS, %q allowed QoS list; %.<width><field> sets a minimum width."
            ),
        ),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display all accounts and the account tree."""
    setup_logging(verbose)
    validate_invocation(("show", "account"), {"noheader": noheader, "format": output_format})
    if output_format is not None:
        parse_format(output_format)

    with get_backend(config) as backend:
        accounts = query.list_accounts(backend)

    if output_format is not None:
        print_lines(render_format_string(output_format, accounts, noheader=noheader))
        return
    if not accounts:
        print_not_found("No account is available.")
        return
    print_accounts_table(accounts)
    print_account_tree(query.build_account_tree(accounts))


@show_app.command(name="user")
def show_user(
    account: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--account", "-A"], help="Only users of this account."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display all users."""
    setup_logging(verbose)
    validate_invocation(("show", "user"), {"account": account})
    with get_backend(config) as backend:
        users = query.list_users(backend, account=account or "")
    if not users:
        print_not_found("No user is available.")
        return
    print_users_table(users)


@show_app.command(name="qos")
def show_qos(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display all QoS policies."""
    setup_logging(verbose)
    validate_invocation(("show", "qos"), {})
    with get_backend(config) as backend:
        qos_list = query.list_qos(backend)
    if not qos_list:
        print_not_found("No qos is available.")
        return
    print_qos_table(qos_list)


# ---------------------------------------------------------------------------
# find
# ---------------------------------------------------------------------------


@find_app.command(name="account")
def find_account(
    name: Annotated[str, cyclopts.Parameter(help="Account name.")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display one account."""
    setup_logging(verbose)
    validate_invocation(("find", "account"), {"name": name})
    with get_backend(config) as backend:
        account = query.find_account(backend, name)
    if account is None:
        print_not_found(f"Account {name} not found.")
        return
    print_accounts_table([account])


@find_app.command(name="user")
def find_user(
    name: Annotated[str, cyclopts.Parameter(help="User name.")],
    account: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--account", "-A"], help="Only the user's association with this account."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display one user."""
    setup_logging(verbose)
    validate_invocation(("find", "user"), {"name": name, "account": account})
    with get_backend(config) as backend:
        users = query.find_users(backend, name, account=account or "")
    if not users:
        print_not_found(f"User {name} not found.")
        return
    print_users_table(users)


@find_app.command(name="qos")
def find_qos(
    name: Annotated[str, cyclopts.Parameter(help="QoS name.")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Display one QoS policy."""
    setup_logging(verbose)
    validate_invocation(("find", "qos"), {"name": name})
    with get_backend(config) as backend:
        qos = query.find_qos(backend, name)
    if qos is None:
        print_not_found(f"Qos {name} not found.")
        return
    print_qos_table([qos])


# ---------------------------------------------------------------------------
# block / unblock
# ---------------------------------------------------------------------------


def _set_blocked(
    verb: str,
    kind: EntityKind,
    name: str,
    account: Optional[str],
    config: Optional[str],
) -> None:
    values = {"name": name}
    if kind is EntityKind.USER:
        values["account"] = account
    validate_invocation((verb, kind.value), values)
    with get_backend(config) as backend:
        accounting.set_blocked(
            backend,
            kind,
            name,
            blocked=(verb == "block"),
            uid=operator_uid(),
            account=account or "",
        )
    print_success(f"{verb.capitalize()} {kind.value} {name} success.")


@block_app.command(name="account")
def block_account(
    name: Annotated[str, cyclopts.Parameter(help="Account name.")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Block an account; its jobs can no longer be submitted."""
    setup_logging(verbose)
    _set_blocked("block", EntityKind.ACCOUNT, name, None, config)


@block_app.command(name="user")
def block_user(
    name: Annotated[str, cyclopts.Parameter(help="User name.")],
    account: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--account", "-A"], help="Block the user under this account."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Block a user under an account."""
    setup_logging(verbose)
    _set_blocked("block", EntityKind.USER, name, account, config)


@unblock_app.command(name="account")
def unblock_account(
    name: Annotated[str, cyclopts.Parameter(help="Account name.")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Unblock an account."""
    setup_logging(verbose)
    _set_blocked("unblock", EntityKind.ACCOUNT, name, None, config)


@unblock_app.command(name="user")
def unblock_user(
    name: Annotated[str, cyclopts.Parameter(help="User name.")],
    account: Annotated[
        Optional[str],
        cyclopts.Parameter(name=["--account", "-A"], help="Unblock the user under this account."),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Unblock a user under an account."""
    setup_logging(verbose)
    _set_blocked("unblock", EntityKind.USER, name, account, config)


def main(tokens: Optional[List[str]] = None) -> int:
    """Run cacctmgr and return its exit code."""
    return run(app, tokens)


def cli() -> None:
    """Console-script entry point for cacctmgr."""
    sys.exit(main())
