"""Inspect commands -- examine the specification as the generator sees it.

Provides the ``escligen inspect`` sub-command group with read-only views
of the endpoint catalog and the type resolution: namespaces, endpoints,
reachable types, and a single endpoint's routes and arguments. Every
sub-command loads the specification named by the usual configuration
(``--spec``/``--branch``, environment, ``./escligen.json``) and runs the
pure pipeline stages without rendering or writing anything.
"""

from __future__ import annotations

from typing import Optional

import typer

from escligen.exceptions import GeneratorError
from escligen.generator.naming import cli_name
from escligen.output import error, get_output, info

inspect_app = typer.Typer(no_args_is_help=True)


def _load_plan(spec: Optional[str], branch: Optional[str]):  # noqa: ANN202
    """Run the pure pipeline stages for the configured specification.

    Raises:
        typer.Exit: With the error's exit code when loading or any stage
            fails.
    """
    from escligen.config import resolve_config
    from escligen.generator.pipeline import load_specification, plan_generation

    try:
        config = resolve_config(spec=spec, branch=branch)
        return plan_generation(load_specification(config), config)
    except GeneratorError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _command_path(segments: tuple[str, ...]) -> str:
    return " ".join(cli_name(s) for s in segments)


_SPEC_OPTION = typer.Option(None, "--spec", "-s", help="schema.json URL or file path.")
_BRANCH_OPTION = typer.Option(None, "--branch", "-b", help="Specification branch.")


@inspect_app.command("namespaces")
def inspect_namespaces(
    spec: Optional[str] = _SPEC_OPTION,
    branch: Optional[str] = _BRANCH_OPTION,
) -> None:
    """List command namespaces with their module and endpoint count.

    Example::

        escligen inspect namespaces --spec ./schema.json
    """
    plan = _load_plan(spec, branch)

    rows = [
        [".".join(ns.path) or "(root)", ns.module, str(sum(1 for _ in ns.leaves()))]
        for ns in sorted(plan.tree.namespaces(), key=lambda n: n.path)
    ]
    get_output().print_table(
        ["Namespace", "Module", "Commands"], rows, title=f"Namespaces ({len(rows)})"
    )


@inspect_app.command("endpoints")
def inspect_endpoints(
    spec: Optional[str] = _SPEC_OPTION,
    branch: Optional[str] = _BRANCH_OPTION,
) -> None:
    """List all included endpoints with their routes and availability.

    Example::

        escligen inspect endpoints --branch 8.15
    """
    plan = _load_plan(spec, branch)

    rows: list[list[str]] = []
    for entry in plan.catalog.endpoints:
        endpoint = entry.endpoint
        rows.append([
            endpoint.name,
            _command_path(entry.namespace + (entry.leaf,)),
            ", ".join(f"{'|'.join(r.methods)} {r.template}" for r in entry.routes),
            "Yes" if entry.has_body else "",
            "Yes" if endpoint.deprecation is not None else "",
            endpoint.stability or "-",
        ])

    get_output().print_table(
        ["Endpoint", "Command", "Routes", "Body", "Deprecated", "Stability"],
        rows,
        title=f"{plan.spec.info.title} -- Endpoints ({len(rows)})",
    )
    if plan.catalog.excluded:
        info(f"Excluded: {', '.join(plan.catalog.excluded)}")


@inspect_app.command("types")
def inspect_types(
    spec: Optional[str] = _SPEC_OPTION,
    branch: Optional[str] = _BRANCH_OPTION,
) -> None:
    """List the struct types reachable from the included endpoints."""
    plan = _load_plan(spec, branch)

    rows: list[list[str]] = []
    for type_id in plan.resolver.visited_types:
        definition = plan.spec.get_type(type_id)
        kind = getattr(definition, "schema_kind", definition.kind if definition else "?")
        rows.append([type_id, kind])

    get_output().print_table(["Type", "Kind"], rows, title=f"Types ({len(rows)})")


@inspect_app.command("endpoint")
def inspect_endpoint(
    name: str = typer.Argument(..., help="Endpoint name, e.g. indices.create."),
    spec: Optional[str] = _SPEC_OPTION,
    branch: Optional[str] = _BRANCH_OPTION,
) -> None:
    """Show one endpoint's routes, arguments and payload as JSON.

    Example::

        escligen inspect endpoint indices.create --spec ./schema.json
    """
    plan = _load_plan(spec, branch)

    entry = plan.catalog.get(name)
    if entry is None:
        error(f"Unknown endpoint: {name}")
        raise typer.Exit(code=2)

    leaf = next(leaf for leaf in plan.tree.leaves() if leaf.endpoint == name)
    binding = next(b for b in plan.bindings if b.endpoint == name)
    get_output().print_json({
        "endpoint": name,
        "command": _command_path(entry.namespace + (entry.leaf,)),
        "binding": binding.qualified_name,
        "routes": [r.model_dump(mode="json", exclude={"segments"}) for r in entry.routes],
        "arguments": [a.model_dump(mode="json") for a in leaf.arguments],
        "payload": leaf.payload.model_dump(mode="json") if leaf.payload else None,
        "help": leaf.help,
    })
