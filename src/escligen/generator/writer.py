"""Render the generated package and write it to disk atomically.

Rendering and writing are separate steps:

1. :func:`render_package` turns the command tree, enums and bindings into
   a ``{relative path: source text}`` mapping using the Jinja2 templates
   in ``generator/templates/``. Every collection is iterated in a fixed
   order (namespace, then endpoint name) and nothing time- or
   host-dependent is rendered, so identical input gives byte-identical
   output.
2. :func:`write_output` writes the mapping into a sibling temporary
   directory and swaps it into place. On failure the previous tree is
   restored and the temporary directory removed.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader, select_autoescape

from escligen import __version__
from escligen.exceptions import WriteError
from escligen.generator.naming import module_name
from escligen.generator.param_mapper import (
    argument_help,
    binding_annotation,
    default_display,
    python_annotation,
)
from escligen.models import (
    ArgumentDefinition,
    ArgumentKind,
    BindingDefinition,
    EnumDefinition,
    LeafCommand,
    NamespaceCommand,
)
from escligen.output import debug

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``generator/templates/``)."""

HEADER = f"# Generated by escligen {__version__}. DO NOT EDIT."


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_package(
    tree: NamespaceCommand,
    enums: list[EnumDefinition],
    bindings: list[BindingDefinition],
    package: str,
    cli_name: str,
    title: str = "",
) -> dict[str, str]:
    """Render every file of the generated package.

    Args:
        tree: Root of the command tree.
        enums: Closed enums, sorted by class name.
        bindings: One binding per leaf.
        package: Import name of the generated package.
        cli_name: Program name of the generated CLI.
        title: Specification title, used in docstrings.

    Returns:
        Source text keyed by POSIX path relative to the package directory.
    """
    env = _create_jinja_env()
    by_endpoint = {b.endpoint: b for b in bindings}
    namespaces = sorted(tree.namespaces(), key=lambda n: n.path)
    context: dict[str, Any] = {
        "header": HEADER,
        "package": package,
        "cli_name": cli_name,
        "title": title,
        "version": __version__,
    }

    tree_json = json.dumps(tree.model_dump(mode="json"), indent=2, ensure_ascii=False)
    ordered_bindings = [by_endpoint[name] for name in sorted(by_endpoint)]
    mounts = [(ns, module_name(ns.path[:-1])) for ns in namespaces if ns.path]

    files: dict[str, str] = {
        "__init__.py": _render(env, "package_init.py.j2", context, namespaces=namespaces),
        "enums.py": _render(env, "enums.py.j2", context, enums=enums),
        "namespaces/__init__.py": _render(
            env, "namespaces_init.py.j2", context, namespaces=namespaces
        ),
        "registry.py": _render(env, "registry.py.j2", context, bindings=ordered_bindings),
        "cli.py": _render(env, "cli.py.j2", context, namespaces=namespaces, mounts=mounts),
        "command_tree.json": tree_json + "\n",
    }

    for namespace in namespaces:
        leaves = [
            (child, by_endpoint[child.endpoint])
            for child in namespace.children
            if isinstance(child, LeafCommand)
        ]
        files[f"namespaces/{namespace.module}.py"] = _render(
            env,
            "namespace.py.j2",
            context,
            namespace=namespace,
            leaves=leaves,
            uses_enums=any(
                a.kind == ArgumentKind.CHOICE and a.enum_name
                for leaf, _ in leaves
                for a in leaf.arguments
            ),
        )

    debug(f"Rendered {len(files)} files for package {package}")
    return files


def _create_jinja_env() -> Environment:
    """Create the Jinja2 environment for the package templates.

    Python sources are never autoescaped; values are embedded through the
    ``pyrepr`` filter, which produces valid Python literals.
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("py.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["pyrepr"] = repr
    env.filters["annotation"] = python_annotation
    env.filters["binding_annotation"] = binding_annotation
    env.filters["arg_help"] = argument_help
    env.filters["default_display"] = default_display
    env.filters["flag_decl"] = flag_declaration
    env.filters["docstring"] = docstring_text
    return env


def _render(env: Environment, name: str, context: Mapping[str, Any], **extra: Any) -> str:
    return env.get_template(name).render(**context, **extra)


def flag_declaration(arg: ArgumentDefinition) -> str:
    """Click parameter declaration: ``--x`` or ``--x/--no-x`` for booleans."""
    assert arg.flag is not None
    if arg.kind == ArgumentKind.BOOLEAN:
        return f"{arg.flag}/--no-{arg.flag[2:]}"
    return arg.flag


def docstring_text(text: str) -> str:
    """Make *text* safe inside a triple-quoted docstring."""
    return " ".join(text.split()).replace("\\", "\\\\").replace('"', '\\"')


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def write_output(files: Mapping[str, str], output_dir: str | Path) -> Path:
    """Write *files* under *output_dir*, replacing its previous contents.

    Every file is encoded before anything touches the disk. The files are
    then written to a temporary directory next to *output_dir*, which is
    swapped into place. If anything fails, the previous tree is restored
    and the temporary directory removed.

    Returns:
        The resolved :class:`~pathlib.Path` of *output_dir*.

    Raises:
        WriteError: On text that cannot be encoded as UTF-8 (such as a lone
            surrogate from a ``\\ud83d`` escape) or any I/O failure.
    """
    target = Path(output_dir).resolve()
    payload: dict[str, bytes] = {}
    for relative in sorted(files):
        try:
            payload[relative] = files[relative].encode("utf-8")
        except UnicodeEncodeError as exc:
            raise WriteError(f"Cannot encode generated file {relative} as UTF-8: {exc}") from exc

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{target.name}-", dir=target.parent))
        staging.chmod(0o755)
    except OSError as exc:
        raise WriteError(f"Cannot prepare output directory {target}: {exc}") from exc

    backup = staging.with_name(f"{staging.name}.previous")
    moved = False
    try:
        for relative, data in payload.items():
            path = staging / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        if target.exists():
            os.replace(target, backup)
            moved = True
        os.replace(staging, target)
    except OSError as exc:
        raise WriteError(f"Failed to write generated package to {target}: {exc}") from exc
    finally:
        if moved and not target.exists():
            os.replace(backup, target)
        shutil.rmtree(staging, ignore_errors=True)

    if moved:
        shutil.rmtree(backup, ignore_errors=True)
    debug(f"Wrote {len(files)} files to {target}")
    return target
