"""Compose the generator stages into one run.

``load -> validate -> extract -> resolve -> catalog -> synthesize -> bind ->
render -> write``. Every stage is a pure function of the previous stage's
output except the first (reading the specification) and the last (writing
the package), so :func:`plan_generation` can be reused by read-only
commands such as ``escligen inspect``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from escligen.cache import SchemaCache
from escligen.config import get_cache_dir
from escligen.generator.bindings import emit_bindings
from escligen.generator.catalog import build_catalog, select_endpoints
from escligen.generator.command_tree import collect_enums, synthesize_commands
from escligen.generator.writer import render_package, write_output
from escligen.models import (
    BindingDefinition,
    Catalog,
    EnumDefinition,
    GeneratorConfig,
    NamespaceCommand,
    Specification,
)
from escligen.output import debug, info, progress
from escligen.parser.extractor import extract_specification
from escligen.parser.loader import load_schema, source_for, validate_schema_shape
from escligen.parser.resolver import TypeResolver, resolve_types


@dataclass
class GenerationPlan:
    """Everything derived from one specification, before rendering."""

    spec: Specification
    resolver: TypeResolver
    catalog: Catalog
    tree: NamespaceCommand
    enums: list[EnumDefinition] = field(default_factory=list)
    bindings: list[BindingDefinition] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Summary of a generation run."""

    output_dir: Path
    files: list[str]
    endpoints: int
    namespaces: int
    enums: int
    excluded: list[str]
    written: bool


def load_specification(config: GeneratorConfig) -> Specification:
    """Load, validate and extract the specification named by *config*.

    URL sources go through the schema download cache unless
    ``config.refresh`` is set.

    Raises:
        SpecificationError: If the document cannot be loaded or is malformed.
    """
    source = source_for(config)
    progress(f"Loading specification from {source}")
    if source.startswith(("http://", "https://")):
        with SchemaCache(get_cache_dir(), ttl_seconds=config.cache_ttl_seconds) as cache:
            raw = load_schema(source, cache=cache, refresh=config.refresh)
    else:
        raw = load_schema(source)
    validate_schema_shape(raw)
    spec = extract_specification(raw)
    debug(f"Loaded {len(spec.types)} types and {len(spec.endpoints)} endpoints")
    return spec


def plan_generation(spec: Specification, config: GeneratorConfig) -> GenerationPlan:
    """Run the pure stages: resolve, catalog, synthesize and bind.

    Raises:
        SpecificationError: For malformed URL templates or parameter sets.
        TypeResolutionError: For dangling references, alias cycles and
            unsupported unions or parameter types.
        NamingConflictError: For colliding generated names.
    """
    included, _ = select_endpoints(spec, config.exclude)
    resolver = resolve_types(spec, included)
    catalog = build_catalog(spec, resolver, config.exclude)
    tree = synthesize_commands(catalog, resolver, title=spec.info.title)
    return GenerationPlan(
        spec=spec,
        resolver=resolver,
        catalog=catalog,
        tree=tree,
        enums=collect_enums(tree),
        bindings=emit_bindings(catalog, tree),
    )


def run_generation(config: GeneratorConfig, check: bool = False) -> GenerationResult:
    """Generate the package described by *config*.

    Args:
        config: The effective configuration.
        check: Run every stage but leave the output directory untouched.

    Raises:
        GeneratorError: Any stage failure; nothing is written in that case.
    """
    plan = plan_generation(load_specification(config), config)
    files = render_package(
        plan.tree,
        plan.enums,
        plan.bindings,
        package=config.package,
        cli_name=config.cli_name,
        title=plan.spec.info.title,
    )

    output_dir = Path(config.output) / config.package
    if check:
        info(f"Check passed: {len(files)} files would be written to {output_dir}")
    else:
        output_dir = write_output(files, output_dir)

    return GenerationResult(
        output_dir=output_dir,
        files=sorted(files),
        endpoints=len(plan.catalog.endpoints),
        namespaces=sum(1 for _ in plan.tree.namespaces()),
        enums=len(plan.enums),
        excluded=plan.catalog.excluded,
        written=not check,
    )
