"""graphsift CLI: search, traverse and filter a graph stored as JSON."""

from __future__ import annotations

import json
import math
from pathlib import Path

import click

from graphsift.client import GraphQueryEngine
from graphsift.engine.persistence import load_snapshot
from graphsift.engine.storage import SQLiteStore
from graphsift.models import EngineConfig
from graphsift.errors import ConfigurationError, NotFoundError

DEFAULT_GRAPH = "graph.json"


def _parse_id(raw: str) -> str | int:
    """Node ids in JSON graphs are often integers; accept either form."""
    try:
        return int(raw)
    except ValueError:
        return raw


class DepthType(click.ParamType):
    """A hop count, or "all" for no limit."""

    name = "depth"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return value
        if value == "all":
            return math.inf
        try:
            depth = int(value)
        except ValueError:
            self.fail(f"{value!r} is not a whole number or 'all'", param, ctx)
        if depth < 0:
            self.fail(f"{depth} is negative", param, ctx)
        return depth


def _get_engine(ctx: click.Context) -> GraphQueryEngine:
    graph_path = ctx.obj["graph"]
    if not Path(graph_path).exists():
        raise click.ClickException(f"Graph file not found: {graph_path}")
    snapshot = load_snapshot(graph_path)
    store_path = ctx.obj["store"]
    store = SQLiteStore(store_path) if store_path else None
    if store is not None:
        ctx.call_on_close(store.close)
    return GraphQueryEngine(
        snapshot.nodes, snapshot.edges, store=store, config=EngineConfig.from_env()
    )


def _load_json_option(raw: str, name: str) -> dict:
    try:
        value = json.loads(raw)
    except ValueError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint=name)
    if not isinstance(value, dict):
        raise click.BadParameter("must be a JSON object", param_hint=name)
    return value


@click.group()
@click.option("--graph", default=DEFAULT_GRAPH, help="Path to the graph JSON file.")
@click.option("--store", default=None, help="SQLite file for saved filter sets.")
@click.pass_context
def cli(ctx: click.Context, graph: str, store: str | None) -> None:
    """graphsift CLI: query a property graph from the command line."""
    ctx.ensure_object(dict)
    ctx.obj["graph"] = graph
    ctx.obj["store"] = store


@cli.command()
@click.argument("query")
@click.option("--exact", is_flag=True, help="Substring instead of fuzzy matching.")
@click.option("--case-sensitive", is_flag=True, help="Match case.")
@click.option("--scope", type=click.Choice(["all", "nodes", "edges"]), default="all")
@click.option("--limit", default=20, show_default=True, help="Maximum results.")
@click.pass_context
def search(
    ctx: click.Context, query: str, exact: bool, case_sensitive: bool, scope: str, limit: int
) -> None:
    """Search node and edge text."""
    engine = _get_engine(ctx)
    results = engine.text_search(
        query,
        exact_match=exact,
        case_sensitive=case_sensitive,
        search_nodes=scope in ("all", "nodes"),
        search_edges=scope in ("all", "edges"),
        limit=limit,
    )
    if not results:
        click.echo("No matches.")
        return
    for r in results:
        label = r.ref.label or ""
        click.echo(f"  {r.kind:<4}  {r.id!s:<12}  score={r.score:7.1f}  {label}")


@cli.command()
@click.argument("prefix")
@click.option("--limit", default=10, show_default=True)
@click.pass_context
def suggest(ctx: click.Context, prefix: str, limit: int) -> None:
    """Suggest indexed words that complete PREFIX."""
    engine = _get_engine(ctx)
    for word in engine.get_suggestions(prefix, limit):
        click.echo(word)


@cli.command()
@click.argument("node_id")
@click.option("--depth", type=DepthType(), default="1", show_default=True, help="Maximum hops, or 'all'.")
@click.option("--direction", type=click.Choice(["out", "in", "both"]), default="both")
@click.pass_context
def neighbors(ctx: click.Context, node_id: str, depth: float, direction: str) -> None:
    """List nodes reachable from NODE_ID."""
    engine = _get_engine(ctx)
    found = engine.find_connected_nodes(_parse_id(node_id), max_depth=depth, direction=direction)
    if not found:
        click.echo("No connected nodes.")
        return
    for node in found:
        click.echo(f"  {node.id}  type={node.type}  label={node.label}")


@cli.command()
@click.argument("source")
@click.argument("target")
@click.option("--max-depth", default=10, show_default=True)
@click.pass_context
def path(ctx: click.Context, source: str, target: str, max_depth: int) -> None:
    """Shortest path between SOURCE and TARGET."""
    engine = _get_engine(ctx)
    result = engine.find_path(_parse_id(source), _parse_id(target), max_depth=max_depth)
    if result is None:
        click.echo(f"No path within {max_depth} hops.")
        return
    click.echo(" -> ".join(str(node_id) for node_id in result))


@cli.command("filter")
@click.argument("config")
@click.pass_context
def filter_(ctx: click.Context, config: str) -> None:
    """Apply a JSON filter CONFIG and print the surviving ids."""
    engine = _get_engine(ctx)
    result = engine.apply_filters(_load_json_option(config, "config"))
    click.echo(f"Nodes ({len(result.nodes)}): {', '.join(str(i) for i in result.node_ids)}")
    click.echo(f"Edges ({len(result.edges)}): {', '.join(str(i) for i in result.edge_ids)}")


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show graph and filter statistics."""
    engine = _get_engine(ctx)
    s = engine.stats()
    click.echo(f"Nodes: {s['num_nodes']}  Edges: {s['num_edges']}")
    fs = engine.filters.get_filter_stats()
    if fs.active_filters:
        click.echo(
            f"Active filter sets: {fs.active_filters}  "
            f"visible nodes: {fs.filtered_nodes} (-{fs.nodes_percent}%)  "
            f"visible edges: {fs.filtered_edges} (-{fs.edges_percent}%)"
        )


@cli.group("sets")
def sets() -> None:
    """Manage named filter sets (requires --store)."""


def _require_store(ctx: click.Context) -> None:
    if not ctx.obj["store"]:
        raise click.UsageError("Filter sets need --store to persist.")


@sets.command("create")
@click.argument("name")
@click.argument("config")
@click.pass_context
def sets_create(ctx: click.Context, name: str, config: str) -> None:
    """Create filter set NAME from a JSON CONFIG."""
    _require_store(ctx)
    engine = _get_engine(ctx)
    result = engine.filters.create_filter_set(name, _load_json_option(config, "config"))
    click.echo(f"Filter set '{name}': {len(result.nodes)} nodes, {len(result.edges)} edges")


@sets.command("list")
@click.pass_context
def sets_list(ctx: click.Context) -> None:
    """List filter sets."""
    _require_store(ctx)
    engine = _get_engine(ctx)
    all_sets = engine.filters.get_all_filters()
    if not all_sets:
        click.echo("No filter sets.")
        return
    for name, record in all_sets.items():
        state = "on " if record.active else "off"
        click.echo(f"  [{state}] {name}  {json.dumps(record.config, default=str)}")


@sets.command("toggle")
@click.argument("name")
@click.option("--on/--off", "active", default=None, help="Set instead of flipping.")
@click.pass_context
def sets_toggle(ctx: click.Context, name: str, active: bool | None) -> None:
    """Flip (or set) whether filter set NAME is active."""
    _require_store(ctx)
    engine = _get_engine(ctx)
    if engine.filters.toggle_filter_set(name, active) is None:
        raise click.ClickException(f"Filter set '{name}' not found")
    record = engine.filters.get_filter_set(name)
    click.echo(f"Filter set '{name}' is now {'active' if record.active else 'inactive'}")


@sets.command("update")
@click.argument("name")
@click.argument("config")
@click.pass_context
def sets_update(ctx: click.Context, name: str, config: str) -> None:
    """Replace the config of filter set NAME."""
    _require_store(ctx)
    engine = _get_engine(ctx)
    try:
        engine.filters.update_filter_set(name, _load_json_option(config, "config"))
    except NotFoundError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Updated filter set '{name}'")


@sets.command("remove")
@click.argument("name")
@click.pass_context
def sets_remove(ctx: click.Context, name: str) -> None:
    """Delete filter set NAME."""
    _require_store(ctx)
    engine = _get_engine(ctx)
    engine.filters.remove_filter_set(name)
    click.echo(f"Removed filter set '{name}'")


@sets.command("export")
@click.argument("output", type=click.Path())
@click.pass_context
def sets_export(ctx: click.Context, output: str) -> None:
    """Export all filter sets to a JSON file."""
    _require_store(ctx)
    engine = _get_engine(ctx)
    Path(output).write_text(engine.filters.export_filters())
    click.echo(f"Exported {len(engine.filters)} filter sets to {output}")


@sets.command("import")
@click.argument("input_file", type=click.Path(exists=True))
@click.pass_context
def sets_import(ctx: click.Context, input_file: str) -> None:
    """Import filter sets from a JSON file."""
    _require_store(ctx)
    engine = _get_engine(ctx)
    try:
        result = engine.filters.import_filters(Path(input_file).read_text())
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    click.echo(
        f"Imported filter sets from {input_file}: "
        f"{len(result.nodes)} nodes, {len(result.edges)} edges visible"
    )


@cli.command()
@click.option("--graph", "graph_path", default=None, help="Graph path (overrides GRAPHSIFT_GRAPH_PATH).")
@click.option("--store", "store_path", default=None, help="Store path (overrides GRAPHSIFT_STORE_PATH).")
def mcp(graph_path: str | None, store_path: str | None) -> None:
    """Start the MCP server for AI agent integration."""
    import os

    if graph_path:
        os.environ["GRAPHSIFT_GRAPH_PATH"] = graph_path
    if store_path:
        os.environ["GRAPHSIFT_STORE_PATH"] = store_path
    from graphsift.mcp.server import run_server

    run_server()


if __name__ == "__main__":
    cli()
