#!/usr/bin/env python
"""
Command Line Interface for neurostore

Every command builds a MemorySystem from configuration, runs one operation
and closes it. With the default in-memory backend nothing survives between
invocations; point ``store.backend`` at ArangoDB for persistent use.
"""
import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import click
from tabulate import tabulate

from neurostore.config import load_config
from neurostore.connector import get_memory_system
from neurostore.core.memory.memory_system import MemorySystem
from neurostore.core.models import Strand
from neurostore.utils.exceptions import NeuroStoreError

STRAND_CHOICE = click.Choice([s.value for s in Strand], case_sensitive=False)


def _preview(text: str, width: int = 60) -> str:
    return text if len(text) <= width else text[:width - 3] + "..."


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _engram_rows(engrams: List[Dict[str, Any]]) -> List[List[Any]]:
    return [
        [e["id"], e["strand"], f"{e['signal']:.3f}", e["access_count"], _preview(e["content"])]
        for e in engrams
    ]


def _run(ctx: click.Context, operation: Callable[[MemorySystem], Awaitable[Any]]) -> Any:
    """Run ``operation`` against a fresh MemorySystem, reporting engine errors on stderr."""
    async def runner():
        system = get_memory_system(ctx.obj['config'])
        try:
            return await operation(system)
        finally:
            await system.close()

    try:
        return asyncio.run(runner())
    except NeuroStoreError as e:
        click.echo(f"Error: {e.message}", err=True)
        ctx.exit(1)


# Create the Click command group
@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help="JSON configuration file")
@click.option('--log-level', default=None, help="Console log level (overrides configuration)")
@click.option('--json', 'as_json', is_flag=True, help="Print raw JSON instead of tables")
@click.pass_context
def cli(ctx, config_path, log_level, as_json):
    """neurostore semantic memory engine."""
    ctx.ensure_object(dict)
    overrides = {"logging": {"level": log_level.upper()}} if log_level else None
    try:
        ctx.obj['config'] = load_config(config_path, overrides)
    except NeuroStoreError as e:
        click.echo(f"Error: {e.message}", err=True)
        ctx.exit(1)
    ctx.obj['json'] = as_json


@cli.command()
@click.argument('owner_id')
@click.argument('content')
@click.option('--strand', type=STRAND_CHOICE, help="Force a strand instead of the extracted one")
@click.option('--tag', 'tags', multiple=True, help="Tag to attach (repeatable)")
@click.option('--signal', type=float, help="Initial signal for new engrams")
@click.option('--pulse-rate', type=float, help="Reinforcement multiplier for new engrams")
@click.pass_context
def add(ctx, owner_id, content, strand, tags, signal, pulse_rate):
    """Ingest CONTENT as memories of OWNER_ID."""
    data = {"owner_id": owner_id, "content": content, "tags": list(tags),
            "strand": strand, "signal": signal, "pulse_rate": pulse_rate}
    result = _run(ctx, lambda system: system.add_memory({k: v for k, v in data.items() if v is not None}))

    if ctx.obj['json']:
        _echo_json(result.model_dump(mode="json"))
        return
    click.echo(f"Strand: {result.strand.value}")
    rows = [[o.engram.id, "new" if o.created else "reinforced", _preview(o.fact)] for o in result.outcomes]
    click.echo(tabulate(rows, headers=["ID", "Outcome", "Fact"], tablefmt="simple"))
    for temporal in result.temporal_facts:
        click.echo(f"Temporal: {temporal.entity}.{temporal.attribute} = {temporal.value}")


@cli.command()
@click.argument('owner_id')
@click.argument('query')
@click.option('--limit', type=int, default=None, help="Maximum number of results")
@click.option('--strand', type=STRAND_CHOICE, help="Only search this strand")
@click.option('--expand/--no-expand', default=True, help="Enable/disable synapse expansion")
@click.pass_context
def search(ctx, owner_id, query, limit, strand, expand):
    """Search memories of OWNER_ID for QUERY."""
    request = {"owner_id": owner_id, "query": query, "expand_synapses": expand}
    if limit is not None:
        request["limit"] = limit
    if strand:
        request["strand"] = strand

    async def operation(system: MemorySystem):
        result = await system.search(request)
        await system.drain()
        return result

    result = _run(ctx, operation)
    if ctx.obj['json']:
        _echo_json(result.model_dump(mode="json"))
        return
    if not result.hits:
        click.echo("No results found")
        return

    rows = [
        [i, hit.engram["id"], f"{hit.trace.final_score:.3f}", f"{hit.trace.vector_score:.3f}",
         f"{hit.trace.keyword_score:.3f}", f"{hit.trace.recency_boost:.3f}",
         f"{hit.trace.signal_boost:.3f}", f"{hit.trace.synapse_boost:.3f}", _preview(hit.engram["content"], 40)]
        for i, hit in enumerate(result.hits, 1)
    ]
    click.echo(tabulate(rows, headers=["#", "ID", "Score", "Vector", "Keyword", "Recency",
                                       "Signal", "Synapse", "Content"], tablefmt="simple"))
    click.echo(f"\n{result.total} results in {result.took_ms:.1f}ms")


@cli.command(name='list')
@click.argument('owner_id')
@click.option('--limit', type=int, default=50, help="Page size")
@click.option('--offset', type=int, default=0, help="Page offset")
@click.option('--strand', type=STRAND_CHOICE, help="Only list this strand")
@click.pass_context
def list_command(ctx, owner_id, limit, offset, strand):
    """List memories of OWNER_ID."""
    page = _run(ctx, lambda system: system.list_engrams(owner_id, limit=limit, offset=offset, strand=strand))
    engrams = [e.public_view() for e in page.engrams]
    if ctx.obj['json']:
        _echo_json({"engrams": engrams, "total": page.total})
        return
    if not engrams:
        click.echo("No memories found.")
        return
    click.echo(tabulate(_engram_rows(engrams), headers=["ID", "Strand", "Signal", "Accesses", "Content"],
                        tablefmt="simple"))
    click.echo(f"\nShowing {len(engrams)} of {page.total}")


def _show_engram(ctx: click.Context, engram) -> None:
    view = engram.public_view()
    if ctx.obj['json']:
        _echo_json(view)
        return
    rows = [[key, value] for key, value in view.items()]
    click.echo(tabulate(rows, tablefmt="plain"))


@cli.command()
@click.argument('engram_id')
@click.pass_context
def get(ctx, engram_id):
    """Show one memory."""
    _show_engram(ctx, _run(ctx, lambda system: system.get_engram(engram_id)))


@cli.command()
@click.argument('engram_id')
@click.option('--content', help="New content (re-embedded)")
@click.option('--strand', type=STRAND_CHOICE)
@click.option('--tag', 'tags', multiple=True, help="Replace tags (repeatable)")
@click.option('--signal', type=float)
@click.option('--pulse-rate', type=float)
@click.option('--clear-pulse-rate', is_flag=True, help="Remove the pulse rate")
@click.pass_context
def update(ctx, engram_id, content, strand, tags, signal, pulse_rate, clear_pulse_rate):
    """Update fields of a memory."""
    data: Dict[str, Any] = {"content": content, "strand": strand, "signal": signal, "pulse_rate": pulse_rate}
    if tags:
        data["tags"] = list(tags)
    data = {k: v for k, v in data.items() if v is not None}
    if clear_pulse_rate:
        data["pulse_rate"] = None
    _show_engram(ctx, _run(ctx, lambda system: system.update_engram(engram_id, data)))


@cli.command()
@click.argument('engram_id')
@click.pass_context
def delete(ctx, engram_id):
    """Delete a memory and its synapses."""
    _run(ctx, lambda system: system.delete_engram(engram_id))
    click.echo(f"Deleted {engram_id}")


@cli.command()
@click.argument('engram_id')
@click.option('--boost', type=float, default=None, help="Signal boost (configured default when omitted)")
@click.pass_context
def reinforce(ctx, engram_id, boost):
    """Reinforce a memory."""
    _show_engram(ctx, _run(ctx, lambda system: system.reinforce_engram(engram_id, boost)))


@cli.command()
@click.argument('owner_id')
@click.option('--stats', 'show_stats', is_flag=True, help="Show signal buckets after decaying")
@click.pass_context
def decay(ctx, owner_id, show_stats):
    """Apply time-based decay to memories of OWNER_ID."""
    async def operation(system: MemorySystem):
        report = await system.run_decay(owner_id)
        statistics: Optional[Dict[str, Any]] = None
        if show_stats:
            statistics = await system.get_decay_statistics(owner_id)
        return report, statistics

    report, statistics = _run(ctx, operation)
    if ctx.obj['json']:
        _echo_json({"report": report.model_dump(), "statistics": statistics})
        return
    click.echo(f"Decayed {report.affected} of {report.examined} memories")
    if statistics:
        rows = [[c["category"], c["count"], f"{c['percentage']}%"] for c in statistics["categories"]]
        click.echo(tabulate(rows, headers=["Category", "Count", "Share"], tablefmt="simple"))
        click.echo(f"Average signal: {statistics['average_signal']:.3f}")


@cli.command()
@click.pass_context
def stats(ctx):
    """Show store counts."""
    counts = _run(ctx, lambda system: system.get_stats())
    if ctx.obj['json']:
        _echo_json(counts)
        return
    click.echo(tabulate(list(counts.items()), headers=["Collection", "Count"], tablefmt="simple"))


@cli.command()
@click.pass_context
def health(ctx):
    """Check the store and report the configured providers."""
    status = _run(ctx, lambda system: system.health_check())
    if ctx.obj['json']:
        _echo_json(status)
    else:
        click.echo(f"Store: {'ok' if status['ok'] else 'unavailable'} ({status['store'].get('type')})")
        click.echo(f"Embedder: {status['embedder']}")
        click.echo(f"Completion: {status['completion']}")
    if not status['ok']:
        ctx.exit(1)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
