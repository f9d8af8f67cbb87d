"""
CLI commands for gab-forge
"""

import sys
from pathlib import Path

import click

from gab_forge.config import DIALOGUES_ROOT_ENV, VERBOSE_ENV
from gab_forge.errors import GabError
from gab_forge.logging_config import setup_logging
from gab_forge.parser.node import compile_node
from gab_forge.parser.parser import ScriptParser

from .export_cmd import export_to_json
from .play_cmd import DialoguePlayer
from .validate_cmd import ScriptValidator


def _fail(message: str):
    click.echo(f"\n❌ Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, envvar=VERBOSE_ENV, help="Log debug output")
def cli(verbose):
    """Gab Forge - compiler, linter and runtime for .gab dialogue scripts"""
    setup_logging(verbose)


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "-s", default=None, help="Start node (defaults to the first node)")
@click.option(
    "--regions",
    "-r",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Examine regions JSON to cross-check",
)
@click.option("--detailed", "-d", is_flag=True, help="Show detailed validation output")
def validate(file_path, start, regions, detailed):
    """Validate a .gab dialogue file"""
    path = Path(file_path)
    validator = ScriptValidator(
        path,
        start=start,
        regions_path=Path(regions) if regions else None,
        quiet=not detailed,
    )

    try:
        is_valid = validator.validate()
    except (GabError, OSError, ValueError) as e:
        _fail(str(e))

    if not detailed:
        click.echo(f"\n📄 File: {path.name}")
        click.echo("-" * 40)
        click.echo(f"Nodes: {len(validator.script.nodes)}")
        click.echo(f"Speakers: {len(validator.script.speakers)}")
        click.echo(f"Start node: {validator.start_title}")

        if validator.errors:
            click.echo("\n❌ Errors:")
            for error in validator.errors:
                click.echo(f"  • Line {error.line_number}: {error.message}", err=True)

        if validator.warnings:
            click.echo("\n⚠️  Warnings:")
            for warning in validator.warnings:
                click.echo(f"  • Line {warning.line_number}: {warning.message}")

    if is_valid:
        click.echo("\n✅ Validation passed!")
    else:
        click.echo("\n❌ Validation failed!", err=True)
        sys.exit(1)


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def stats(file_path):
    """Show statistics for a .gab dialogue file"""
    path = Path(file_path)

    try:
        script = ScriptParser().parse_path(path)
    except (GabError, OSError) as e:
        _fail(str(e))

    compiled = [compile_node(node, frozenset()) for node in script.nodes]
    line_count = sum(len(node.lines) for node in compiled)
    option_count = sum(len(node.options) for node in compiled)
    command_count = sum(1 for node in compiled if node.command is not None)

    click.echo(f"\n📊 Statistics for {path.name}")
    click.echo("=" * 50)

    click.echo("\n📝 Content:")
    click.echo(f"  Speakers:       {len(script.speakers):>6}")
    click.echo(f"  Nodes:          {len(script.nodes):>6}")
    click.echo(f"  Dialogue lines: {line_count:>6}")
    click.echo(f"  Options:        {option_count:>6}")
    click.echo(f"  Commands:       {command_count:>6}")

    node_count = len(compiled)
    avg_options = option_count / node_count if node_count else 0
    avg_lines = line_count / node_count if node_count else 0

    click.echo("\n📈 Averages:")
    click.echo(f"  Options per node: {avg_options:>6.1f}")
    click.echo(f"  Lines per node:   {avg_lines:>6.1f}")

    branching = sum(1 for node in compiled if len(node.options) > 1)
    jumps = sum(1 for node in compiled if node.fallthrough_target)
    dead_ends = sum(1 for node in compiled if not node.options and not node.fallthrough_target and not node.command)
    examine = sum(1 for node in compiled if "examine" in node.tags)

    click.echo("\n🌳 Structure:")
    click.echo(f"  Branching nodes: {branching:>6}")
    click.echo(f"  Jump nodes:      {jumps:>6}")
    click.echo(f"  Dead ends:       {dead_ends:>6}")
    click.echo(f"  Examine entries: {examine:>6}")
    click.echo()


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("title")
def show_node(file_path, title):
    """Display a specific node from a dialogue file"""
    path = Path(file_path)

    try:
        script = ScriptParser().parse_path(path)
    except (GabError, OSError) as e:
        _fail(str(e))

    nodes = script.node_table()
    if title not in nodes:
        click.echo(f"❌ Node '{title}' not found in {path.name}", err=True)
        click.echo("\nAvailable nodes:")
        for name in sorted(nodes)[:20]:
            click.echo(f"  • {name}")
        if len(nodes) > 20:
            click.echo(f"  ... and {len(nodes) - 20} more")
        sys.exit(1)

    node = compile_node(nodes[title], frozenset())

    click.echo(f"\n📍 Node: [{title}] (line {nodes[title].line_number})")
    click.echo("=" * 50)

    if node.tags:
        click.echo(f"\n🏷  Tags: {', '.join(sorted(node.tags))}")

    if node.lines:
        click.echo("\n💬 Dialogue:")
        for line in node.lines:
            click.echo(f"  {line}")

    if node.options:
        click.echo("\n🔀 Options:")
        for option in node.options:
            arrow = "detour" if option.detour else "jump"
            click.echo(f"  -> {option.text}  [{arrow} {option.target or '?'}]")

    if node.fallthrough_target:
        click.echo(f"\n↪  Jump: {node.fallthrough_target}")

    if node.command is not None:
        click.echo(f"\n⚡ Command: {node.command.name} {' '.join(node.command.args)}".rstrip())

    click.echo()


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "-s", default=None, help="Start node (defaults to the first node)")
def play(file_path, start):
    """Play through a dialogue interactively"""
    try:
        DialoguePlayer(Path(file_path), start=start).play()
    except (GabError, OSError) as e:
        _fail(str(e))


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("output", type=click.Path(dir_okay=False), required=False)
def export(file_path, output):
    """Export a .gab dialogue file to JSON"""
    try:
        export_to_json(Path(file_path), Path(output) if output else None)
    except (GabError, OSError) as e:
        _fail(str(e))


@cli.command()
@click.option(
    "--dialogues",
    "-d",
    type=click.Path(file_okay=False),
    envvar=DIALOGUES_ROOT_ENV,
    default=None,
    help="Path to dialogues directory",
)
@click.option("--port", "-p", type=int, default=5000, help="Port to run on")
@click.option("--debug", is_flag=True, help="Run in debug mode")
def serve(dialogues, port, debug):
    """Run the web editor API"""
    from gab_forge.web.app import create_app

    app = create_app(dialogues_root=dialogues)
    click.echo(f"📂 Dialogues directory: {app.config['DIALOGUES_ROOT']}")
    click.echo(f"🌐 Server running at: http://localhost:{port}")
    app.run(host="127.0.0.1", port=port, debug=debug)


if __name__ == "__main__":
    cli()
