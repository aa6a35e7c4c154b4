"""CLI entry point for streamblocks."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable, Coroutine
from typing import Any

import click

from streamblocks.cli.output import PlainPrinter, print_unit_json
from streamblocks.core.config import (
    build_pump_config,
    build_segmenter_config,
    build_source_config,
)
from streamblocks.core.pump import QueuedStreamPump, StreamPump
from streamblocks.core.segmenter import Segmenter
from streamblocks.errors import StreamBlocksError
from streamblocks.sources import SOURCE_NAMES, StreamSource, TextChunkSource, create_source
from streamblocks.types.config import DisplayMathPolicy, EndOfStreamPolicy, PumpConfig

_DISPLAY_MATH_CHOICES = [p.value for p in DisplayMathPolicy]
_ON_END_CHOICES = [p.value for p in EndOfStreamPolicy]


def _engine_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that runs the segmenter."""
    fn = click.option(
        "--on-end",
        type=click.Choice(_ON_END_CHOICES),
        default=None,
        help="What to do with unterminated text at stream end (default: flush)",
    )(fn)
    fn = click.option(
        "--display-math",
        type=click.Choice(_DISPLAY_MATH_CHOICES),
        default=None,
        help="When a closed $$ block is emitted (default: any)",
    )(fn)
    return fn


def _build_engine(
    ctx: click.Context, display_math: str | None, on_end: str | None,
) -> tuple[Segmenter, PumpConfig]:
    cwd = ctx.obj.get("cwd")
    segmenter = Segmenter(build_segmenter_config(display_math, cwd=cwd))
    return segmenter, build_pump_config(on_end, cwd=cwd)


def _make_sink(use_rich: bool | None, typing_delay: float) -> Any:
    if use_rich is None:
        use_rich = sys.stdout.isatty()
    if use_rich:
        from streamblocks.ui.renderer import RichRenderer

        return RichRenderer(typing_delay=typing_delay)
    return PlainPrinter()


def _mask_secrets(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: (str(v)[:8] + "..." if "key" in k.lower() and isinstance(v, str) else _mask_secrets(v))
            for k, v in value.items()
        }
    return value


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def _run(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except StreamBlocksError as exc:
        _fail(exc)


async def _pump_source(
    source: StreamSource, sink: Any, segmenter: Segmenter, config: PumpConfig,
) -> None:
    pump = QueuedStreamPump(sink, segmenter, config)
    await pump.consume(source.stream())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose (debug) logging")
@click.option("--cwd", default=None, help="Directory to look for .streamblocks/config.toml")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, cwd: str | None) -> None:
    """streamblocks -- segment streaming markdown into renderable blocks.

    \b
    Usage:
      streamblocks render answer.md --chunk-size 4 --delay 0.02
      streamblocks segment answer.md
      streamblocks ask "Explain Euler's identity with a formula"
      streamblocks config
    """
    ctx.ensure_object(dict)
    ctx.obj["cwd"] = cwd
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@cli.command("render")
@click.argument("file", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--chunk-size", default=8, show_default=True, type=click.IntRange(min=1),
              help="Characters per simulated delta")
@click.option("--delay", default=0.0, show_default=True, help="Seconds between deltas")
@click.option("--typing-delay", default=0.0, show_default=True,
              help="Seconds per character when typing out plain prose")
@click.option("--rich/--no-rich", "use_rich", default=None,
              help="Rich terminal output (default: auto)")
@_engine_options
@click.pass_context
def render_cmd(
    ctx: click.Context,
    file: Any,
    chunk_size: int,
    delay: float,
    typing_delay: float,
    use_rich: bool | None,
    display_math: str | None,
    on_end: str | None,
) -> None:
    """Replay a markdown file as a token stream and render each block."""
    try:
        segmenter, pump_config = _build_engine(ctx, display_math, on_end)
    except StreamBlocksError as exc:
        _fail(exc)
    source = TextChunkSource(file.read(), chunk_size=chunk_size, delay=delay)
    _run(_pump_source(source, _make_sink(use_rich, typing_delay), segmenter, pump_config))


@cli.command("segment")
@click.argument("file", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--chunk-size", default=8, show_default=True, type=click.IntRange(min=1),
              help="Characters per simulated delta")
@click.option("--normalize-math", is_flag=True, help="Rewrite $x$ as $$x$$ in the output")
@_engine_options
@click.pass_context
def segment_cmd(
    ctx: click.Context,
    file: Any,
    chunk_size: int,
    normalize_math: bool,
    display_math: str | None,
    on_end: str | None,
) -> None:
    """Print the blocks found in a file as JSON lines."""
    try:
        segmenter, pump_config = _build_engine(ctx, display_math, on_end)
    except StreamBlocksError as exc:
        _fail(exc)

    def sink(unit: Any) -> None:
        print_unit_json(unit, normalize_math=normalize_math)

    pump = StreamPump(sink, segmenter, pump_config)
    pump.feed(TextChunkSource(file.read(), chunk_size=chunk_size).chunks)


@cli.command("ask")
@click.argument("prompt", nargs=-1, required=True)
@click.option("--provider", "-p", type=click.Choice(list(SOURCE_NAMES)), default=None,
              help="Model provider (default: dashscope)")
@click.option("--model", "-m", default=None, help="Model ID")
@click.option("--api-key", default=None, help="Provider API key")
@click.option("--base-url", default=None, help="Provider base URL")
@click.option("--typing-delay", default=0.0, show_default=True,
              help="Seconds per character when typing out plain prose")
@click.option("--rich/--no-rich", "use_rich", default=None,
              help="Rich terminal output (default: auto)")
@_engine_options
@click.pass_context
def ask_cmd(
    ctx: click.Context,
    prompt: tuple[str, ...],
    provider: str | None,
    model: str | None,
    api_key: str | None,
    base_url: str | None,
    typing_delay: float,
    use_rich: bool | None,
    display_math: str | None,
    on_end: str | None,
) -> None:
    """Stream a live model answer and render it block by block."""
    prompt_text = " ".join(prompt).strip()
    if not prompt_text:
        click.echo("Error: empty prompt", err=True)
        sys.exit(1)

    try:
        segmenter, pump_config = _build_engine(ctx, display_math, on_end)
        source_config = build_source_config(
            provider, model, api_key, base_url, cwd=ctx.obj.get("cwd"),
        )
        source = create_source(prompt_text, source_config)
    except StreamBlocksError as exc:
        _fail(exc)
    _run(_pump_source(source, _make_sink(use_rich, typing_delay), segmenter, pump_config))


@cli.command("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Show the resolved configuration."""
    from streamblocks.core.config import load_env_config, load_toml_config

    cwd = ctx.obj.get("cwd")
    click.echo("Environment:")
    env = load_env_config()
    if env:
        for k, v in sorted(env.items()):
            display = v if "key" not in k.lower() else v[:8] + "..."
            click.echo(f"  {k}: {display}")
    else:
        click.echo("  (no environment variables set)")

    click.echo("\nTOML config:")
    toml = load_toml_config(cwd)
    if toml:
        for k, v in sorted(toml.items()):
            click.echo(f"  {k}: {_mask_secrets(v)}")
    else:
        click.echo("  (no config.toml found)")

    try:
        seg = build_segmenter_config(cwd=cwd)
        pump = build_pump_config(cwd=cwd)
    except StreamBlocksError as exc:
        _fail(exc)
    click.echo("\nEffective:")
    click.echo(f"  display_math: {seg.display_math.value}")
    click.echo(f"  rule_order: {', '.join(k.value for k in seg.rule_order)}")
    click.echo(f"  on_end: {pump.on_end.value}")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
