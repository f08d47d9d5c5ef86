"""Command-line entry point: stream one chat turn and print the events."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click
import httpx
from rich.console import Console
from rich.markup import escape

from ollama_stream.config import StreamConfig, load_config
from ollama_stream.diagnostics import LoggingSink
from ollama_stream.errors import OllamaStreamError
from ollama_stream.llm.client import OllamaHandler
from ollama_stream.types import EventType

console = Console()

_DEFAULT_SYSTEM = "You are a helpful assistant."


async def _run_chat(
    cfg: StreamConfig, prompt: str, system: str, as_json: bool,
) -> int:
    handler = OllamaHandler(
        provider=cfg.provider,
        retry=cfg.retry,
        tool_aliases=cfg.tool_aliases,
        sink=LoggingSink(),
    )
    messages = [{"role": "user", "content": prompt}]
    try:
        async for event in handler.create_message(system, messages):
            if as_json:
                click.echo(json.dumps(event.to_dict(), ensure_ascii=False))
            elif event.type is EventType.REASONING:
                console.print(event.reasoning, style="dim", end="", markup=False, highlight=False)
            else:
                console.print(event.text, end="", markup=False, highlight=False)
    except (OllamaStreamError, httpx.HTTPError) as e:
        console.print(f"\n[red]{escape(str(e))}[/red]")
        return 1
    finally:
        await handler.close()
    if not as_json:
        console.print()
    return 0


@click.group()
def main() -> None:
    """Stream Ollama chat turns as agent events."""


@main.command()
@click.argument("prompt")
@click.option("--config", "config_path", default=None, help="Config file path.")
@click.option("--model", default=None, help="Model id (overrides config).")
@click.option("--system", default=_DEFAULT_SYSTEM, show_default=True,
              help="System prompt.")
@click.option("--json", "as_json", is_flag=True, help="Print events as JSON lines.")
@click.option("--verbose", "-v", is_flag=True, help="Log diagnostics to stderr.")
def chat(
    prompt: str,
    config_path: str | None,
    model: str | None,
    system: str,
    as_json: bool,
    verbose: bool,
) -> None:
    """Send PROMPT and stream the reply."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    cfg = load_config(config_path)
    if model:
        cfg.provider.model_id = model
    if not cfg.provider.model_id:
        raise click.UsageError("No model configured; pass --model or set provider.model_id")

    code = asyncio.run(_run_chat(cfg, prompt, system, as_json))
    sys.exit(code)


if __name__ == "__main__":
    main()
