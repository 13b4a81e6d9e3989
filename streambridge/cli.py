from __future__ import annotations

import asyncio
import dataclasses
import itertools
import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from streambridge import __version__
from streambridge.bridge import StreamBridge
from streambridge.config import BridgeConfig, load_bridge_config
from streambridge.decoders import json_decoder
from streambridge.models import Failed, RequestDescriptor, StreamState
from streambridge.observable import Subscription
from streambridge.observability.logging import LoggingConfig, configure_logging
from streambridge.observability.metrics import MetricSerializer, MetricsRegistry

app = typer.Typer(add_completion=False)
console = Console()


def _make_bridge(config: BridgeConfig, metrics: MetricsRegistry) -> StreamBridge:
    return StreamBridge(config=config, metrics=metrics)


def _parse_headers(values: List[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"expected 'Name: value', got {value!r}", param_hint="--header")
        headers[name.strip()] = content.strip()
    return headers


def _read_body(data: Optional[str]) -> Optional[bytes]:
    if data is None:
        return None
    if data == "-":
        return typer.get_binary_stream("stdin").read()
    path = Path(data)
    if not path.exists():
        raise typer.BadParameter(f"no such file: {data}", param_hint="--data")
    return path.read_bytes()


@app.command()
def stream(
    url: str = typer.Argument(..., help="Endpoint that answers with newline-delimited JSON."),
    method: str = typer.Option("POST", "--method", "-X"),
    header: List[str] = typer.Option([], "--header", "-H", help="Repeatable 'Name: value'."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Body file, or - for stdin."),
    config_path: Optional[Path] = typer.Option(None, "--config"),
    log_format: str = typer.Option("plain", "--log-format"),
    raw: bool = typer.Option(False, "--raw", help="Print bare JSON lines only."),
    stats: bool = typer.Option(False, "--stats", help="Print stream metrics at the end."),
) -> None:
    """Stream a request and print every decoded object as it arrives."""
    configure_logging(dataclasses.replace(LoggingConfig.from_env(), format=log_format))
    descriptor = RequestDescriptor(
        method=method.upper(),
        url=url,
        headers=_parse_headers(header),
        content=_read_body(data),
    )
    metrics = MetricsRegistry()
    bridge = _make_bridge(load_bridge_config(config_path), metrics)

    counter = itertools.count(1)

    def on_next(item: Any) -> None:
        line = json.dumps(item, ensure_ascii=False)
        if raw:
            typer.echo(line)
        else:
            console.print(Text.assemble((f"{next(counter):>4} ", "dim"), line))

    async def _run() -> Subscription:
        handle = bridge.open(descriptor, json_decoder())
        handle.stream.subscribe(on_next=on_next)
        await handle.subscription.wait()
        return handle.subscription

    subscription = asyncio.run(_run())
    outcome = subscription.outcome
    if not raw:
        title = "Stream complete" if subscription.state is StreamState.COMPLETED else "Stream failed"
        console.print(
            Panel(
                f"State: {subscription.state.value}\nObjects: {subscription.emitted}",
                title=title,
            )
        )
    if stats:
        console.print_json(data=MetricSerializer().to_dict(metrics.snapshot()))
    if isinstance(outcome, Failed):
        Console(stderr=True).print(
            Text(f"{type(outcome.error).__name__}: {outcome.error}", style="bold red")
        )
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)
