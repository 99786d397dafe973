"""CLI entrypoint for the OpenTSDB frontend."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Optional

import requests
import typer
import uvicorn

from tsdb_frontend.app import create_app
from tsdb_frontend.core.config import load_settings

app = typer.Typer(name="tsdbf", help="OpenTSDB PromQL frontend command-line interface")

DEFAULT_HOST = "http://localhost:9080"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("TSDBF_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json().get("error", resp.text)
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, "--config", help="YAML configuration file"),
    addr: Optional[str] = typer.Option(None, "--addr", help="Listen address, host:port"),
    opentsdb_url: Optional[str] = typer.Option(None, "--opentsdb-url", help="OpenTSDB base URL"),
) -> None:
    """Run the HTTP API."""
    settings = load_settings(config)
    if addr:
        settings.listen_addr = addr
    if opentsdb_url:
        settings.opentsdb_url = opentsdb_url
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


@app.command()
def series(
    selectors: List[str] = typer.Argument(..., help='Series selectors, e.g. cpu{host=~"web.*"}'),
    start: Optional[str] = typer.Option(None, "--start", help="Start time, unix seconds or RFC3339"),
    end: Optional[str] = typer.Option(None, "--end", help="End time, unix seconds or RFC3339"),
    host: Optional[str] = typer.Option(None, "--host", help="Override frontend host"),
) -> None:
    """List series matching the selectors."""
    params: list[tuple[str, str]] = [("match[]", selector) for selector in selectors]
    if start:
        params.append(("start", start))
    if end:
        params.append(("end", end))
    resp = _request("GET", "/api/v1/series", host=host, params=params)
    typer.echo(json.dumps(resp.json()["data"], indent=2))


@app.command()
def metrics(
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Only show metric names with this prefix"),
    host: Optional[str] = typer.Option(None, "--host", help="Override frontend host"),
) -> None:
    """List metric names known to OpenTSDB."""
    resp = _request("GET", "/api/v1/label/__name__/values", host=host)
    names = resp.json()["data"]
    if prefix:
        names = [name for name in names if name.startswith(prefix)]
    typer.echo("\n".join(names))


if __name__ == "__main__":
    app()
