# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/cli/app.py
from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Optional

import typer

from cephmon.config.loader import load_config
from cephmon.config.models import CephMonConfig
from cephmon.execution.runner import CommandExecutor
from cephmon.logging.log import init_logging
from cephmon.mon.cluster import MonCluster
from cephmon.mon.errors import MonError, NoSchedulableNodesError
from cephmon.mon.mapping import MonStateStore, format_endpoints
from cephmon.observers.dispatcher import EventBus
from cephmon.observers.jsonfile import JsonFileObserver
from cephmon.observers.logger import LoggerObserver
from cephmon.store.file import YamlFileStore


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="cephmon: Ceph mon placement and quorum CLI")


def _version() -> str:
    try:
        return metadata.version("cephmon")
    except metadata.PackageNotFoundError:
        return "dev"


def _executor(cfg: CephMonConfig):
    timeout = cfg.orchestrator.status_timeout_seconds
    if cfg.status_ssh is None:
        return CommandExecutor(timeout=timeout, label="mon_status")

    from cephmon.utils.ssh_runner import SSHRunner, SSHStatusExecutor
    return SSHStatusExecutor(SSHRunner.connect(cfg.status_ssh), timeout=timeout)


def _build_cluster(cfg: CephMonConfig, store_dir: Optional[Path], bus: EventBus) -> MonCluster:
    from cephmon.k8s.client import (
        ConfigMapStore,
        KubeDaemonProvider,
        KubeNodeInventory,
        load_kube_apis,
    )

    core, apps = load_kube_apis(cfg.context)
    spec = cfg.cluster
    store = YamlFileStore(store_dir) if store_dir else ConfigMapStore(core, spec.namespace)
    daemons = KubeDaemonProvider(
        core,
        apps,
        namespace=spec.namespace,
        image=spec.ceph_image,
    )
    return MonCluster(
        store,
        KubeNodeInventory(core),
        daemons,
        _executor(cfg),
        cfg.orchestrator,
        bus=bus,
        env=cfg.environment,
    )


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def reconcile(
    config: Path = typer.Option(..., "--config", "-c", help="cephmon YAML config"),
    store: Optional[Path] = typer.Option(None, "--store", help="Keep mon state in this directory instead of ConfigMaps"),
    events: Optional[Path] = typer.Option(None, "--events", help="Append events as JSON lines to this file"),
    debug: bool = typer.Option(False, "--debug", help="Verbose console output"),
):
    """Place missing mons and wait for quorum."""
    cfg = load_config(config)
    logger, _, log_path = init_logging(cluster=cfg.cluster.namespace, verbose=debug)

    observers = [LoggerObserver(logger)]
    if events:
        observers.append(JsonFileObserver(events))
    cluster = _build_cluster(cfg, store, EventBus(observers))

    try:
        info = cluster.start(None, _version(), cfg.cluster)
    except NoSchedulableNodesError as exc:
        typer.secho(f"[cephmon] {exc}", fg=typer.colors.YELLOW)
        raise typer.Exit(code=2)
    except MonError as exc:
        typer.secho(f"[cephmon] reconcile failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if cluster.last_verification_error:
        typer.secho(f"[cephmon] quorum re-check: {cluster.last_verification_error}", fg=typer.colors.YELLOW)
    typer.echo(f"fsid={info.fsid}")
    typer.echo(f"mons={format_endpoints(info.monitors)}")
    typer.echo(f"log={log_path}")


@app.command()
def status(
    store: Path = typer.Option(..., "--store", help="State directory written by 'reconcile --store'"),
):
    """Print the persisted mon endpoints, mapping and max mon id."""
    state = MonStateStore(YamlFileStore(store)).load()
    if state is None:
        typer.secho("[cephmon] no mon state found", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)

    typer.echo(f"endpoints: {format_endpoints(state.monitors) or '-'}")
    typer.echo(f"max mon id: {state.max_mon_id}")
    for name in sorted(state.mapping.node):
        node = state.mapping.node[name]
        port = state.mapping.port.get(node.name)
        suffix = f" port={port}" if port is not None else ""
        typer.echo(f"  {name}: node={node.name} host={node.hostname} addr={node.address}{suffix}")


@app.command()
def remove(
    name: str = typer.Argument(..., help="Mon daemon name, e.g. 'b'"),
    config: Path = typer.Option(..., "--config", "-c"),
    store: Optional[Path] = typer.Option(None, "--store"),
):
    """Forget a decommissioned mon."""
    cfg = load_config(config)
    logger, _, _ = init_logging(cluster=cfg.cluster.namespace)
    cluster = _build_cluster(cfg, store, EventBus([LoggerObserver(logger)]))
    try:
        cluster.remove_mon(name, cfg.cluster)
    except MonError as exc:
        typer.secho(f"[cephmon] {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"removed mon {name}")


if __name__ == "__main__":
    app()
