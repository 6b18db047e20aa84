"""CLI commands for varbridge."""

import json
import os
import signal
import time
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from varbridge import __logo__, __version__

app = typer.Typer(
    name="varbridge",
    help=f"{__logo__} varbridge - Remote control bridge for automation host variables",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} varbridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """varbridge - Remote control bridge for automation host variables."""
    pass


def _load(config_path: Path | None):
    from varbridge.config.loader import load_config

    return load_config(config_path.expanduser() if config_path else None)


def _open_bridge(config, snapshot: Path | None = None):
    """Build (store, registry store, dispatcher) from config."""
    from varbridge.bridge.dispatcher import CommandDispatcher
    from varbridge.bridge.registry import DeviceRegistry
    from varbridge.storage import SQLiteDeviceRegistryStore
    from varbridge.store import MemoryObjectStore, create_store_from_config
    from varbridge.utils.helpers import resolve_path

    if snapshot is not None:
        store = MemoryObjectStore.load_snapshot(snapshot)
    else:
        store = create_store_from_config(config.host)
    entries = SQLiteDeviceRegistryStore(resolve_path(config.registry.sqlite_path))
    dispatcher = CommandDispatcher(
        store,
        DeviceRegistry(store, entries),
        auth_token=config.auth.token,
        allow_no_auth=config.auth.allow_no_auth,
    )
    return store, entries, dispatcher


def _parse_cli_value(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, ensure_ascii=False, default=str))


ConfigOption = typer.Option(None, "--config", help="Config path")


# ============================================================================
# Config Commands
# ============================================================================


config_app = typer.Typer(help="Manage varbridge config")
app.add_typer(config_app, name="config")


@config_app.command("check")
def config_check(
    config: Path | None = ConfigOption,
):
    """Validate config JSON structure and schema."""
    from varbridge.config.loader import convert_keys, get_config_path
    from varbridge.config.schema import Config

    config_path = (config or get_config_path()).expanduser()
    if not config_path.exists():
        console.print(f"[red]Config file not found:[/red] {config_path}")
        raise typer.Exit(2)

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON:[/red] {exc}")
        raise typer.Exit(2) from exc

    try:
        cfg = Config.model_validate(convert_keys(raw))
    except Exception as exc:
        console.print(f"[red]Schema validation failed:[/red] {exc}")
        raise typer.Exit(1) from exc

    console.print("[green]✓[/green] Config validation passed")
    console.print(f"path={config_path}")
    console.print(
        f"server={cfg.server.host}:{cfg.server.port} hook=/hook/{cfg.server.webhook_path}"
    )
    console.print(f"host backend={cfg.host.backend}")
    if cfg.auth.allow_no_auth:
        console.print("[yellow]auth=anonymous access allowed[/yellow]")
    elif not cfg.auth.token.strip():
        console.print("[yellow]auth=no token configured, every request will be denied[/yellow]")
    else:
        console.print("auth=token")


# ============================================================================
# Serve
# ============================================================================


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind host override"),
    port: int | None = typer.Option(None, "--port", help="Bind port override"),
    snapshot: Path | None = typer.Option(
        None,
        "--snapshot",
        help="Serve an in-memory tree loaded from this JSON snapshot",
    ),
    config: Path | None = ConfigOption,
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show runtime logs"),
):
    """Start the webhook endpoint."""
    from loguru import logger

    from varbridge.api.bridge_server import BridgeServer

    cfg = _load(config)
    if logs or cfg.debug_log:
        logger.enable("varbridge")
    else:
        logger.disable("varbridge")

    if host:
        cfg.server.host = host
    if port:
        cfg.server.port = port
    if not cfg.auth.allow_no_auth and not cfg.auth.token.strip():
        console.print("[yellow]auth.token is empty: all requests will be rejected with 401[/yellow]")

    store, entries, dispatcher = _open_bridge(cfg, snapshot)
    server = BridgeServer(
        host=cfg.server.host,
        port=cfg.server.port,
        dispatcher=dispatcher,
        hook_path=cfg.server.webhook_path,
        max_request_body_bytes=cfg.server.max_body_bytes,
        debug_log=cfg.debug_log,
    )
    stopping = {"flag": False}

    def _request_stop(*_: Any) -> None:
        stopping["flag"] = True

    if os.name != "nt":
        signal.signal(signal.SIGTERM, _request_stop)

    console.print(f"{__logo__} varbridge serving {server.url} (backend={store.name})")
    server.start()
    try:
        while not stopping["flag"]:
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
        entries.close()
        store.close()


# ============================================================================
# Variable Commands
# ============================================================================


vars_app = typer.Typer(help="Inspect and write host variables")
app.add_typer(vars_app, name="vars")


@vars_app.command("list")
def vars_list(
    root: int = typer.Option(0, "--root", help="Root object id (0 = whole tree)"),
    filter_text: str = typer.Option("", "--filter", "-f", help="Substring of name or path"),
    page: int = typer.Option(1, "--page"),
    page_size: int = typer.Option(200, "--page-size"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
    snapshot: Path | None = typer.Option(None, "--snapshot", help="Read from a JSON snapshot"),
    config: Path | None = ConfigOption,
):
    """List variables below a root object."""
    from varbridge.bridge.paging import paginate
    from varbridge.bridge.walker import walk_variables

    store, entries, _ = _open_bridge(_load(config), snapshot)
    try:
        result = paginate(
            walk_variables(store, root),
            filter_text=filter_text,
            page=page,
            page_size=page_size,
        )
    finally:
        entries.close()
        store.close()

    if as_json:
        _print_json({"root_id": root, **result.to_dict()})
        return

    table = Table(title=f"Variables (page {result.page}/{result.total_pages}, total {result.total})")
    table.add_column("ID", style="cyan")
    table.add_column("Path")
    table.add_column("Type")
    table.add_column("Value")
    table.add_column("Profile", style="dim")
    for item in result.items:
        table.add_row(str(item.var_id), item.path, item.type_text, item.value_text, item.profile)
    console.print(table)


@vars_app.command("get")
def vars_get(
    var_id: int = typer.Argument(..., help="Variable id"),
    snapshot: Path | None = typer.Option(None, "--snapshot", help="Read from a JSON snapshot"),
    config: Path | None = ConfigOption,
):
    """Show one variable with metadata."""
    from varbridge.bridge.envelope import ActionRequest

    _run_action(ActionRequest("get_var", {"var_id": var_id}), config, snapshot)


@vars_app.command("set")
def vars_set(
    var_id: int = typer.Argument(..., help="Variable id"),
    value: str = typer.Argument(..., help="New value (JSON literal or plain text)"),
    snapshot: Path | None = typer.Option(None, "--snapshot", help="Run against a JSON snapshot (changes are not saved)"),
    config: Path | None = ConfigOption,
):
    """Write a variable (actuate first, direct set as fallback)."""
    from varbridge.bridge.envelope import ActionRequest

    _run_action(
        ActionRequest("set_var", {"var_id": var_id, "value": _parse_cli_value(value)}),
        config,
        snapshot,
    )


def _run_action(request, config: Path | None, snapshot: Path | None) -> None:
    from varbridge.bridge.errors import BridgeError

    store, entries, dispatcher = _open_bridge(_load(config), snapshot)
    try:
        result = dispatcher.execute(request)
    except BridgeError as exc:
        console.print(f"[red]{exc.message}[/red] (code {exc.code})")
        if exc.data is not None:
            _print_json(exc.data)
        raise typer.Exit(1) from exc
    finally:
        entries.close()
        store.close()
    _print_json(result)


# ============================================================================
# Device Registry Commands
# ============================================================================


devices_app = typer.Typer(help="Manage the device registry")
app.add_typer(devices_app, name="devices")


@devices_app.command("list")
def devices_list(
    all_entries: bool = typer.Option(False, "--all", "-a", help="Show raw registry entries, including disabled"),
    snapshot: Path | None = typer.Option(None, "--snapshot", help="Resolve against a JSON snapshot"),
    config: Path | None = ConfigOption,
):
    """List devices (or raw registry entries with --all)."""
    from varbridge.bridge.registry import DeviceRegistry

    store, entries, _ = _open_bridge(_load(config), snapshot)
    try:
        if all_entries:
            rows = entries.list_entries()
            if not rows:
                console.print("No registry entries.")
                return
            table = Table(title="Registry Entries")
            table.add_column("Var ID", style="cyan")
            table.add_column("Name")
            table.add_column("Kind")
            table.add_column("Floor")
            table.add_column("Room")
            table.add_column("Status")
            for entry in rows:
                status = "[green]enabled[/green]" if entry.enabled else "[dim]disabled[/dim]"
                table.add_row(str(entry.var_id), entry.name, entry.kind, entry.floor, entry.room, status)
            console.print(table)
            return

        devices = DeviceRegistry(store, entries).list_devices()
    finally:
        entries.close()
        store.close()

    if not devices:
        console.print("No devices.")
        return
    table = Table(title="Devices")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Location")
    table.add_column("Capabilities")
    table.add_column("State")
    for device in devices:
        location = " / ".join(p for p in (device.floor, device.room) if p)
        table.add_row(
            device.id,
            device.name,
            device.kind,
            location,
            ", ".join(device.capabilities),
            json.dumps(device.state, ensure_ascii=False, default=str),
        )
    console.print(table)


@devices_app.command("save")
def devices_save(
    var_id: int = typer.Argument(..., help="Variable id"),
    kind: str = typer.Option("", "--kind", "-k", help="Device category, e.g. light"),
    floor: str = typer.Option("", "--floor"),
    room: str = typer.Option("", "--room"),
    name: str = typer.Option("", "--name", "-n", help="Display name override"),
    enabled: bool = typer.Option(True, "--enabled/--disabled"),
    config: Path | None = ConfigOption,
):
    """Create or update a registry entry."""
    from varbridge.bridge.registry import DeviceRegistryEntry
    from varbridge.storage import SQLiteDeviceRegistryStore
    from varbridge.utils.helpers import resolve_path

    try:
        entry = DeviceRegistryEntry.from_dict(
            {"kind": kind, "floor": floor, "room": room, "name": name, "enabled": enabled},
            var_id=var_id,
        )
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    entries = SQLiteDeviceRegistryStore(resolve_path(_load(config).registry.sqlite_path))
    try:
        entries.upsert(entry)
    finally:
        entries.close()
    console.print(f"[green]✓[/green] Saved registry entry for variable {var_id}")


@devices_app.command("delete")
def devices_delete(
    var_id: int = typer.Argument(..., help="Variable id"),
    config: Path | None = ConfigOption,
):
    """Remove a registry entry."""
    from varbridge.storage import SQLiteDeviceRegistryStore
    from varbridge.utils.helpers import resolve_path

    entries = SQLiteDeviceRegistryStore(resolve_path(_load(config).registry.sqlite_path))
    try:
        removed = entries.delete(var_id)
    finally:
        entries.close()
    if removed:
        console.print(f"[green]✓[/green] Removed registry entry for variable {var_id}")
    else:
        console.print(f"[red]No registry entry for variable {var_id}[/red]")
        raise typer.Exit(1)


@devices_app.command("rooms")
def devices_rooms(
    config: Path | None = ConfigOption,
):
    """List distinct rooms used by registry entries."""
    from varbridge.storage import SQLiteDeviceRegistryStore
    from varbridge.utils.helpers import resolve_path

    entries = SQLiteDeviceRegistryStore(resolve_path(_load(config).registry.sqlite_path))
    try:
        rooms = entries.room_options()
    finally:
        entries.close()
    if not rooms:
        console.print("No rooms.")
        return
    for room in rooms:
        console.print(room)


@devices_app.command("export")
def devices_export(
    output: Path = typer.Argument(..., help="Target JSON file"),
    config: Path | None = ConfigOption,
):
    """Write the whole registry to a JSON file."""
    from varbridge.storage import SQLiteDeviceRegistryStore
    from varbridge.utils.helpers import resolve_path

    entries = SQLiteDeviceRegistryStore(resolve_path(_load(config).registry.sqlite_path))
    try:
        snapshot = entries.export_snapshot()
    finally:
        entries.close()
    target = output.expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")
    console.print(f"[green]✓[/green] Exported {len(snapshot)} entries to {target}")


@devices_app.command("import")
def devices_import(
    source: Path = typer.Argument(..., help="JSON file keyed by variable id"),
    replace: bool = typer.Option(False, "--replace", help="Drop existing entries first"),
    config: Path | None = ConfigOption,
):
    """Load registry entries from a JSON file."""
    from varbridge.storage import SQLiteDeviceRegistryStore
    from varbridge.utils.helpers import resolve_path

    path = source.expanduser()
    if not path.exists():
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(2)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON:[/red] {exc}")
        raise typer.Exit(2) from exc
    if not isinstance(data, dict):
        console.print("[red]Registry snapshot must be a JSON object[/red]")
        raise typer.Exit(2)

    entries = SQLiteDeviceRegistryStore(resolve_path(_load(config).registry.sqlite_path))
    try:
        count = entries.import_snapshot(data, replace=replace)
    except ValueError as exc:
        console.print(f"[red]Invalid registry entry:[/red] {exc}")
        raise typer.Exit(1) from exc
    finally:
        entries.close()
    console.print(f"[green]✓[/green] Imported {count} entries")


if __name__ == "__main__":
    app()
