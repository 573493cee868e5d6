import sys
import time
import typer
from typing import Optional
from rich.console import Console
from rich.table import Table

from .core import config as config_module
from .core.config import load_config
from .core.errors import DetectorError
from .core.events import DeviceEventType, StorageEvent
from .core.logger import setup_logger
from .core.manager import USBDeviceDetectorManager

app = typer.Typer(help="Detect removable USB storage devices.")
console = Console()


def format_size(size: Optional[int]) -> str:
    if size is None:
        return "-"
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def create_manager(polling_interval_ms: Optional[int] = None) -> USBDeviceDetectorManager:
    try:
        return USBDeviceDetectorManager(polling_interval_ms=polling_interval_ms)
    except DetectorError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


def normalize_root(root_directory: str) -> str:
    # Drop trailing separators so "E:" matches the stored "E:\" root.
    return root_directory.rstrip("\\/") or root_directory


def print_event(event: StorageEvent):
    device = event.device
    if event.event_type == DeviceEventType.CONNECTED:
        console.print(f"[green]DEVICE CONNECTED: {device.system_display_name}[/green]")
    else:
        console.print(f"[yellow]DEVICE REMOVED: {device.system_display_name}[/yellow]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a YAML config file")
):
    if config_path:
        config_module.config.clear()
        config_module.config.update(load_config(config_path))
    setup_logger(verbose=verbose)


@app.command()
def list_devices():
    """List currently connected USB storage devices (Snapshot)."""
    with create_manager() as manager:
        try:
            devices = manager.get_removable_devices()
        except DetectorError as e:
            console.print(f"[red]Error scanning devices: {e}[/red]")
            raise typer.Exit(code=1)

    if not devices:
        console.print("[yellow]No USB storage devices found.[/yellow]")
        return

    table = Table(title="Connected USB Storage Devices")
    table.add_column("Root", style="cyan", no_wrap=True)
    table.add_column("Volume", style="green")
    table.add_column("Device", style="magenta")
    table.add_column("Size", style="yellow")
    table.add_column("UUID", style="dim")
    for device in devices:
        table.add_row(
            device.root_directory,
            device.volume_name or "-",
            device.device_name or device.device_path or "-",
            format_size(device.total_size),
            device.uuid or "-"
        )
    console.print(table)


@app.command()
def watch(
    interval: Optional[int] = typer.Option(None, "--interval", "-i", help="Polling interval in milliseconds"),
    duration: Optional[float] = typer.Option(None, "--duration", help="Stop after this many seconds")
):
    """Print connect/remove events until interrupted."""
    manager = create_manager(interval)

    console.print(f"[bold green]Watching for USB storage devices on {sys.platform} "
                  f"(every {manager.polling_interval} ms)...[/bold green]")
    with manager:
        manager.add_drive_listener(print_event)
        started = time.monotonic()
        try:
            while duration is None or time.monotonic() - started < duration:
                time.sleep(0.2)
        except KeyboardInterrupt:
            console.print("\n[bold red]Stopping...[/bold red]")


@app.command()
def unmount(root_directory: str = typer.Argument(..., help="Mount point or drive letter to unmount")):
    """Unmount a connected USB storage device."""
    with create_manager() as manager:
        try:
            wanted = normalize_root(root_directory)
            matches = [d for d in manager.get_removable_devices() if normalize_root(d.root_directory) == wanted]
            if not matches:
                console.print(f"[red]No USB storage device mounted at {root_directory}.[/red]")
                raise typer.Exit(code=1)
            manager.unmount_storage_device(matches[0])
        except DetectorError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
    console.print(f"[bold green]Unmounted {matches[0].system_display_name}.[/bold green]")


if __name__ == "__main__":
    app()
