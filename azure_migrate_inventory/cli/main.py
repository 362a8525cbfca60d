#!/usr/bin/env python3
"""Command-line interface for Azure Migrate VM Inventory"""

import sys
import typer
from typing import Optional
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, MofNCompleteColumn
from rich.panel import Panel

from .. import __version__
from ..core.models import InventoryRow
from ..utils.config import ConfigurationLoader, create_sample_config
from ..utils.logger import configure_logging, setup_logger

app = typer.Typer(
    name="azure-migrate-inventory",
    help="📦 Azure VM inventory export for Azure Migrate CSV import",
    add_completion=False
)

console = Console()

IMPORT_HINT = "Import this CSV in Azure Migrate > Discovery and assessment > Import using CSV"


@app.command()
def inventory(
    subscription_id: Optional[str] = typer.Option(
        None, "--subscription", "-s",
        help="Subscription ID to inventory"
    ),
    resource_group: Optional[str] = typer.Option(
        None, "--resource-group", "-g",
        help="Limit the inventory to one resource group (default: entire subscription)"
    ),
    workspace_name: Optional[str] = typer.Option(
        None, "--workspace", "-w",
        help="Log Analytics workspace name for memory utilization"
    ),
    workspace_resource_group: Optional[str] = typer.Option(
        None, "--workspace-rg", "-r",
        help="Resource group of the workspace (defaults to --resource-group)"
    ),
    output_path: Optional[str] = typer.Option(
        None, "--output", "-o",
        help="Output CSV path (default: ./azure_migrate_vm_inventory.csv)"
    ),
    lookback_hours: Optional[int] = typer.Option(
        None, "--lookback-hours", "-l",
        help="Metrics lookback period in hours (default: 168)"
    ),
    aggregation: Optional[str] = typer.Option(
        None, "--aggregation", "-a",
        help="Utilization aggregation: Average, Max or P95 (default: P95)"
    ),
    parallel_workers: Optional[int] = typer.Option(
        None, "--workers",
        help="Number of VMs processed in parallel (default: 4)"
    ),
    request_timeout: Optional[int] = typer.Option(
        None, "--timeout",
        help="Per-request timeout in seconds (default: 60)"
    ),
    retry_total: Optional[int] = typer.Option(
        None, "--retries",
        help="Retries per Azure request (default: 0)"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config",
        help="YAML configuration file"
    ),
    log_dir: Optional[str] = typer.Option(
        None, "--log-dir",
        help="Directory for the run log file (default: current directory)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable verbose logging on the console"
    )
):
    """📦 Export VM inventory and utilization to an Azure Migrate import CSV"""

    try:
        config = ConfigurationLoader().load_configuration(
            config_file,
            subscription_id=subscription_id,
            resource_group=resource_group,
            workspace_name=workspace_name,
            workspace_resource_group=workspace_resource_group,
            output_path=output_path,
            lookback_hours=lookback_hours,
            aggregation=aggregation,
            parallel_workers=parallel_workers,
            request_timeout=request_timeout,
            retry_total=retry_total,
            log_dir=log_dir,
            log_level="DEBUG" if verbose else None
        )
    except ValueError as e:
        console.print(f"❌ Invalid configuration: {e}", style="red")
        sys.exit(1)

    # The spinner owns the console unless verbose logging is requested
    log_file = configure_logging(config.log_level, config.log_dir, console=verbose)
    logger = setup_logger("cli")
    if log_file:
        logger.info(f"Log file: {log_file}")

    try:
        from ..auth.manager import AuthenticationManager
        from ..providers.factory import build_inventory

        console.print("\n🚀 Starting Azure Migrate VM inventory...\n")

        auth_manager = AuthenticationManager(
            request_timeout=config.request_timeout,
            retry_total=config.retry_total
        )
        clients = auth_manager.get_clients_for_subscription(config.subscription_id)
        vm_inventory = build_inventory(config, clients)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True
        ) as progress:

            task = progress.add_task("Inventorying virtual machines...", total=None)

            def on_row(completed: int, total: int, row: InventoryRow):
                progress.update(
                    task,
                    completed=completed,
                    total=total,
                    description=f"Processed {row.server_name}"
                )

            result = vm_inventory.run(progress=on_row)

        result.log_file = str(log_file) if log_file else None
        display_inventory_summary(result)

        if result.errors:
            console.print("\n⚠️  Inventory completed with errors. Check the log for details.", style="yellow")
            sys.exit(1)

        console.print(f"\n✅ Inventory completed! {len(result.rows)} VM(s) written to {result.output_path}", style="green")
        console.print(f"📥 {IMPORT_HINT}", style="blue", soft_wrap=True)
        sys.exit(0)

    except KeyboardInterrupt:
        logger.error("Inventory cancelled by user")
        console.print("\n❌ Inventory cancelled by user.", style="red")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Inventory failed: {e}")
        console.print(f"\n❌ Inventory failed: {e}", style="red")
        if verbose:
            console.print_exception()
        sys.exit(1)


@app.command()
def list_subscriptions():
    """📋 List accessible Azure subscriptions"""

    try:
        from ..auth.manager import AuthenticationManager

        console.print("🔍 Discovering accessible Azure subscriptions...\n")

        subscriptions = AuthenticationManager().get_accessible_subscriptions()

        if subscriptions:
            table = Table(title="Accessible Azure Subscriptions")
            table.add_column("Subscription ID", style="cyan")
            table.add_column("Name", style="green")

            for sub in subscriptions:
                table.add_row(sub['id'], sub['name'])

            console.print(table)
            console.print(f"\n📊 Total: {len(subscriptions)} accessible subscriptions")
        else:
            console.print("❌ No accessible subscriptions found.", style="red")

    except Exception as e:
        console.print(f"❌ Failed to list subscriptions: {e}", style="red")
        sys.exit(1)


@app.command()
def init_config(
    output_file: str = typer.Option(
        "azure_migrate_inventory.yml", "--output", "-o",
        help="Where to write the configuration"
    ),
    from_current: bool = typer.Option(
        False, "--from-current",
        help="Save the effective configuration (config file, environment and options) instead of a sample"
    ),
    subscription_id: Optional[str] = typer.Option(
        None, "--subscription", "-s",
        help="Subscription ID to store with --from-current"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config",
        help="YAML configuration file to start from with --from-current"
    )
):
    """📝 Write a sample YAML configuration file, or save the current one"""

    try:
        if from_current:
            loader = ConfigurationLoader()
            config = loader.load_configuration(config_file, subscription_id=subscription_id)
            loader.save_configuration(config, output_file)
            console.print(f"📁 Current configuration written to: {output_file}", style="green")
        else:
            path = create_sample_config(output_file)
            console.print(f"📁 Sample configuration written to: {path}", style="green")
    except ValueError as e:
        console.print(f"❌ Invalid configuration: {e}", style="red")
        sys.exit(1)
    except OSError as e:
        console.print(f"❌ Failed to write configuration: {e}", style="red")
        sys.exit(1)


@app.command()
def version():
    """📝 Show version information"""

    version_info = {
        "Azure Migrate VM Inventory": __version__,
        "Python": sys.version.split()[0],
        "Platform": sys.platform
    }

    panel_content = "\n".join([f"{k}: {v}" for k, v in version_info.items()])
    console.print(Panel(panel_content, title="Version Information", expand=False))


def display_inventory_summary(result):
    """Display inventory results summary"""

    stats = result.statistics
    summary_content = f"""
🔍 Run ID: {result.run_id}
⏱️  Duration: {result.duration_seconds:.2f} seconds
🖥️  VMs: {stats.get('total_vms', 0)} (Windows: {stats.get('windows_vms', 0)}, Linux: {stats.get('linux_vms', 0)})
💽 Disks: {stats.get('total_disks', 0)}
📄 CSV: {result.output_path}
📝 Log: {result.log_file or '(console only)'}
"""

    if not result.workspace_resource_id:
        summary_content += "🧠 Memory utilization: not collected (no workspace)\n"
    if stats.get('missing_size'):
        summary_content += f"❔ VMs without size data: {stats['missing_size']}\n"
    if result.warnings:
        summary_content += f"⚠️  Warnings: {len(result.warnings)}\n"
    if result.errors:
        summary_content += f"❌ Errors: {len(result.errors)}"

    console.print(Panel(summary_content, title="📋 Inventory Summary", expand=False))

    if result.rows:
        table = Table(title="🖥️  Inventoried VMs")
        table.add_column("Server", style="cyan")
        table.add_column("IP", style="blue")
        table.add_column("Cores", style="magenta")
        table.add_column("Memory (MB)", style="magenta")
        table.add_column("OS", style="green")
        table.add_column("CPU %", style="yellow")
        table.add_column("Memory %", style="yellow")
        table.add_column("Disks", style="white")

        for row in result.rows[:10]:
            table.add_row(
                row.server_name,
                row.ip_address or "-",
                str(row.cores) if row.cores is not None else "-",
                str(row.memory_mb) if row.memory_mb is not None else "-",
                row.os_name or "-",
                f"{row.cpu_utilization:.2f}",
                f"{row.memory_utilization:.2f}" if row.memory_utilization is not None else "-",
                str(row.number_of_disks)
            )

        console.print(table)

        if len(result.rows) > 10:
            console.print(f"\n... and {len(result.rows) - 10} more VMs")

    if result.errors:
        console.print("\n⚠️  Errors encountered during inventory:", style="yellow")
        for error in result.errors[:5]:
            console.print(f"  • {error}", style="red")
        if len(result.errors) > 5:
            console.print(f"  ... and {len(result.errors) - 5} more errors")


def main():
    """Main entry point"""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n❌ Interrupted by user.", style="red")
        sys.exit(130)


if __name__ == "__main__":
    main()
