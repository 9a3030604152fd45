"""
Print a worker's shift history as a table, the same rows the report export returns.

Usage: python -m scripts.export_worker_shifts <worker_id> [timezone]
"""

import sys

from rich.console import Console
from rich.table import Table

from core.config import Settings
from db.session import create_db_engine
from services.report_export import EXPORT_COLUMNS, export_rows
from services.session_repository import SqlSessionRepository
from services.time_aggregation import completed_duration_ms, format_duration
from utils.datetime_helpers import utc_now


def build_table(worker_id: str, records, tz: str) -> Table:
    table = Table(title=f"Shift History for {worker_id} ({tz})")
    for column in EXPORT_COLUMNS:
        table.add_column(column)
    for row in export_rows(records, tz, utc_now()):
        table.add_row(*row)
    return table


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    settings = Settings.from_env()
    worker_id = sys.argv[1]
    tz = sys.argv[2] if len(sys.argv) > 2 else settings.report_timezone

    repository = SqlSessionRepository(create_db_engine(settings.database_url))
    records = repository.list_by_worker(worker_id)

    console = Console()
    if not records:
        console.print(f"[yellow]No shifts found for {worker_id}[/yellow]")
        return

    console.print(build_table(worker_id, records, tz))
    total_ms = sum(completed_duration_ms(record) or 0 for record in records)
    console.print(f"[bold]Total worked:[/bold] {format_duration(total_ms)} across {len(records)} shifts")


if __name__ == "__main__":
    main()
