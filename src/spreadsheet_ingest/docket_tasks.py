"""Docket task registry for worker CLI usage.

Run a standalone worker with:
    docket worker --tasks spreadsheet_ingest.docket_tasks:tasks
"""

from spreadsheet_ingest.services.spreadsheet_processor import process_spreadsheet_job

tasks = [process_spreadsheet_job]
