"""Index a few sample documents for local development."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from manual_rag.config.settings import Settings
from manual_rag.observability.logger import setup_logging
from manual_rag.services import build_services

SAMPLE_DOCS = [
    {
        "doc_id": "printer-setup",
        "title": "Office Printer Setup Guide",
        "content": """# Unpacking
Remove the printer from the box and take off all orange shipping tape. Keep the box until setup is complete.

# Connecting to Wi-Fi
Press the wireless button on the control panel for three seconds. Select your network and enter the password. The blue light stays on once the printer is connected.

# Installing Toner
Open the front cover and slide the toner cartridge in until it clicks. Close the cover and wait for the printer to calibrate.

# TROUBLESHOOTING
If pages come out blank, check that the sealing strip was removed from the toner cartridge. If the printer is offline, restart the router and the printer.
""",
    },
    {
        "doc_id": "expense-policy",
        "title": "Travel Expense Policy",
        "content": """1. Scope
This policy applies to all employees travelling on company business.

2. Booking
Flights must be booked through the travel portal at least 14 days in advance. Economy class is standard for flights under six hours.

3. Reimbursement
Submit receipts within 30 days of returning. Meals are reimbursed up to the daily allowance for the destination city.
""",
    },
]


async def main() -> None:
    settings = Settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)
    services = await build_services(settings)

    for doc in SAMPLE_DOCS:
        result = await services.indexer.index_document(doc["doc_id"], doc["title"], doc["content"])
        print(
            f"{result.document_id}: {result.status}, "
            f"{result.chunks_created} chunks ({result.chunks_skipped} skipped)"
        )


if __name__ == "__main__":
    asyncio.run(main())
