#!/usr/bin/env python3
"""
Test connectivity to the search backend (Elasticsearch / OpenSearch).
Probes the health endpoint and counts documents in each configured index.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from qa_insights.integrations.clients.real_http.search_backend import SearchBackendClient
from qa_insights.integrations.contracts.errors import DataAccessError
from qa_insights.utils.config_loader import load_data_access_config


async def check(client: SearchBackendClient) -> int:
    if not await client.ping():
        print(f"Search backend at {client.base_url} is not reachable (see warning above)", file=sys.stderr)
        return 1
    print(f"Search backend at {client.base_url} is healthy")

    for label, index in client.indices.model_dump().items():
        try:
            total = await client.count_documents(index)
        except DataAccessError as e:
            print(f"  {label} ({index}): {e.kind.value} error: {e}")
            continue
        print(f"  {label} ({index}): {total} documents")
    return 0


def main() -> int:
    cfg = load_data_access_config()
    if not cfg.search_backend.enabled:
        print("Search backend is disabled (set QA_SEARCH_ENABLED=true)", file=sys.stderr)
        return 1
    return asyncio.run(check(SearchBackendClient(cfg.search_backend)))


if __name__ == "__main__":
    sys.exit(main())
