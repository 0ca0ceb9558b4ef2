#!/usr/bin/env python3
"""
Concurrent asynchronous calls.

Requests several pages of the client list at once, then cancels whatever is
still pending after the first failure.

Uses the same setup as get_infos.py.
"""

import concurrent.futures
import sys

from sellsy import SellsyClient, SellsyError

PAGES = 3
PER_PAGE = 20


def main():
    with SellsyClient.from_env() as client:
        futures = [
            client.call_async("Client.getList", {"pagination": {"nbperpage": PER_PAGE, "pagenum": page}})
            for page in range(1, PAGES + 1)
        ]

        try:
            for future in concurrent.futures.as_completed(futures):
                result = future.result()
                rows = result.get("result", {}) if isinstance(result, dict) else {}
                print(f"[{future.call_id}] {len(rows)} clients")
        except SellsyError as e:
            print(f"Call failed: {e}")
            for future in futures:
                future.cancel()
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
