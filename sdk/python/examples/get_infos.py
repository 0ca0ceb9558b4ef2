#!/usr/bin/env python3
"""
Minimal blocking call example.

Fetches the account information for the configured API tokens.

Setup:
    1. Create data directory: mkdir -p ~/.sellsy
    2. Create config.yaml (see below), or export SELLSY_USER_TOKEN,
       SELLSY_USER_SECRET, SELLSY_CONSUMER_TOKEN and SELLSY_CONSUMER_SECRET
    3. Optional: export SELLSY_DATA=/custom/path

Example config.yaml:
    activity_log: stdout
    credentials:
      user_token: ...
      user_secret: ...
      consumer_token: ...
      consumer_secret: ...
"""

import sys

from sellsy import SellsyClient, ApiError, SellsyError


def main():
    with SellsyClient.from_env() as client:
        try:
            infos = client.call("Infos.getInfos")
        except ApiError as e:
            print(f"API refused the call: {e.code} {e.message}")
            return 1
        except SellsyError as e:
            print(f"Call failed: {e}")
            return 1

        consumer = infos.get("consumerdatas", {})
        print(f"Connected as {consumer.get('fullName', '?')} ({consumer.get('email', '?')})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
