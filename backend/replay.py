"""
Print everything stored for one call: the call row, its tool runs and the raw
webhook events, in that order.

    python replay.py --call-id <CALL_ID>
"""
import argparse
import json
import sys

from config import Settings
from data.store import EventStore


def _dump(row):
    print(json.dumps(row.model_dump(), indent=2, default=str))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Show the stored history of a call")
    parser.add_argument("--call-id", required=True)
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    with EventStore(settings.db_url) as store:
        call = store.get_call(args.call_id)
        if call is None:
            print(f"No call found for call_id={args.call_id}")
            return 1

        print("\n=== Call ===")
        _dump(call)

        print("\n=== Tool Runs ===")
        for run in store.list_tool_runs(args.call_id):
            _dump(run)

        print("\n=== Events ===")
        for ev in store.list_events(args.call_id):
            _dump(ev)
    return 0


if __name__ == "__main__":
    sys.exit(main())
