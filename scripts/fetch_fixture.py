import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import os

from dotenv import load_dotenv

from sync_calendars.network.client import fetch_feed
from sync_calendars.normalizers.ical import parse_feed

load_dotenv()

FIXTURE_DIR = "tests/fixtures"


# === FIXTURE FETCH + SAVE ===


def save_fixture(document: str, filename: str) -> str:
    os.makedirs(FIXTURE_DIR, exist_ok=True)
    path = f"{FIXTURE_DIR}/{filename}"
    with open(path, "w", newline="") as f:
        f.write(document)
    return path


def fetch_and_save(url: str, name: str) -> None:
    document = fetch_feed(url)
    path = save_fixture(document, f"{name}.ics")

    parsed = parse_feed(document)
    print(f"Saved {path}: {len(parsed.events)} events, {parsed.malformed} malformed")
    for event in parsed.events[:5]:
        print(f"  {event.uid} {event.start} -> {event.end} {event.summary!r}")


# === CLI ===

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch a channel calendar feed and save it as a test fixture.")
    parser.add_argument("url", help="Feed URL (the export link from the channel)")
    parser.add_argument("--name", default="channel_feed", help="Fixture file name without extension")
    args = parser.parse_args()

    fetch_and_save(args.url, args.name)
