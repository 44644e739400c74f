#!/usr/bin/env python3
"""
Smoke test for a running phrasebook API
Usage: python3 scripts/check-api.py [base_url]
Example: python3 scripts/check-api.py http://localhost:3001
"""

import sys
import time

from phrasebook_core.client import APIError, PhrasebookClient, DEFAULT_BASE_URL


def check_api(base_url: str) -> None:
    """Exercise health, phrases and studied routes"""
    client = PhrasebookClient(base_url)
    print(f"\nChecking API: {base_url}\n")

    try:
        start_time = time.time()
        health = client.health()
        duration = int((time.time() - start_time) * 1000)
        print(f"✅ Health: {health.get('status')} ({duration}ms)")

        phrases = client.list_phrases()
        print(f"📝 Phrases: {len(phrases)}")
        if phrases:
            sample = phrases[0]
            print("   Sample:", {
                "id": sample.get("id"),
                "korean": (sample.get("korean") or "")[:30],
                "english": (sample.get("english") or "")[:30],
                "hasAudio": bool(sample.get("audio")),
            })

        studied = client.get_studied()
        print(f"✓ Studied: {len(studied)}")

        migration = client.migrate_studied()
        carried = migration.get("carried", {})
        print(f"🔁 Migration: changed={migration.get('changed')} carried={carried}")
        print("\n")

    except APIError as e:
        if e.status == 0:
            print("❌ Connection error: Could not connect to API")
            print("\nMake sure the server is running: phrasebook serve")
        else:
            print(f"❌ Error: {e.status} {e}")
        sys.exit(1)


if __name__ == "__main__":
    check_api(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL)
