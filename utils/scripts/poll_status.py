# utils/scripts/poll_status.py
"""
Poll /api/status/<session> until enrichment is complete.

  python utils/scripts/poll_status.py <session> [--base-url http://127.0.0.1:8000]
"""
import argparse
import asyncio
import os
import time
from typing import Optional

import httpx
from dotenv import load_dotenv

load_dotenv()

POLL_INTERVAL_S = 2.0
RETRY_INTERVAL_S = 3.0


async def poll(
    session: str,
    base_url: str,
    max_wait_s: float = 600.0,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep=asyncio.sleep,
) -> dict:
    url = f"{base_url.rstrip('/')}/api/status/{session}"
    deadline = time.monotonic() + max_wait_s
    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        while True:
            interval = POLL_INTERVAL_S
            try:
                r = await client.get(url)
                r.raise_for_status()
                status = r.json()["status"]
                print(f"{status['processed']}/{status['total']} ({status['progress']}%)")
                if status["isComplete"]:
                    return status
                if status.get("lastError"):
                    print("last run error:", status["lastError"])
            except (httpx.HTTPError, KeyError, ValueError) as e:
                # keep polling through transient errors, a bit slower
                print("poll error:", e)
                interval = RETRY_INTERVAL_S
            if time.monotonic() + interval > deadline:
                raise TimeoutError(f"session {session} not complete after {max_wait_s:.0f}s")
            await sleep(interval)


def parse_args():
    p = argparse.ArgumentParser()
    p.add_argument("session")
    p.add_argument("--base-url", default=os.getenv("API_BASE_URL", "http://127.0.0.1:8000"))
    p.add_argument("--max-wait", type=float, default=600.0)
    return p.parse_args()


if __name__ == "__main__":
    args = parse_args()
    final = asyncio.run(poll(args.session, args.base_url, args.max_wait))
    print("complete:", final)
