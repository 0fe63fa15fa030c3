# backend/enrich/worker.py
"""
Run enrichment for one upload session from the command line.

Usage:
  python -m backend.enrich.worker --session 1718000000000-ab12cd
  python -m backend.enrich.worker --session <id> --background   # 3-per-batch, 2s spacing
"""
import argparse
import asyncio
import logging

from app.settings import settings
from backend.enrich.pipeline import BACKGROUND, ONDEMAND, EnrichmentEngine
from backend.store_factory import get_store


async def process_session(session_id: str, mode: str = ONDEMAND) -> int:
    store = get_store()
    await store.init()
    try:
        engine = EnrichmentEngine.from_settings(store, settings)
        return await engine.run_session(session_id, mode)
    finally:
        await store.close()


def parse_args():
    p = argparse.ArgumentParser()
    p.add_argument("--session", required=True, help="upload session id")
    p.add_argument("--background", action="store_true", help="use the background batch size and delay")
    p.add_argument("--debug", action="store_true", help="Debug/verbose")
    return p.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    mode = BACKGROUND if args.background else ONDEMAND
    processed = asyncio.run(process_session(args.session, mode))
    print(f"processed {processed} comments for session {args.session}")


if __name__ == "__main__":
    main()
