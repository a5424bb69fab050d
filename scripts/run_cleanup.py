"""
Hourly cleanup job for an external scheduler (cron, pg_cron + pg_net, CI).

    0 * * * *  python scripts/run_cleanup.py --url https://api.example.com

By default it calls POST /api/chat/cleanup with the shared secret. With
--direct it runs the same global sweep straight against the database.
"""
import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import requests

from yamifit_chatbot.core.config import settings
from yamifit_chatbot.core.logging_config import setup_logging

logger = logging.getLogger("run_cleanup")


def cleanup_via_api(base_url: str, secret: str, timeout: float) -> int:
    response = requests.post(
        f"{base_url.rstrip('/')}/api/chat/cleanup",
        headers={"X-Cleanup-Secret": secret},
        timeout=timeout,
    )
    if response.status_code != 200:
        body = response.json() if response.headers.get("content-type", "").startswith("application/json") else {}
        raise RuntimeError(f"Cleanup endpoint returned {response.status_code}: {body.get('error', response.text)}")
    return int(response.json()["deleted"])


def cleanup_direct() -> int:
    from yamifit_chatbot.database import SessionLocal
    from yamifit_chatbot.services.message_store import MessageStore
    from yamifit_chatbot.services.reaper import Reaper

    db = SessionLocal()
    try:
        return Reaper(MessageStore(db)).sweep_all()
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Delete expired YamiFit Chatbot messages.")
    parser.add_argument("--url", default=os.getenv("CHATBOT_API_URL", "http://localhost:8000"))
    parser.add_argument("--timeout", type=float, default=30.0)
    parser.add_argument("--direct", action="store_true", help="sweep the database directly instead of calling the API")
    args = parser.parse_args(argv)

    setup_logging()
    try:
        if args.direct:
            deleted = cleanup_direct()
        else:
            if not settings.CLEANUP_SECRET:
                logger.error("CLEANUP_SECRET is not set")
                return 2
            deleted = cleanup_via_api(args.url, settings.CLEANUP_SECRET, args.timeout)
    except (requests.RequestException, RuntimeError) as e:
        logger.error(f"Cleanup failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Cleanup failed: {e}", exc_info=True)
        return 1

    logger.info(f"Cleanup completed: {deleted} expired messages deleted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
