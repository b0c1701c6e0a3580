"""
Start the clubhub API under uvicorn.

    python run_api.py          # or: uvicorn clubhub.main:app

Things worth knowing before pointing real phones at it:
- Tables are created on startup (create_all only; nothing is migrated or dropped).
- Outside prod, OTP codes are written to the log while OTP_LOG_CODES is on.
  There is no SMS gateway, so that log line is how a code reaches a tester.
- In prod (APP_ENV=prod) set JWT_SECRET; the built-in dev secret signs tokens
  anyone with the source could forge.
- A startup failure exits with status 1 after logging the traceback.
"""

import logging
import sys

from clubhub.main import run

logger = logging.getLogger("clubhub.run_api")

STARTUP_HINTS = (
    "DATABASE_URL / DB_PATH points somewhere unwritable",
    "PORT is already bound by another process",
    "the virtualenv is missing a dependency (pip install -e .)",
)


def main() -> int:
    try:
        run()
    except Exception:
        logging.basicConfig(level=logging.ERROR)
        logger.exception("clubhub API failed to start")
        print("\nclubhub API failed to start. Usual suspects:", file=sys.stderr)
        for hint in STARTUP_HINTS:
            print(f"  - {hint}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
