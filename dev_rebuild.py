#!/usr/bin/env python3
"""
Local rebuild runner for the Journey Analyzer.
Runs a consolidation or rebuild synchronously against the configured database,
without a Celery worker or broker.

Usage:
    python dev_rebuild.py consolidate [site_id]
    python dev_rebuild.py rebuild-all
    python dev_rebuild.py rebuild-recent [minutes]
    python dev_rebuild.py rebuild <session_id>
"""

import json
import logging
import os
import sys

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

os.environ.setdefault('ENVIRONMENT', 'development')

if not os.getenv('DATABASE_URL') and (not os.getenv('SUPABASE_PROJECT_REF') or not os.getenv('SUPABASE_DB_PASSWORD')):
    print("WARNING: Database configuration missing!")
    print("Set DATABASE_URL, or SUPABASE_PROJECT_REF and SUPABASE_DB_PASSWORD, or create a .env file")
    sys.exit(1)


def main(argv):
    from journey_analyzer.config import get_settings
    from journey_analyzer.tasks import rebuild

    logging.basicConfig(level=get_settings().log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    command = argv[0] if argv else "rebuild-recent"
    arg = argv[1] if len(argv) > 1 else None

    if command == "consolidate":
        result = rebuild.run_consolidation(int(arg) if arg else None)
    elif command == "rebuild-all":
        result = rebuild.rebuild_all_journeys.run()
    elif command == "rebuild-recent":
        result = rebuild.rebuild_recent_journeys.run(int(arg) if arg else None)
    elif command == "rebuild" and arg:
        result = rebuild.rebuild_journey.run(arg)
    else:
        print(__doc__)
        return 2
    print(json.dumps(result, indent=2, default=str))
    return 0 if not result.get("errors") else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
