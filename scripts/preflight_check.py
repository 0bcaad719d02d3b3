#!/usr/bin/env python3
import sys
import os

print("Running preflight import check...")
try:
    # Dummy env so settings load without a real deployment
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
    os.environ.setdefault("DATABASE_URL", "postgresql://localhost/surveybot")

    import surveybot.main
    print("Import surveybot.main: OK")

    import surveybot.core.orchestrator
    print("Import surveybot.core.orchestrator: OK")

    import surveybot.core.campaign
    print("Import surveybot.core.campaign: OK")

    print("Preflight check passed.")
    sys.exit(0)
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
