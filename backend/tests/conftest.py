"""
Root test configuration.

Settings are read at import time, so the test environment has to be in
place before anything from ``studiohub`` is imported.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("BROADCAST_URL", "memory://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
