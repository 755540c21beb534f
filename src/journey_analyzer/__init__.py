"""Journey reconstruction and bot classification for website visitor events.

Raw tracked events are ordered, split into sessions and rebuilt into one Journey
record per visit. The pure core lives in ``reconstruction``, ``detection`` and
``consolidation``; ``storage`` and ``tasks`` wire it to the database and Celery.
"""

__version__ = "0.1.0"

__all__ = ["config", "consolidation", "detection", "reconstruction", "storage", "tasks"]
