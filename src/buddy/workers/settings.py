"""arq worker settings module.

Import path for arq CLI: arq buddy.workers.settings.WorkerSettings
"""

from __future__ import annotations

from buddy.workers.digest_worker import WorkerSettings

__all__ = ["WorkerSettings"]
