"""arq worker settings module.

Import path for arq CLI: arq oceo.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq.connections import RedisSettings

from oceo.config import get_settings
from oceo.workers.sync_worker import WorkerSettings

WorkerSettings.redis_settings = RedisSettings.from_dsn(get_settings().redis_url)

__all__ = ["WorkerSettings"]
