"""arq worker settings.

Import path for arq CLI: arq streakup.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from streakup.config import get_settings
from streakup.workers.recompute import (
    recompute_all_challenge_rates,
    recompute_challenge_rate,
    reevaluate_user,
    shutdown,
    startup,
)


class WorkerSettings:
    """Recompute worker: on-demand jobs plus a nightly full completion-rate pass.

    The nightly pass keeps rates moving as days elapse even for challenges
    nobody completed today.
    """

    functions = [recompute_challenge_rate, reevaluate_user, recompute_all_challenge_rates]
    cron_jobs = [
        cron(recompute_all_challenge_rates, hour={0}, minute={5}),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 4
