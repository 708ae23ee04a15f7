"""Configuration loading for rwrk."""

from __future__ import annotations

import os
from dataclasses import dataclass

from rwrk._internal.errors import ConfigError

DEFAULT_TOTAL_TASKS = 5_000_000
DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class RwrkSettings:
    """Environment-level defaults for rwrk.

    Attributes:
        workers_per_cpu: Workers spawned per detected CPU core when no
            explicit worker count is given.
        pool_idle_timeout: Seconds an idle pooled connection is kept alive.
        request_timeout: Per-request timeout in seconds.
    """

    workers_per_cpu: int = 48
    pool_idle_timeout: float = 90.0
    request_timeout: float = 30.0


@dataclass(frozen=True)
class RunConfig:
    """Immutable configuration for a single load run.

    Attributes:
        url: Target URL. May contain ``{id}`` to enumerate identifiers.
        total_tasks: Total number of requests to issue.
        timeout_seconds: Wall-clock budget for the whole run.
        workers: Number of concurrent workers.
        pool_max_idle_per_host: Connection cap per host in the shared pool.
        pool_idle_timeout: Seconds an idle pooled connection is kept alive.
        request_timeout: Per-request timeout in seconds.
        race_cancellation: If True, an in-flight request is abandoned as
            soon as the deadline trips. If False, the deadline is only
            observed between requests.
    """

    url: str
    total_tasks: int = DEFAULT_TOTAL_TASKS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    workers: int = 1
    pool_max_idle_per_host: int = 2
    pool_idle_timeout: float = 90.0
    request_timeout: float = 30.0
    race_cancellation: bool = True

    def __post_init__(self) -> None:
        if not self.url:
            msg = "url must not be empty"
            raise ConfigError(msg)
        if self.workers < 1:
            msg = f"workers must be >= 1, got: {self.workers}"
            raise ConfigError(msg)
        if self.total_tasks < 0:
            msg = f"total_tasks must be >= 0, got: {self.total_tasks}"
            raise ConfigError(msg)
        if self.timeout_seconds < 0:
            msg = f"timeout_seconds must be >= 0, got: {self.timeout_seconds}"
            raise ConfigError(msg)
        if self.pool_max_idle_per_host < 1:
            msg = f"pool_max_idle_per_host must be >= 1, got: {self.pool_max_idle_per_host}"
            raise ConfigError(msg)
        if self.pool_idle_timeout <= 0:
            msg = f"pool_idle_timeout must be positive, got: {self.pool_idle_timeout}"
            raise ConfigError(msg)
        if self.request_timeout <= 0:
            msg = f"request_timeout must be positive, got: {self.request_timeout}"
            raise ConfigError(msg)

    @classmethod
    def create(
        cls,
        url: str,
        *,
        total_tasks: int = DEFAULT_TOTAL_TASKS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        workers: int | None = None,
        pool_max_idle_per_host: int | None = None,
        pool_idle_timeout: float | None = None,
        request_timeout: float | None = None,
        race_cancellation: bool = True,
        settings: RwrkSettings | None = None,
    ) -> RunConfig:
        """Build a RunConfig, resolving unset values from settings.

        The worker count defaults to ``cpu_count * workers_per_cpu`` and
        the per-host pool cap defaults to twice the worker count.

        Args:
            url: Target URL, optionally containing ``{id}``.
            total_tasks: Total number of requests to issue.
            timeout_seconds: Wall-clock budget in seconds.
            workers: Worker count, or None for the CPU-based default.
            pool_max_idle_per_host: Per-host pool cap, or None for default.
            pool_idle_timeout: Idle connection timeout, or None for default.
            request_timeout: Per-request timeout, or None for default.
            race_cancellation: Whether in-flight requests race the deadline.
            settings: Environment defaults. Loaded via ``load_config`` if None.

        Returns:
            Validated RunConfig.

        Raises:
            ConfigError: If any resolved value is out of range.
        """
        if settings is None:
            settings = load_config()

        resolved_workers = workers if workers is not None else default_worker_count(settings)
        return cls(
            url=url,
            total_tasks=total_tasks,
            timeout_seconds=timeout_seconds,
            workers=resolved_workers,
            pool_max_idle_per_host=(
                pool_max_idle_per_host
                if pool_max_idle_per_host is not None
                else max(resolved_workers * 2, 1)
            ),
            pool_idle_timeout=(
                pool_idle_timeout if pool_idle_timeout is not None else settings.pool_idle_timeout
            ),
            request_timeout=(
                request_timeout if request_timeout is not None else settings.request_timeout
            ),
            race_cancellation=race_cancellation,
        )


def default_worker_count(settings: RwrkSettings) -> int:
    """Return the default worker count for this machine."""
    return (os.cpu_count() or 1) * settings.workers_per_cpu


def load_config() -> RwrkSettings:
    """Load rwrk defaults from environment variables.

    Environment variables:
        RWRK_WORKERS_PER_CPU: Workers per CPU core (default: 48).
        RWRK_POOL_IDLE_TIMEOUT: Idle connection timeout in seconds (default: 90).
        RWRK_REQUEST_TIMEOUT: Per-request timeout in seconds (default: 30.0).

    Returns:
        Populated RwrkSettings instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    per_cpu_str = os.environ.get("RWRK_WORKERS_PER_CPU", "48")
    idle_str = os.environ.get("RWRK_POOL_IDLE_TIMEOUT", "90")
    timeout_str = os.environ.get("RWRK_REQUEST_TIMEOUT", "30.0")

    try:
        per_cpu = int(per_cpu_str)
    except ValueError:
        msg = f"RWRK_WORKERS_PER_CPU must be an integer, got: {per_cpu_str!r}"
        raise ConfigError(msg) from None

    if per_cpu < 1:
        msg = f"RWRK_WORKERS_PER_CPU must be >= 1, got: {per_cpu}"
        raise ConfigError(msg)

    try:
        idle_timeout = float(idle_str)
    except ValueError:
        msg = f"RWRK_POOL_IDLE_TIMEOUT must be a number, got: {idle_str!r}"
        raise ConfigError(msg) from None

    if idle_timeout <= 0:
        msg = f"RWRK_POOL_IDLE_TIMEOUT must be positive, got: {idle_timeout}"
        raise ConfigError(msg)

    try:
        timeout = float(timeout_str)
    except ValueError:
        msg = f"RWRK_REQUEST_TIMEOUT must be a number, got: {timeout_str!r}"
        raise ConfigError(msg) from None

    if timeout <= 0:
        msg = f"RWRK_REQUEST_TIMEOUT must be positive, got: {timeout}"
        raise ConfigError(msg)

    return RwrkSettings(
        workers_per_cpu=per_cpu,
        pool_idle_timeout=idle_timeout,
        request_timeout=timeout,
    )
