"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"omni_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"omni_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SEARCH_QUERIES = Counter(
	"omni_proximity_search_total",
	"Proximity searches served",
	["mode", "result"],
)

SEARCH_CANDIDATES = Histogram(
	"omni_proximity_candidates",
	"Rows surviving the candidate filter per search",
	buckets=(0, 10, 50, 100, 500, 1000, 5000, 20000, 100000),
)

SEARCH_LATENCY = Histogram(
	"omni_proximity_search_duration_seconds",
	"Proximity search latency (filter, distance, sort, hydrate)",
	["mode"],
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

BACKGROUND_RUNS = Counter(
	"omni_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"omni_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0),
)

RETENTION_DELETED = Counter(
	"omni_retention_rows_deleted_total",
	"Rows removed by retention sweeps",
	["resource_class"],
)

LEADERBOARD_SIZE = Gauge(
	"omni_leaderboard_cache_rows",
	"Rows in the current leaderboard cache generation",
)

LEADERBOARD_LAST_REFRESH = Gauge(
	"omni_leaderboard_last_refresh_timestamp_seconds",
	"Unix time of the last successful leaderboard refresh",
)

REDIS_UP = Gauge("omni_redis_up", "Redis reachable (1) or not (0)")
POSTGRES_UP = Gauge("omni_postgres_up", "Postgres reachable (1) or not (0)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def observe_search(mode: str, result: str, *, candidates: int | None = None, elapsed_seconds: float | None = None) -> None:
	SEARCH_QUERIES.labels(mode=mode, result=result).inc()
	if candidates is not None:
		SEARCH_CANDIDATES.observe(candidates)
	if elapsed_seconds is not None:
		SEARCH_LATENCY.labels(mode=mode).observe(elapsed_seconds)


def record_job_run(name: str, *, result: str, duration_seconds: float | None = None) -> None:
	BACKGROUND_RUNS.labels(name=name, result=result).inc()
	if duration_seconds is not None:
		BACKGROUND_DURATION.labels(name=name).observe(duration_seconds)


def inc_retention_deleted(resource_class: str, count: int) -> None:
	if count > 0:
		RETENTION_DELETED.labels(resource_class=resource_class).inc(count)


def mark_leaderboard_refresh(rows: int, refreshed_at_epoch: float) -> None:
	LEADERBOARD_SIZE.set(rows)
	LEADERBOARD_LAST_REFRESH.set(refreshed_at_epoch)


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1 if ok else 0)


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)
