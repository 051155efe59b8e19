"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from omnicore.api import internal_ops, leaderboards, ops, proximity
from omnicore.api.errors import install_error_handlers
from omnicore.infra import postgres
from omnicore.maintenance.scheduler import MaintenanceScheduler
from omnicore.obs import init as obs_init
from omnicore.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	scheduler: MaintenanceScheduler | None = None
	if settings.scheduler_enabled:
		# In-process scheduling; deployments with an external cron call /internal/jobs instead.
		scheduler = MaintenanceScheduler()
		scheduler.register_defaults()
		scheduler.start()
		app.state.maintenance_scheduler = scheduler
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		await postgres.close_pool()


app = FastAPI(title="Omni Core", lifespan=lifespan)
install_error_handlers(app)
obs_init(app)

app.include_router(proximity.router, tags=["proximity"])
app.include_router(leaderboards.router, tags=["leaderboard"])
app.include_router(internal_ops.router)
app.include_router(ops.router, tags=["ops"])
