"""Job endpoints invoked by the external scheduler."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse

from omnicore.domain.leaderboards.jobs import run_rank_refresh
from omnicore.errors import SweepFailure
from omnicore.maintenance.retention import ResourceClass, RetentionSweeper
from omnicore.settings import settings

router = APIRouter(prefix="/internal/jobs", tags=["internal"])

_sweeper = RetentionSweeper()


def verify_internal_secret(x_internal_secret: str = Header(..., alias="X-Internal-Secret")) -> None:
	# Fail closed: without a configured secret the job endpoints are disabled.
	if not settings.internal_secret or x_internal_secret != settings.internal_secret:
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid internal secret")


@router.post("/leaderboard-refresh")
async def leaderboard_refresh(_auth: None = Depends(verify_internal_secret)):
	report = await run_rank_refresh()
	code = status.HTTP_200_OK if report["success"] else status.HTTP_500_INTERNAL_SERVER_ERROR
	return JSONResponse(status_code=code, content=report)


@router.post("/retention")
async def sweep_all(_auth: None = Depends(verify_internal_secret)):
	report = await _sweeper.sweep_all()
	code = status.HTTP_200_OK if report.ok else status.HTTP_500_INTERNAL_SERVER_ERROR
	return JSONResponse(status_code=code, content=report.to_payload())


@router.post("/retention/{resource_class}")
async def sweep_one(resource_class: ResourceClass, _auth: None = Depends(verify_internal_secret)):
	try:
		deleted = await _sweeper.sweep(resource_class)
	except SweepFailure as exc:
		return JSONResponse(
			status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
			content={
				"success": False,
				"resourceClass": resource_class.value,
				"error": exc.message,
				"deleted": exc.deleted_before_failure,
			},
		)
	return {"success": True, "resourceClass": resource_class.value, "deleted": deleted}
