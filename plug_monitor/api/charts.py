"""
Chart and raw-data endpoints.

- GET /main-chart/data: today-by-hour, last-7-days and last-30-days rollups
  for the request's timezone, cached best-effort in Redis.
- GET /data: the latest raw samples, flattened to ``{time, <code>: value}``.
- GET /debug-data: store counts and the latest samples for troubleshooting.

Failures are reported to the caller as ``{"success": false, ...}`` JSON with
HTTP 500 and never affect the polling loop.

CHANGELOG:
- 2026-10-12: Serve /data from the store instead of a placeholder (STORY-015)
- 2026-10-11: Cache chart payloads in Redis (STORY-014)
- 2026-10-05: Initial creation (STORY-008)

TODO:
- None
"""

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from plug_monitor.api.deps import AppComponents, Zone
from plug_monitor.cache.redis_client import chart_cache_key
from plug_monitor.models import Sample
from plug_monitor.services.calendar import day_boundaries, offset_label, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["charts"])

LATEST_DATA_LIMIT = 60
DEBUG_LATEST_LIMIT = 10


def _flatten(sample: Sample) -> dict[str, Any]:
    """Flatten a sample to ``{"time": iso, code: value, ...}``."""
    row: dict[str, Any] = {"time": sample.timestamp.isoformat()}
    for reading in sample.readings:
        row[reading.code] = reading.value
    return row


@router.get("/main-chart/data", response_model=None)
async def main_chart_data(components: AppComponents, zone: Zone) -> dict | JSONResponse:
    """Return the today/week/month chart buckets for the request's timezone.

    Returns:
        dict: ``{"success": true, "data": {"today": [...], "week": [...],
        "month": [...]}}``; HTTP 500 with error details on failure.
    """
    cache_key = chart_cache_key(offset_label(zone.tz))
    cached = await components.cache.get_json(cache_key)
    if cached is not None:
        return {"success": True, "data": cached}

    try:
        chart = await components.aggregation.chart(zone.tz)
    except Exception as exc:
        logger.error("Error fetching chart data (timezone=%s)", zone.name, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to fetch chart data",
                "details": str(exc),
            },
        )

    data = {
        frame: [bucket.model_dump() for bucket in buckets]
        for frame, buckets in chart.items()
    }
    await components.cache.set_json(cache_key, data)
    logger.info(
        "Chart data served (timezone=%s, hours with data=%d)",
        zone.name,
        sum(1 for bucket in chart["today"] if bucket.sample_count),
    )
    return {"success": True, "data": data}


@router.get("/data", response_model=None)
async def latest_data(components: AppComponents) -> list[dict[str, Any]] | JSONResponse:
    """Return the latest raw samples, newest first."""
    try:
        samples = await components.store.latest(LATEST_DATA_LIMIT)
    except Exception as exc:
        logger.error("Error fetching latest samples", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch data", "details": str(exc)},
        )
    return [_flatten(sample) for sample in samples]


@router.get("/debug-data", response_model=None)
async def debug_data(components: AppComponents, zone: Zone) -> dict[str, Any] | JSONResponse:
    """Return today's bounds, record counts and the latest raw samples."""
    start, end = day_boundaries(utc_now(), zone.tz)
    try:
        latest = await components.store.latest(DEBUG_LATEST_LIMIT)
        today_count = await components.store.count(start, end)
        total_count = await components.store.count()
    except Exception as exc:
        logger.error("Error reading debug data", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return {
        "timezone": zone.name,
        "todayStart": start.isoformat(),
        "todayEnd": end.isoformat(),
        "todayRecordCount": today_count,
        "totalRecordCount": total_count,
        "latestRecords": [
            {"timestamp": sample.timestamp.isoformat(), "status": sample.status()}
            for sample in latest
        ],
    }
