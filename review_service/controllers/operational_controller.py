"""
Operational/Infrastructure endpoints
These endpoints are used by monitoring systems, load balancers, and DevOps tools
"""

import os
import sys
import time
from datetime import datetime

import psutil
from fastapi import Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from review_service.core.config import config
from review_service.core.errors import QueueError
from review_service.core.logger import logger

start_time = time.time()


def _not_ready(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={
            "status": "not ready",
            "service": config.service_name,
            "timestamp": datetime.now().isoformat(),
            "error": reason,
        }
    )


async def _queue_depths(container) -> dict:
    return {
        queue: await container.job_queue.size(queue)
        for queue in (config.statistics_queue, config.cache_invalidation_queue)
    }


def health(request: Request):
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": config.service_name,
        "timestamp": datetime.now().isoformat(),
        "version": config.service_version
    }


async def readiness(request: Request):
    """Ready once MongoDB answers a ping and the job queues can be read"""
    container = getattr(request.app.state, "container", None)
    if container is None:
        return _not_ready("Service container not initialised")

    try:
        await container.db.command("ping")
        queues = await _queue_depths(container)
    except (PyMongoError, QueueError) as e:
        logger.error("Readiness check failed", error=e)
        return _not_ready("Service dependencies not available")

    return {
        "status": "ready",
        "service": config.service_name,
        "timestamp": datetime.now().isoformat(),
        "checks": {"database": "connected", "queues": queues}
    }


def liveness(request: Request):
    return {
        "status": "alive",
        "service": config.service_name,
        "timestamp": datetime.now().isoformat(),
        "uptime": time.time() - start_time
    }


async def metrics(request: Request):
    """Process metrics plus pending job counts per queue when the database is wired"""
    process = psutil.Process()
    memory_info = process.memory_info()

    queues = None
    container = getattr(request.app.state, "container", None)
    if container is not None:
        try:
            queues = await _queue_depths(container)
        except QueueError as e:
            logger.warning("Could not read queue depths", error=e)

    return {
        "service": config.service_name,
        "timestamp": datetime.now().isoformat(),
        "metrics": {
            "uptime": time.time() - start_time,
            "memory": {
                "rss": memory_info.rss,
                "vms": memory_info.vms
            },
            "cpu_percent": process.cpu_percent(),
            "pid": os.getpid(),
            "python_version": sys.version,
            "queues": queues,
        }
    }
