"""Run the built-in test suites over HTTP."""
from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, Query

from huddle.tests.harness import TestHarness


def create_testing_router(ctx) -> APIRouter:
    router = APIRouter(tags=["testing"])
    logger = logging.getLogger("huddle.api.testing")
    harness = TestHarness(ctx.test_logs_dir)

    @router.get("/api/test/suites")
    async def list_suites() -> dict:
        return {"status": "ok", "suites": harness.get_available_suites()}

    @router.post("/api/test/run")
    async def run_tests(
        suite: Optional[str] = Query(None, description="Suite ID to run"),
        all_suites: bool = Query(False, alias="all", description="Run all suites"),
    ) -> dict:
        """Run one suite, or every suite with ?all=true."""
        if not all_suites and not suite:
            return {
                "status": "error",
                "message": "Specify ?suite=<suite_id> or ?all=true",
                "available_suites": list(harness.suites.keys()),
            }

        start_time = time.perf_counter()
        target = "all" if all_suites else suite
        logger.info("Test run requested: %s", target)
        outcome = await (harness.run_all() if all_suites else harness.run_suite(suite))
        logger.info(
            "Test run %s finished in %.2f ms: %s",
            target,
            (time.perf_counter() - start_time) * 1000,
            outcome.get("log_file"),
        )
        return outcome

    return router
