import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel

from rpcprobe.config import ProbeConfig, load_config
from rpcprobe.discovery import AddressDiscoveryEngine
from rpcprobe.dispatcher import RequestDispatcher
from rpcprobe.errors import ConfigError
from rpcprobe.logging_config import setup_logging
from rpcprobe.orchestrator import Orchestrator
from rpcprobe.sink import FileSink

log = logging.getLogger("rpcprobe.app")


class SummaryResp(BaseModel):
    total: int
    succeeded: int
    failed: int
    skipped: int
    success_rate: float


class OutcomeResp(BaseModel):
    method: str
    success: bool
    status: str
    result: Any = None
    error: str | None = None
    error_kind: str | None = None
    error_code: int | str | None = None
    error_details: Any = None
    duration_ms: float | None = None
    timestamp: str


class SuggestionResp(BaseModel):
    address: str
    batch_numbers: list[int]
    message_count: int


def create_app(config: ProbeConfig | None = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the service. `uvicorn rpcprobe.app:create_app --factory` reads config from the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config is None:
            try:
                app.state.config = load_config()
            except ConfigError as e:
                log.error("Configuration error: %s", e)
                raise
            setup_logging(app.state.config.log_dir)
        else:
            app.state.config = config
        app.state.transport = transport
        app.state.run_lock = asyncio.Lock()
        app.state.last_run = None
        log.info("rpcprobe service ready, target %s", app.state.config.rpc_url)
        yield
        log.info("Shutdown complete")

    app = FastAPI(
        title="rpcprobe",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Runs", "description": "Run the suites and read their outcomes"},
            {"name": "Discovery", "description": "Message-proof address discovery"},
        ],
    )
    r_runs = APIRouter(prefix="/runs", tags=["Runs"])
    r_discovery = APIRouter(prefix="/discovery", tags=["Discovery"])

    def _dispatcher(request: Request) -> RequestDispatcher:
        cfg: ProbeConfig = request.app.state.config
        return RequestDispatcher(cfg.rpc_url, timeout=cfg.request_timeout, transport=request.app.state.transport)

    def _last_run(request: Request) -> Orchestrator:
        orchestrator = request.app.state.last_run
        if orchestrator is None:
            raise HTTPException(status_code=404, detail="No run has completed yet")
        return orchestrator

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @r_runs.post("", response_model=SummaryResp)
    async def start_run(request: Request):
        """Run every suite to completion and return the tallies."""
        lock: asyncio.Lock = request.app.state.run_lock
        if lock.locked():
            raise HTTPException(status_code=409, detail="A run is already in progress")
        async with lock:
            cfg: ProbeConfig = request.app.state.config
            sink = FileSink(cfg.log_dir)
            sink.initialize()
            async with _dispatcher(request) as dispatcher:
                orchestrator = Orchestrator(cfg, dispatcher, sink)
                try:
                    summary = await orchestrator.run()
                except Exception as e:
                    log.exception("Run failed")
                    sink.write_fatal(f"{type(e).__name__}: {e}")
                    raise HTTPException(status_code=502, detail=f"Run failed: {e}")
            request.app.state.last_run = orchestrator
            return summary.to_dict()

    @r_runs.get("/latest", response_model=SummaryResp)
    async def latest_summary(request: Request):
        return _last_run(request).ledger.summary().to_dict()

    @r_runs.get("/latest/outcomes", response_model=list[OutcomeResp])
    async def latest_outcomes(request: Request, failed_only: bool = False):
        ledger = _last_run(request).ledger
        outcomes = ledger.non_successes() if failed_only else ledger.outcomes()
        return [o.to_dict() for o in outcomes]

    @r_discovery.get("/suggestions", response_model=list[SuggestionResp])
    async def suggestions(request: Request):
        """Rank recent L2 -> L1 message senders."""
        async with _dispatcher(request) as dispatcher:
            found = await AddressDiscoveryEngine(dispatcher).suggest()
        return [s.to_dict() for s in found]

    app.include_router(r_runs)
    app.include_router(r_discovery)
    return app
