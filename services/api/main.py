"""HTTP service for validating and simulating flows."""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from services.api.routes.flows import executor, router as flows_router
from services.api.middleware import CorrelationIdMiddleware
from services.runtime.handlers.registry import list_node_types
from shared.logging_config import setup_logging

setup_logging("flow-api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    executor.http_client.close()


app = FastAPI(title="Flow Runtime API", version="1.0.0", lifespan=lifespan)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(flows_router, tags=["Flows"])


@app.get("/")
async def root():
    return {"service": "flow-runtime", "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy", "busy": executor.is_running}


@app.get("/node-types")
async def node_types():
    return {"node_types": sorted(t.value for t in list_node_types())}
