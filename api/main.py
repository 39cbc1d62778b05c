from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime, timezone
import asyncio
import logging
import os
import threading
from dotenv import load_dotenv

load_dotenv()

# Core Modules
from graph_portal_core.config import load_service_settings
from graph_portal_core.extractor import RelationshipExtractor
from graph_portal_core.visualizer import GraphVisualizer
from graph_portal_core.exporter import GraphImageExporter
from exception.custom_exception import InputValidationError, LayoutCancelledError
from logger import GLOBAL_LOGGER as log

from fastapi.middleware.cors import CORSMiddleware

SERVICE_NAME = "graph-portal"

settings = load_service_settings()
logging.getLogger(log.name).setLevel(settings.log_level)

app = FastAPI(title="Graph Portal API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize modules
extractor = RelationshipExtractor(deduplicate_edges=settings.deduplicate_edges)
visualizer = GraphVisualizer()
image_exporter = GraphImageExporter()


class ParseRequest(BaseModel):
    text: Optional[str] = None


class GraphNode(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    label: str


class GraphEdge(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Union[int, str]
    from_: str = Field(alias="from")
    to: str
    color: Optional[str] = None


class VisualizeRequest(BaseModel):
    nodes: Optional[List[GraphNode]] = None
    edges: Optional[List[GraphEdge]] = None
    seed: Optional[int] = Field(None, ge=0)


class ExportRequest(BaseModel):
    nodes: Optional[List[Dict[str, Any]]] = None
    edges: Optional[List[Dict[str, Any]]] = None


def error_response(status_code: int, message: str, details: Optional[str] = None) -> JSONResponse:
    content = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = _format_validation_errors(exc)
    log.warning("Rejected invalid request", path=request.url.path, details=details)
    return error_response(400, "Invalid request", details)


def _drain_abandoned_layout(task: "asyncio.Future") -> None:
    if not task.cancelled() and task.exception() is not None:
        log.warning("Abandoned layout stopped", error=str(task.exception()))


@app.get("/")
def health_check():
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/parse-text")
async def parse_text(request: ParseRequest):
    """
    Extracts nodes and directed edges from free text.
    An empty edge list is a valid answer; the client decides how to report it.
    """
    if not request.text:
        return error_response(400, "No text provided")

    try:
        log.info("Parsing text", length=len(request.text))
        result = extractor.extract(request.text)
        log.info("Parsing result", node_count=result["stats"]["nodeCount"], edge_count=result["stats"]["edgeCount"])
        return result
    except Exception as e:
        log.exception("Parsing failed", error=str(e))
        return error_response(500, "Error parsing text", str(e))


@app.post("/generate-visual")
async def generate_visual(request: VisualizeRequest):
    """
    Lays out an extracted graph for the front end.
    The layout runs in the thread pool and is cancelled once the timeout elapses.
    """
    if request.nodes is None or request.edges is None:
        return error_response(400, "Nodes and edges are required")

    nodes = [node.model_dump() for node in request.nodes]
    edges = [edge.model_dump(by_alias=True, exclude_none=True) for edge in request.edges]
    log.info("Generating visualization", node_count=len(nodes), edge_count=len(edges))

    cancel_event = threading.Event()
    task = asyncio.ensure_future(
        run_in_threadpool(
            visualizer.generate_visual,
            nodes,
            edges,
            seed=request.seed,
            cancel_event=cancel_event,
        )
    )
    # asyncio.wait does not cancel the worker; the event tells it to stop
    done, _ = await asyncio.wait({task}, timeout=settings.layout_timeout_seconds)
    if not done:
        cancel_event.set()
        task.add_done_callback(_drain_abandoned_layout)
        log.error("Layout timed out", node_count=len(nodes), timeout=settings.layout_timeout_seconds)
        return error_response(504, "Layout timed out")

    try:
        return task.result()
    except LayoutCancelledError as e:
        return error_response(504, "Layout cancelled", e.error_message)
    except InputValidationError as e:
        return error_response(400, e.error_message)
    except Exception as e:
        log.exception("Visualization failed", error=str(e))
        return error_response(500, "Error generating visualization", str(e))


@app.post("/export-graph-image")
async def export_graph_image(request: ExportRequest):
    """
    Renders the (possibly hand-arranged) graph to PNG for pasting into documents.
    """
    try:
        png = await run_in_threadpool(image_exporter.export_png, request.nodes or [], request.edges or [])
        return Response(content=png, media_type="image/png")
    except InputValidationError as e:
        return error_response(400, e.error_message)
    except Exception as e:
        log.exception("Graph export failed", error=str(e))
        return error_response(500, "Error exporting graph", str(e))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8001")))
