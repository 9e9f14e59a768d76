"""
HTTP adapter exposing the knowledge graph operations.

The core does no locking, so every route that touches the graph holds the
app's lock for the whole call.
"""

import threading
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .schemas import (
    AddObservationsRequest,
    CreateEntitiesRequest,
    DeleteEntitiesRequest,
    DeleteObservationsRequest,
    ErrorResponse,
    GraphResponse,
    HealthResponse,
    MessageResponse,
    RebuildResponse,
    RelationsRequest,
    SearchRequest,
    SearchResponse,
)
from ..core.config import VERSION, Settings, ensure_data_directory
from ..core.errors import (
    ConfigurationError,
    KnowledgeGraphError,
    NotFoundError,
    ProviderError,
    ValidationError,
    VectorIndexError,
    VectorStoreConnectionError,
)
from ..core.manager import KnowledgeGraphManager
from ..util.logging import configure_logging, logger

# Most specific first
ERROR_STATUS = [
    (NotFoundError, 404),
    (ValidationError, 400),
    (ProviderError, 502),
    (VectorStoreConnectionError, 503),
    (VectorIndexError, 502),
    (ConfigurationError, 500),
]


def status_for(error: KnowledgeGraphError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def create_app(manager: Optional[KnowledgeGraphManager] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    """Build the app. Without a manager, one is wired from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.manager is None:
            resolved = settings or Settings.from_env()
            issues = resolved.validate()
            if issues:
                raise ConfigurationError("; ".join(issues))
            configure_logging(resolved.log_level)
            ensure_data_directory(resolved)
            app.state.manager = KnowledgeGraphManager.from_settings(resolved)
            app.state.manager.initialize()
            logger.info(f"Knowledge graph API ready (collection={resolved.collection_name})")
        yield

    debug = bool(settings and settings.debug)
    app = FastAPI(
        title="Qdrant Memory API",
        version=VERSION,
        description="Knowledge graph memory with a synchronized semantic index",
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
        lifespan=lifespan,
    )
    app.state.manager = manager
    app.state.lock = threading.Lock()

    @app.exception_handler(KnowledgeGraphError)
    async def knowledge_graph_error_handler(request: Request, exc: KnowledgeGraphError):
        status = status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        body = ErrorResponse(error_type=type(exc).__name__, message=str(exc))
        return JSONResponse(status_code=status, content=body.model_dump())

    def get_manager(request: Request) -> KnowledgeGraphManager:
        if request.app.state.manager is None:
            raise ConfigurationError("Knowledge graph is not initialized")
        return request.app.state.manager

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint(manager: KnowledgeGraphManager = Depends(get_manager)):
        """Check service health and graph size."""
        with app.state.lock:
            graph = manager.read_graph()
        return HealthResponse(
            status="healthy",
            version=VERSION,
            entity_count=len(graph.entities),
            relation_count=len(graph.relations),
        )

    @app.get("/graph", response_model=GraphResponse)
    def read_graph(manager: KnowledgeGraphManager = Depends(get_manager)):
        with app.state.lock:
            graph = manager.read_graph()
        return GraphResponse(**graph.to_dict())

    @app.post("/entities", response_model=MessageResponse)
    def create_entities(req: CreateEntitiesRequest, manager: KnowledgeGraphManager = Depends(get_manager)):
        with app.state.lock:
            manager.create_entities([e.to_entity() for e in req.entities])
        return MessageResponse(message="Entities created successfully")

    @app.post("/relations", response_model=MessageResponse)
    def create_relations(req: RelationsRequest, manager: KnowledgeGraphManager = Depends(get_manager)):
        with app.state.lock:
            manager.create_relations([r.to_relation() for r in req.relations])
        return MessageResponse(message="Relations created successfully")

    @app.post("/observations", response_model=MessageResponse)
    def add_observations(req: AddObservationsRequest, manager: KnowledgeGraphManager = Depends(get_manager)):
        with app.state.lock:
            for obs in req.observations:
                manager.add_observations(obs.entityName, obs.contents)
        return MessageResponse(message="Observations added successfully")

    @app.post("/entities/delete", response_model=MessageResponse)
    def delete_entities(req: DeleteEntitiesRequest, manager: KnowledgeGraphManager = Depends(get_manager)):
        with app.state.lock:
            manager.delete_entities(req.entityNames)
        return MessageResponse(message="Entities deleted successfully")

    @app.post("/observations/delete", response_model=MessageResponse)
    def delete_observations(req: DeleteObservationsRequest, manager: KnowledgeGraphManager = Depends(get_manager)):
        with app.state.lock:
            for deletion in req.deletions:
                manager.delete_observations(deletion.entityName, deletion.observations)
        return MessageResponse(message="Observations deleted successfully")

    @app.post("/relations/delete", response_model=MessageResponse)
    def delete_relations(req: RelationsRequest, manager: KnowledgeGraphManager = Depends(get_manager)):
        with app.state.lock:
            manager.delete_relations([r.to_relation() for r in req.relations])
        return MessageResponse(message="Relations deleted successfully")

    @app.post("/search", response_model=SearchResponse)
    def search_similar(req: SearchRequest, manager: KnowledgeGraphManager = Depends(get_manager)):
        """Semantic search over entities and relations."""
        with app.state.lock:
            results = manager.search_similar(req.query, req.limit)
        return SearchResponse(results=[r.to_dict() for r in results])

    @app.post("/index/rebuild", response_model=RebuildResponse)
    def rebuild_index(manager: KnowledgeGraphManager = Depends(get_manager)):
        """Recreate the vector collection from the graph file."""
        with app.state.lock:
            points = manager.rebuild_index()
        return RebuildResponse(message="Index rebuilt successfully", points=points)

    return app


app = create_app()
