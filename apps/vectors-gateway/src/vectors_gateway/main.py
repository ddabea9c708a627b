"""FastAPI application for the Vectors Gateway.

`create_app()` wires configuration, logging, middleware, error handlers
and routers. The lifespan builds the embedding gateway, the Qdrant store,
the metadata store and the services on top of them, and stores them on
`app.state` for the request dependencies.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vectors_gateway import __version__
from vectors_gateway.api.errors import register_exception_handlers
from vectors_gateway.api.v1 import health
from vectors_gateway.api.v1.router import router as v1_router
from vectors_gateway.config import Settings, get_settings
from vectors_gateway.database.session import close_db, init_db
from vectors_gateway.middleware import RequestContextMiddleware
from vectors_gateway.services.embedding_service import OpenAIEmbeddingGateway
from vectors_gateway.services.metadata_store import SqlAlchemyMetadataStore
from vectors_gateway.services.qdrant_service import QdrantVectorStore
from vectors_gateway.services.reconciliation_service import ReconciliationService
from vectors_gateway.services.retrieval_service import RetrievalService
from vectors_gateway.services.vectorization_pipeline import DocumentVectorizationPipeline
from vectors_gateway.utils.logging import get_logger, setup_logging

logger = get_logger("main")


async def _close_quietly(name: str, resource) -> None:
    if resource is None:
        return
    try:
        await resource.close()
    except Exception as e:
        logger.error(f"Error closing {name}: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(f"Starting Vectors Gateway ({settings.environment.value})")

    try:
        await init_db()
    except Exception as e:
        if settings.is_production:
            logger.error(f"Metadata database initialization failed: {e}", exc_info=True)
            raise
        logger.warning(
            f"Metadata database initialization failed ({e}); "
            "ingest and delete will fail until it is reachable"
        )

    embedding_gateway = OpenAIEmbeddingGateway(settings)
    vector_store = QdrantVectorStore(settings)
    pipeline = DocumentVectorizationPipeline(
        embedding_gateway=embedding_gateway,
        vector_store=vector_store,
        metadata_store=SqlAlchemyMetadataStore(),
        settings=settings,
    )
    app.state.pipeline = pipeline
    app.state.retrieval_service = RetrievalService(embedding_gateway, vector_store)
    app.state.reconciliation_service = ReconciliationService(pipeline)

    logger.info(
        f"Vectors Gateway ready: collection={vector_store.collection_name}, "
        f"model={embedding_gateway.model_name}"
    )
    try:
        yield
    finally:
        logger.info("Shutting down Vectors Gateway")
        await _close_quietly("embedding client", embedding_gateway)
        await _close_quietly("Qdrant client", vector_store)
        await close_db()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging()

    docs_enabled = not settings.is_production
    app = FastAPI(
        title="Vectors Gateway",
        description="Semantic chunking, embedding and vector storage for knowledge base documents",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Last added runs first
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )
    register_exception_handlers(app)

    app.include_router(v1_router)
    # Probes at the root for container orchestrators
    app.include_router(health.router, include_in_schema=False)

    @app.get("/", tags=["root"])
    async def root():
        return {
            "service": settings.app_name,
            "version": __version__,
            "status": "running",
            "environment": settings.environment.value,
            "api": "/api/v1",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "vectors_gateway.main:app",
        host=_settings.server.host,
        port=_settings.server.port,
        reload=_settings.server.reload and _settings.is_development,
        log_level=_settings.log_level.lower(),
    )
