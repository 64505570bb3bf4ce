"""
HTTP API for the translation knowledge base.

The lifespan builds the entry store and the vector clients, ensures the
collection, and records the result in one VectorServiceState. Handlers get
them through app.state; nothing is cached at module level.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .schemas import (
    AdvancedVectorSearchHit,
    EntryCreateRequest,
    EntryDeleteResponse,
    EntryResponse,
    EntryUpdateRequest,
    StatusResponse,
    ThresholdResponse,
    TranslationMemoryItem,
    TranslationMemoryRequest,
    TranslationMemoryResponse,
    VectorSearchHit,
)
from ..core.config import (
    PRIMARY_LANGUAGE,
    SECONDARY_LANGUAGE,
    VERSION,
    debug_enabled,
    get_embedding_provider,
    get_vector_store,
    validate_vector_config,
)
from ..core.dao import EntryDAO
from ..core.errors import (
    DuplicateEntryError,
    EntryNotFoundError,
    InvalidInputError,
    VectorServiceUnavailable,
)
from ..core.knowledge_base import KnowledgeBaseService
from ..core.state import VectorServiceState
from ..vector.service import SEARCH_TYPES, VectorMemoryService
from ..vector.thresholds import SimilarityThresholds, recommended_threshold
from ..vector.translation_memory import TranslationMemoryRetriever
from util.logging import logger


def build_memory_service() -> Optional[VectorMemoryService]:
    """Vector memory from configuration, or None when vector features are disabled."""
    store = get_vector_store()
    embedder = get_embedding_provider()
    if store is None or embedder is None:
        return None
    return VectorMemoryService(embedder, store, PRIMARY_LANGUAGE)


def create_app(dao: Optional[EntryDAO] = None, memory: Optional[VectorMemoryService] = None,
               state: Optional[VectorServiceState] = None, use_config: bool = True) -> FastAPI:
    """
    Build the application.

    Args:
        dao: Entry store; defaults to the configured SQLite database
        memory: Vector memory service; defaults to the configured clients
        state: Vector service state; a fresh one by default
        use_config: Build missing collaborators from configuration at startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if use_config:
            issues = validate_vector_config()
            if issues:
                logger.log_operation("app.config", "invalid", {"issues": issues}, logging.WARNING)

        app.state.dao = dao or EntryDAO()
        app.state.memory = memory if memory is not None or not use_config else build_memory_service()
        app.state.vector_state = state or VectorServiceState()

        await app.state.vector_state.initialize(app.state.memory)

        app.state.kb = KnowledgeBaseService(app.state.dao, app.state.memory, app.state.vector_state)
        app.state.retriever = TranslationMemoryRetriever(app.state.memory, app.state.vector_state,
                                                         PRIMARY_LANGUAGE)
        logger.log_operation("app.startup", "success", {
            "version": VERSION,
            "vector_service": app.state.vector_state.available
        })
        try:
            yield
        finally:
            app.state.vector_state.teardown()
            if app.state.memory is not None:
                await app.state.memory.aclose()
            logger.log_operation("app.shutdown", "success")

    app = FastAPI(
        title="Translation Memory API",
        version=VERSION,
        description="Translation knowledge base with vector translation-memory retrieval",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def get_kb(request: Request) -> KnowledgeBaseService:
    return request.app.state.kb


def get_retriever(request: Request) -> TranslationMemoryRetriever:
    return request.app.state.retriever


def get_vector_state(request: Request) -> VectorServiceState:
    return request.app.state.vector_state


def _entry_response(entry) -> EntryResponse:
    return EntryResponse(**entry.to_dict())


def _register_routes(app: FastAPI) -> None:

    @app.get("/api/status", response_model=StatusResponse)
    def status_endpoint(request: Request, state: VectorServiceState = Depends(get_vector_state)):
        """Service status and vector availability."""
        dao = request.app.state.dao
        db_health = dao.health_check()
        return StatusResponse(
            status="ok" if db_health else "degraded",
            version=VERSION,
            vector_service=state.available,
            vector_reason=state.reason,
            db_health=db_health,
            entry_count=dao.count_entries() if db_health else 0
        )

    @app.get("/api/entries", response_model=List[EntryResponse])
    async def list_entries_endpoint(search: Optional[str] = None,
                                    limit: int = Query(100, ge=1, le=1000),
                                    offset: int = Query(0, ge=0),
                                    kb: KnowledgeBaseService = Depends(get_kb)):
        entries = await kb.search_entries(search, limit, offset)
        return [_entry_response(entry) for entry in entries]

    @app.post("/api/entries", response_model=EntryResponse, status_code=201)
    async def add_entry_endpoint(req: EntryCreateRequest, kb: KnowledgeBaseService = Depends(get_kb)):
        try:
            entry = await kb.add_entry(req.texts())
        except DuplicateEntryError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except InvalidInputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _entry_response(entry)

    @app.put("/api/entries/{chinese}", response_model=EntryResponse)
    async def update_entry_endpoint(chinese: str, req: EntryUpdateRequest,
                                    kb: KnowledgeBaseService = Depends(get_kb)):
        try:
            entry = await kb.update_entry(chinese, req.texts())
        except InvalidInputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except EntryNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return _entry_response(entry)

    @app.delete("/api/entries/{chinese}", response_model=EntryDeleteResponse)
    async def delete_entry_endpoint(chinese: str, kb: KnowledgeBaseService = Depends(get_kb)):
        try:
            result = await kb.delete_entry(chinese)
        except EntryNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return EntryDeleteResponse(**result)

    @app.get("/api/vector-search", response_model=List[VectorSearchHit])
    async def vector_search_endpoint(query: Optional[str] = None, limit: int = Query(3, ge=1, le=50),
                                     kb: KnowledgeBaseService = Depends(get_kb)):
        """Nearest entries on the primary-language field."""
        if not kb.vector_available:
            raise HTTPException(status_code=503, detail="Vector search service unavailable")
        if not query or not query.strip():
            raise HTTPException(status_code=400, detail="Search query cannot be empty")

        try:
            hits = await kb.vector_search(query, "chinese", limit)
        except VectorServiceUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))
        return [VectorSearchHit(id=hit.id, score=hit.score, metadata=hit.payload) for hit in hits]

    @app.get("/api/vector-search/advanced", response_model=List[AdvancedVectorSearchHit])
    async def advanced_vector_search_endpoint(query: Optional[str] = None, type: str = "chinese",
                                              limit: int = Query(3, ge=1, le=50),
                                              kb: KnowledgeBaseService = Depends(get_kb)):
        """Nearest entries on the field of the given type, with their rows."""
        if not kb.vector_available:
            raise HTTPException(status_code=503, detail="Vector search service unavailable")
        if not query or not query.strip():
            raise HTTPException(status_code=400, detail="Search query cannot be empty")
        if type.lower() not in SEARCH_TYPES:
            raise HTTPException(status_code=400,
                                detail=f"Unsupported search type, expected one of: {sorted(SEARCH_TYPES)}")

        try:
            results = await kb.advanced_vector_search(query, type.lower(), limit)
        except VectorServiceUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))
        return [AdvancedVectorSearchHit(**result) for result in results]

    @app.post("/api/translation-memory", response_model=TranslationMemoryResponse)
    async def translation_memory_endpoint(req: TranslationMemoryRequest,
                                          retriever: TranslationMemoryRetriever = Depends(get_retriever)):
        """Memory pairs for a source text; an empty list when there is none."""
        threshold = None
        if req.use_threshold:
            cross_language = req.source_language not in (PRIMARY_LANGUAGE, SECONDARY_LANGUAGE)
            threshold = recommended_threshold(cross_language=cross_language, use_case="translation")

        try:
            candidates = await retriever.get_translation_memory(
                req.text, req.source_language, req.target_language,
                max_results=req.max_results, min_score=threshold
            )
        except InvalidInputError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return TranslationMemoryResponse(
            candidates=[
                TranslationMemoryItem(source=c.source, target=c.target, score=c.score,
                                      label=c.label.value, record_id=c.record_id)
                for c in candidates
            ],
            tm_list=[c.as_tm_pair() for c in candidates],
            threshold=threshold
        )

    @app.get("/api/similarity-thresholds", response_model=ThresholdResponse)
    def thresholds_endpoint(cross_language: bool = False, similarity_level: str = "medium",
                            use_case: str = "search"):
        """Threshold table and the cutoff recommended for the given search."""
        return ThresholdResponse(
            thresholds=SimilarityThresholds.as_dict(),
            recommended=recommended_threshold(cross_language, similarity_level, use_case),
            cross_language=cross_language,
            similarity_level=similarity_level,
            use_case=use_case
        )


app = create_app()
