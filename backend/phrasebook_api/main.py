"""FastAPI application for the file-backed phrasebook API"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from fastapi import Body, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from phrasebook_config.loader import ConfigLoader
from phrasebook_core.catalog import DuplicatePhraseError, PhraseCatalog, PhraseNotFoundError
from phrasebook_core.csv_io import PhraseCSV
from phrasebook_core.normalizer import Normalizer
from phrasebook_core.progress import ProgressMigrator, StudyProgress
from phrasebook_core.schemas import (
    ImportResult, MigrationSummary, PhraseIn, PhrasePage, PreferencesSchema, StudiedUpdate
)
from phrasebook_core.store import PhraseStore

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _first_error(exc) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    return str(errors[0].get("msg", "Invalid request")).removeprefix("Value error, ")


def create_app(config: Optional[Dict[str, Any]] = None) -> FastAPI:
    """
    Build the API application

    Args:
        config: Configuration dictionary (defaults to ConfigLoader.load_config())

    Returns:
        FastAPI application bound to a PhraseStore in config["data_dir"]
    """
    config = config or ConfigLoader.load_config()
    store = PhraseStore(config["data_dir"])
    max_upload_bytes = int(config.get("max_upload_mb", 10)) * 1024 * 1024
    default_page_size = int(config.get("page_size", 10))

    app = FastAPI(title="Phrasebook API", version="1.0.0")
    app.state.store = store
    app.state.config = config

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get("cors_origins", []),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    media_dir = Path(config.get("media_dir", ""))
    if config.get("media_dir") and media_dir.is_dir():
        app.mount("/media", StaticFiles(directory=str(media_dir)), name="media")
        logger.info(f"Media files served from: {media_dir}")

    # Migrate legacy progress keys once per load
    _, progress, _ = store.load_session()
    logger.info(f"Data stored in: {store.data_dir} ({len(progress)} studied)")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = exc.detail
        if exc.status_code == 404 and message == "Not Found":
            message = "Endpoint not found"
        return _error(exc.status_code, str(message))

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError):
        return _error(400, _first_error(exc))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error: {exc}", exc_info=True)
        return _error(500, "Internal server error")

    # Phrases

    @app.get("/api/phrases")
    async def list_phrases(
        q: Optional[str] = None,
        show_studied: Optional[bool] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ):
        """All phrases, or one filtered page when any query parameter is given"""
        catalog = PhraseCatalog(store.read_phrases())
        if q is None and show_studied is None and page is None and page_size is None:
            return [phrase.model_dump() for phrase in catalog]

        if show_studied is None:
            show_studied = store.read_show_studied()
        size = max(1, page_size or default_page_size)
        rows = catalog.filter(store.read_progress(), q or "", show_studied)
        items, current, total_pages = PhraseCatalog.paginate(rows, page or 1, size)
        return PhrasePage(
            items=items,
            page=current,
            pageSize=size,
            totalPages=total_pages,
            totalItems=len(rows),
            query=q,
        )

    @app.post("/api/phrases", status_code=201)
    async def add_phrase(body: PhraseIn):
        if not Normalizer.trim(body.korean) or not Normalizer.trim(body.english):
            raise HTTPException(status_code=400, detail="Korean and English text are required")

        catalog = PhraseCatalog(store.read_phrases())
        try:
            phrase = catalog.add(body.korean, body.english, body.audio)
        except DuplicatePhraseError as e:
            raise HTTPException(status_code=409, detail=str(e))

        store.write_phrases(catalog.phrases)
        logger.info(f"Added phrase {phrase.id}")
        return phrase.model_dump()

    @app.put("/api/phrases/{index}")
    async def update_phrase(index: int, body: PhraseIn):
        if not Normalizer.trim(body.korean) or not Normalizer.trim(body.english):
            raise HTTPException(status_code=400, detail="Korean and English text are required")

        catalog = PhraseCatalog(store.read_phrases())
        try:
            previous, updated = catalog.update(index, body.korean, body.english, body.audio)
        except PhraseNotFoundError:
            raise HTTPException(status_code=404, detail="Phrase not found")
        except DuplicatePhraseError as e:
            raise HTTPException(status_code=409, detail=str(e))

        store.write_phrases(catalog.phrases)
        if previous.id != updated.id:
            progress = store.read_progress()
            renamed = StudyProgress.rename(progress, previous.id, updated.id)
            if renamed is not progress:
                store.write_progress(renamed)
        return updated.model_dump()

    @app.delete("/api/phrases/{index}")
    async def delete_phrase(index: int):
        catalog = PhraseCatalog(store.read_phrases())
        try:
            removed = catalog.delete(index)
        except PhraseNotFoundError:
            raise HTTPException(status_code=404, detail="Phrase not found")

        store.write_phrases(catalog.phrases)
        progress = store.read_progress()
        remaining = StudyProgress.unmark_studied(progress, removed.id)
        if remaining is not progress:
            store.write_progress(remaining)
        return removed.model_dump()

    @app.post("/api/import", response_model=ImportResult)
    async def import_csv(csvFile: Optional[UploadFile] = File(None)):
        if csvFile is None:
            raise HTTPException(status_code=400, detail="No CSV file provided")

        filename = csvFile.filename or ""
        if csvFile.content_type != "text/csv" and not filename.lower().endswith(".csv"):
            raise HTTPException(status_code=400, detail="Only CSV files are allowed")

        payload = await csvFile.read(max_upload_bytes + 1)
        if len(payload) > max_upload_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File too large (max {config.get('max_upload_mb', 10)}MB)",
            )

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")

        incoming = PhraseCSV.parse(text)
        if not incoming:
            raise HTTPException(status_code=400, detail="No valid phrases found in CSV")

        catalog = PhraseCatalog(store.read_phrases())
        added = catalog.merge(incoming)
        store.write_phrases(catalog.phrases)

        return ImportResult(
            message=f"Import successful: {added} new phrases added",
            totalPhrases=len(catalog),
            newPhrases=added,
        )

    # Studied progress

    @app.get("/api/studied")
    async def get_studied():
        return store.read_progress()

    @app.put("/api/studied")
    async def replace_studied(studied: Dict[str, Any] = Body(...)):
        progress = StudyProgress.sanitize(studied)
        store.write_progress(progress)
        return progress

    @app.post("/api/studied/migrate", response_model=MigrationSummary)
    async def migrate_studied():
        result = ProgressMigrator.run(store.read_phrases(), store.read_progress())
        if result.changed:
            store.write_progress(result.progress)
        return MigrationSummary(
            changed=result.changed,
            studied=result.progress,
            carried=result.carried,
            dropped=result.dropped,
        )

    @app.post("/api/studied/{phrase_id}")
    async def set_studied(phrase_id: str, body: StudiedUpdate):
        progress = store.read_progress()
        if body.studied:
            updated = StudyProgress.mark_studied(progress, phrase_id)
        else:
            updated = StudyProgress.unmark_studied(progress, phrase_id)
        if updated is not progress:
            store.write_progress(updated)
        return {"id": phrase_id, "studied": body.studied}

    @app.delete("/api/studied")
    async def clear_studied():
        store.write_progress(StudyProgress.clear_all(store.read_progress()))
        logger.info("All studied data cleared")
        return {"message": "All studied data cleared"}

    # Preferences

    @app.get("/api/preferences", response_model=PreferencesSchema)
    async def get_preferences():
        return PreferencesSchema(showStudied=store.read_show_studied())

    @app.put("/api/preferences", response_model=PreferencesSchema)
    async def update_preferences(body: PreferencesSchema):
        store.write_show_studied(body.showStudied)
        return body

    @app.get("/api/health")
    async def health():
        """Health check endpoint"""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


def run_server(config: Optional[Dict[str, Any]] = None):
    """Serve the API with uvicorn"""
    import uvicorn

    config = config or ConfigLoader.load_config()
    uvicorn.run(create_app(config), host=config["host"], port=int(config["port"]))


if __name__ == "__main__":
    run_server()
