import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from study_note_gen.api.schemas import GenerateRequest, GenerateResponse, NoteContentRequest, NoteContentResponse
from study_note_gen.errors import GenerationCancelled, GenerationError, QuotaSignal
from study_note_gen.models import ChatMessage, DocumentMeta, GenerationRequest
from study_note_gen.service.generator import StudyContentService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="study-note-gen", version="0.1.0")
service = StudyContentService()


@app.exception_handler(QuotaSignal)
async def quota_handler(request: Request, exc: QuotaSignal) -> JSONResponse:
    logger.warning("api.quota path=%s code=%s", request.url.path, exc.code.value)
    return JSONResponse(status_code=429, content=exc.as_payload())


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    logger.error("api.generation_failed path=%s detail=%s", request.url.path, exc.message)
    return JSONResponse(status_code=502, content={"error": exc.message})


@app.exception_handler(GenerationCancelled)
async def cancelled_handler(request: Request, exc: GenerationCancelled) -> JSONResponse:
    return JSONResponse(status_code=499, content={"error": str(exc)})


@app.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


@app.post("/generate", response_model=GenerateResponse)
async def generate(req: GenerateRequest) -> GenerateResponse:
    try:
        request = GenerationRequest(
            kind=req.kind,
            corpus=req.content,
            documents=tuple(DocumentMeta(name=doc.name, type=doc.type) for doc in req.documents),
            detail_level=req.detail_level,
            target_count=req.target_count,
            language=req.language,
            messages=tuple(ChatMessage(role=turn.role, content=turn.content) for turn in req.messages),
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    result = await service.generate(request)
    return GenerateResponse(kind=result.kind, content=result.content, meta=result.meta)


@app.post("/notes/{note_id}/study-content", response_model=NoteContentResponse)
async def generate_study_content(note_id: str, req: NoteContentRequest) -> NoteContentResponse:
    documents = [doc.model_dump() for doc in req.documents]
    if req.kind is None:
        outcome = await service.generate_for_note(note_id, req.content, documents, req.detail_level)
        return NoteContentResponse(**outcome)
    try:
        content = await service.generate_content_type(
            note_id,
            req.kind,
            req.content,
            documents,
            detail_level=req.detail_level,
            target_count=req.target_count,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return NoteContentResponse(note_id=note_id, content=content.model_dump())


@app.get("/notes/{note_id}/study-content")
async def get_study_content(note_id: str) -> dict:
    content = await service.store.get_study_content(note_id)
    return content.model_dump()
