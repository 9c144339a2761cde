import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager, suppress
from datetime import datetime
from typing import List, Literal, Optional

from dotenv import load_dotenv
# Load environment variables before the optimizer reads its config
load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from chat_optimizer import ChatOptimizer, FileTooLargeError, OptimizerConfig, PromptTemplate
from chat_optimizer.cache import fingerprint


# Clean Logging
class ToonLog(logging.Formatter):
    def format(self, record):
        ts = datetime.now().strftime('%H:%M:%S')
        level = record.levelname[0]
        return f"\033[2m{ts}\033[0m [{level}] {record.getMessage()}"

log = logging.getLogger("gateway")
log.setLevel(logging.INFO)
if not log.handlers:
    sh = logging.StreamHandler()
    sh.setFormatter(ToonLog())
    log.addHandler(sh)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PromptRequest(CamelModel):
    prompt: Optional[str] = None
    template_id: Optional[str] = Field(None, alias="templateId")

class MessageRequest(CamelModel):
    message: Optional[str] = None

class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")
    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""

class SessionRequest(CamelModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    max_recent: int = Field(10, alias="maxRecent", ge=1)

class FileRequest(CamelModel):
    content: str
    filename: str
    mime_type: str = Field("text/plain", alias="mimeType")

class ClearRequest(CamelModel):
    max_age_ms: Optional[int] = Field(None, alias="maxAgeMs", ge=0)

class TemplateRequest(CamelModel):
    id: str
    name: str
    template: str
    variables: List[str] = Field(default_factory=list)
    token_count: int = Field(0, alias="tokenCount", ge=0)


def _optimizer(request: Request) -> ChatOptimizer:
    return request.app.state.optimizer


def create_app(optimizer: Optional[ChatOptimizer] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.start_time = time.time()
        app.state.optimizer = optimizer if optimizer is not None else ChatOptimizer(OptimizerConfig.from_env())
        sweeper = asyncio.create_task(app.state.optimizer.run_sweeper())
        log.info("🚀 Chat Optimizer gateway starting...")
        yield
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        log.info("🛑 Gateway stopped")

    app = FastAPI(title="Chat Optimizer Gateway", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/optimizer/prompt")
    async def optimize_prompt(req: PromptRequest, request: Request):
        try:
            result = _optimizer(request).optimize_prompt(req.prompt, template_id=req.template_id)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown template: {req.template_id}")
        return result.to_dict()

    @app.post("/api/optimizer/message")
    async def optimize_message(req: MessageRequest, request: Request):
        return _optimizer(request).optimize_message(req.message).to_dict()

    @app.post("/api/optimizer/session")
    async def optimize_session(req: SessionRequest, request: Request):
        messages = [m.model_dump() for m in req.messages]
        return _optimizer(request).optimize_session(messages, max_recent=req.max_recent).to_dict()

    @app.post("/api/optimizer/file")
    async def optimize_file(req: FileRequest, request: Request):
        optimizer = _optimizer(request)
        try:
            result = await optimizer.optimize_file_attachment(req.content, req.filename, req.mime_type)
        except FileTooLargeError as e:
            raise HTTPException(status_code=413, detail=str(e))
        entry = optimizer.get_file_reference(fingerprint(req.content))
        payload = result.to_dict()
        if entry:
            payload.update({"fileId": entry.id, "url": entry.url})
        return payload

    @app.get("/api/files/{file_id}")
    async def get_file(file_id: str, request: Request):
        content = _optimizer(request).get_stored_content(file_id)
        if content is None:
            raise HTTPException(status_code=404, detail="File not found or expired")
        return {"id": file_id, "content": content}

    @app.get("/api/files/{file_id}/info")
    async def get_file_info(file_id: str, request: Request):
        entry = _optimizer(request).get_file_reference(file_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="File not found or expired")
        return entry.to_dict()

    @app.get("/api/optimizer/stats")
    async def get_stats(request: Request):
        return _optimizer(request).get_stats().to_dict()

    @app.post("/api/optimizer/clear")
    async def clear_expired(request: Request, req: Optional[ClearRequest] = None):
        optimizer = _optimizer(request)
        cleared = optimizer.clear_expired(req.max_age_ms if req else None)
        return {"cleared": cleared, "stats": optimizer.get_stats().to_dict()}

    @app.get("/api/optimizer/templates")
    async def list_templates(request: Request):
        return [t.to_dict() for t in _optimizer(request).list_templates()]

    @app.post("/api/optimizer/templates", status_code=201)
    async def add_template(req: TemplateRequest, request: Request):
        template = PromptTemplate(
            id=req.id,
            name=req.name,
            template=req.template,
            variables=req.variables,
            token_count=req.token_count,
        )
        _optimizer(request).add_template(template)
        return template.to_dict()

    @app.get("/health")
    async def health(request: Request):
        return {"status": "ok", "uptime": int(time.time() - request.app.state.start_time)}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
