"""FastAPI application exposing the macro registry and evaluator."""

import html
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from persona_macros.config import ConfigLoader
from persona_macros.macros import (
    ChatMessage,
    InvalidMacroKeyError,
    MacroContext,
    MacroEvaluator,
    MacroRegistry,
)

logger = logging.getLogger(__name__)

# Global state
app_state = {
    "system_config": None,
    "registry": None,
    "evaluator": None,
}

ESCAPERS = {
    "none": None,
    "html": lambda value: html.escape(value, quote=True),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("Starting Persona Macros...")

    loader = ConfigLoader()
    system_config = loader.load_system_config()
    registry = MacroRegistry()

    app_state["system_config"] = system_config
    app_state["registry"] = registry
    app_state["evaluator"] = MacroEvaluator(registry, system_config.macros)
    logger.info("✓ Macro registry and evaluator initialized")

    yield

    logger.info("Shutting down Persona Macros...")
    registry.clear()


app = FastAPI(
    title="Persona Macros",
    description="Macro substitution engine for character persona chat",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    macros_registered: int


class RegisterMacroRequest(BaseModel):
    """Register a static macro."""
    value: str = Field(..., description="Text the macro expands to")


class EvaluateRequest(BaseModel):
    """Evaluate macros in a piece of text."""
    content: str
    env: Dict[str, str] = Field(default_factory=dict, description="Call-site macro values")
    chat: List[Dict[str, Any]] = Field(default_factory=list, description="Chat messages, oldest first")
    chat_metadata: Dict[str, Any] = Field(default_factory=dict)
    chat_id: Optional[str] = None
    input_text: str = ""
    main_api: Optional[str] = None
    max_context_size: Optional[int] = Field(default=None, gt=0)
    first_included_message_id: Optional[int] = Field(default=None, ge=0)
    escape: Literal["none", "html"] = "none"


class EvaluateResponse(BaseModel):
    """Evaluation result."""
    result: str
    chat_metadata: Dict[str, Any]
    banned_words: List[str] = []


def _registry() -> MacroRegistry:
    registry = app_state["registry"]
    if registry is None:
        raise HTTPException(status_code=503, detail="Macro registry not initialized")
    return registry


# Routes

@app.get("/health", response_model=HealthResponse)
def health_check():
    """Check system health."""
    registry = app_state["registry"]
    return HealthResponse(
        status="ok",
        macros_registered=len(registry) if registry is not None else 0,
    )


@app.get("/macros", response_model=List[str])
def list_macros():
    """List registered macro names."""
    return sorted(_registry().names())


@app.put("/macros/{name}")
def register_macro(name: str, request: RegisterMacroRequest):
    """Register (or overwrite) a static macro."""
    try:
        _registry().register(name, request.value)
    except InvalidMacroKeyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"name": name.strip(), "registered": True}


@app.delete("/macros/{name}")
def unregister_macro(name: str):
    """Unregister a macro. Unknown names are accepted."""
    try:
        _registry().unregister(name)
    except InvalidMacroKeyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"name": name.strip(), "registered": False}


@app.post("/evaluate", response_model=EvaluateResponse)
def evaluate(request: EvaluateRequest):
    """Expand macros in the request content."""
    evaluator: Optional[MacroEvaluator] = app_state["evaluator"]
    if evaluator is None:
        raise HTTPException(status_code=503, detail="Macro evaluator not initialized")

    banned_words: List[str] = []
    context = MacroContext(
        chat=[ChatMessage.from_dict(message) for message in request.chat],
        chat_metadata=dict(request.chat_metadata),
        chat_id=request.chat_id,
        input_text=request.input_text,
        main_api=request.main_api,
        max_context_size=request.max_context_size,
        first_included_message_id=request.first_included_message_id,
        on_banned_word=banned_words.append,
    )

    result = evaluator.evaluate(
        request.content,
        request.env,
        ESCAPERS[request.escape],
        context,
    )

    return EvaluateResponse(
        result=result,
        chat_metadata=context.chat_metadata,
        banned_words=banned_words,
    )
