"""
OpenAI-compatible chat API.

  POST /v1/chat/completions  -- run the panel, stream chat.completion.chunk SSE
  GET  /v1/models            -- the single model id this gateway answers to

Task resolution happens before the StreamingResponse is returned, so an
unknown task still gets a 404. The deliberation itself runs inside the
stream generator: a client disconnect cancels it.

Every accepted request is counted by model; its duration is observed when
the stream ends, however it ends.
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from ...streaming import DONE_EVENT, sse_encode
from ..errors import APIError
from ..models.requests import ChatCompletionRequest
from ..models.responses import ModelInfo, ModelsResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/chat/completions")
async def chat_completions(
    chat_request: ChatCompletionRequest,
    request: Request,
) -> StreamingResponse:
    started = time.perf_counter()
    if chat_request.stream is not True:
        raise APIError(
            400,
            "Only streaming is supported; set stream=true",
            code="stream_required",
        )

    metrics = request.app.state.metrics
    metrics.record_chat_completion(chat_request.model)
    orchestrator = request.app.state.orchestrator
    task = await orchestrator.prepare(
        [m.to_message() for m in chat_request.messages],
        chat_request.tools,
    )

    async def event_generator():
        try:
            async for chunk in orchestrator.respond(task, chat_request.model):
                yield sse_encode(chunk)
            yield DONE_EVENT
        finally:
            metrics.observe_duration(time.perf_counter() - started)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/models", response_model=ModelsResponse)
async def list_models(request: Request) -> ModelsResponse:
    config = request.app.state.config
    return ModelsResponse(
        data=[ModelInfo(id=config.model_id, owned_by=config.model_owner)]
    )
