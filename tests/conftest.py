"""Shared fixtures: an in-process fake of the remote API built on FastAPI."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import pytest
from fastapi import FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

FAKE_MODELS = [{"id": f"claude-test-{n}", "type": "model", "display_name": f"Test {n}"} for n in range(7)]


def _sse(event: str, data: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def build_fake_api() -> FastAPI:
    app = FastAPI(title="Fake Anthropic API")
    app.state.failures = []
    app.state.models = FAKE_MODELS

    def check_key(x_api_key: Optional[str]) -> None:
        if x_api_key != "test-key":
            raise HTTPException(status_code=401, detail="invalid x-api-key")

    @app.post("/v1/messages")
    async def create_message(request: Request, x_api_key: Optional[str] = Header(default=None)) -> Response:
        check_key(x_api_key)
        if app.state.failures:
            status = app.state.failures.pop(0)
            return JSONResponse({"type": "error", "error": {"type": "overloaded_error"}}, status_code=status)
        body = await request.json()
        text = " ".join(message["content"] for message in body["messages"])
        if body.get("stream"):
            chunks = [
                _sse("message_start", {"type": "message_start", "message": {"id": "msg_fake"}}),
                ": ping\n\n",
            ]
            for word in text.split():
                chunks.append(
                    _sse("content_block_delta", {"type": "content_block_delta", "delta": {"text": word}})
                )
            chunks.append(_sse("message_stop", {"type": "message_stop"}))
            return Response(content="".join(chunks), media_type="text/event-stream")
        return JSONResponse({"id": "msg_fake", "type": "message", "content": [{"type": "text", "text": text}]})

    @app.get("/v1/models")
    def list_models(
        limit: int = 20,
        after_id: Optional[str] = None,
        x_api_key: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        check_key(x_api_key)
        ids = [model["id"] for model in FAKE_MODELS]
        start = ids.index(after_id) + 1 if after_id else 0
        page = FAKE_MODELS[start : start + limit]
        return {
            "data": page,
            "has_more": start + limit < len(FAKE_MODELS),
            "first_id": page[0]["id"] if page else None,
            "last_id": page[-1]["id"] if page else None,
        }

    @app.get("/v1/models/{model_id}")
    def get_model(model_id: str, x_api_key: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        check_key(x_api_key)
        for model in FAKE_MODELS:
            if model["id"] == model_id:
                return model
        raise HTTPException(status_code=404, detail=f"model {model_id} not found")

    return app


@pytest.fixture()
def fake_api() -> FastAPI:
    return build_fake_api()
