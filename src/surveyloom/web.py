from __future__ import annotations

from typing import Any, Dict, Optional

import uvicorn
from fastapi import Body, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from .config import Settings
from .errors import InvalidLifecycleAction
from .generator_client import GeneratorClient
from .surveys.lifecycle import QuestionnaireLifecycle
from .surveys.render import render_page


def build_lifecycle(settings: Settings) -> QuestionnaireLifecycle:
    client = GeneratorClient(
        settings.gemini_api_root,
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.generation_timeout,
    )
    return QuestionnaireLifecycle(
        client,
        transition_delay=settings.transition_delay,
        reveal_delay=settings.reveal_delay,
    )


def create_app(lifecycle: Optional[QuestionnaireLifecycle] = None) -> FastAPI:
    app = FastAPI(title="Surveyloom", version="0.1.0")
    app.state.lifecycle = lifecycle or build_lifecycle(Settings())

    def _lifecycle() -> QuestionnaireLifecycle:
        return app.state.lifecycle

    @app.on_event("startup")
    async def _startup() -> None:
        # The page shows the loader until the first survey arrives
        _lifecycle().schedule_start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await _lifecycle().aclose()

    @app.get("/health")
    def health() -> dict[str, str]:  # type: ignore[no-untyped-def]
        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:  # type: ignore[no-untyped-def]
        return render_page(_lifecycle())

    @app.post("/survey/submit")
    async def submit_form(request: Request):  # type: ignore[no-untyped-def]
        form = await request.form()
        answers = {key: [str(v) for v in form.getlist(key)] for key in form.keys()}
        lc = _lifecycle()
        try:
            lc.update_answers(answers)
            lc.submit()
        except InvalidLifecycleAction as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
        return RedirectResponse(url="/", status_code=303)

    @app.post("/survey/next")
    async def next_survey():  # type: ignore[no-untyped-def]
        _lifecycle().schedule_next()
        return RedirectResponse(url="/", status_code=303)

    @app.get("/api/state")
    def api_state() -> Dict[str, Any]:  # type: ignore[no-untyped-def]
        return _lifecycle().snapshot()

    @app.post("/api/fields/{question_id}")
    def api_set_field(question_id: str, payload: Dict[str, Any] = Body(...)):  # type: ignore[no-untyped-def]
        lc = _lifecycle()
        try:
            error = lc.set_value(question_id, payload.get("value"))
        except InvalidLifecycleAction as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
        except KeyError:
            raise HTTPException(status_code=404, detail="Question not found")
        value = lc.form.controller(question_id).value  # type: ignore[union-attr]
        return {"id": question_id, "value": value, "error": error}

    @app.post("/api/submit")
    def api_submit():  # type: ignore[no-untyped-def]
        try:
            result = _lifecycle().submit()
        except InvalidLifecycleAction as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
        if not result.accepted:
            return JSONResponse(status_code=422, content={"accepted": False, "errors": result.errors})
        return {"accepted": True, "answers": result.answers}

    @app.post("/api/next")
    async def api_next() -> Dict[str, Any]:  # type: ignore[no-untyped-def]
        lc = _lifecycle()
        await lc.request_next()
        return lc.snapshot()

    return app


async def run_web() -> None:
    settings = Settings()
    app = create_app(build_lifecycle(settings))
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()
