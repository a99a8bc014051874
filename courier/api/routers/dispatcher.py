from __future__ import annotations

from fastapi import APIRouter, Depends

from courier.api.deps import get_dispatcher
from courier.dispatch.dispatcher import Dispatcher
from courier.schemas.messages import RunningResponse, StatusResponse

router = APIRouter()


@router.post("/start", response_model=StatusResponse)
def start_sender(dispatcher: Dispatcher = Depends(get_dispatcher)) -> StatusResponse:
    if not dispatcher.start():
        return StatusResponse(status="Message sender is already running")
    return StatusResponse(status="Message sender started")


@router.post("/stop", response_model=StatusResponse)
def stop_sender(dispatcher: Dispatcher = Depends(get_dispatcher)) -> StatusResponse:
    # Blocks until the in-flight tick has finished.
    if not dispatcher.stop():
        return StatusResponse(status="Message sender is not running")
    return StatusResponse(status="Message sender stopped")


@router.get("/status", response_model=RunningResponse)
def sender_status(dispatcher: Dispatcher = Depends(get_dispatcher)) -> RunningResponse:
    return RunningResponse(running=dispatcher.is_running())
