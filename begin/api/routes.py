from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect

from begin import __version__
from begin.api.hub import ReloadHub
from begin.api.schemas import BannerResponse, ChangedRequest, ChangedResponse

router = APIRouter()


def _hub(request: Request) -> ReloadHub:
    return request.app.state.hub


@router.get("/", response_model=BannerResponse)
async def banner():
    return BannerResponse(version=__version__)


@router.get("/changed", response_model=ChangedResponse)
async def changed_get(request: Request, files: str = Query(default="")):
    """Notify clients of a comma separated ``files`` list."""
    paths = [path for path in files.split(",") if path]
    clients = await _hub(request).broadcast(paths)
    return ChangedResponse(clients=clients, files=paths)


@router.post("/changed", response_model=ChangedResponse)
async def changed_post(request: Request, body: ChangedRequest):
    clients = await _hub(request).broadcast(body.files)
    return ChangedResponse(clients=clients, files=body.files)


@router.websocket("/livereload")
async def livereload(websocket: WebSocket):
    hub: ReloadHub = websocket.app.state.hub
    await hub.connect(websocket)
    try:
        while True:
            message = await websocket.receive_json()
            await hub.handle(websocket, message)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
