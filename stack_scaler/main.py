from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

from stack_scaler.routes.commands import router as commands_router
from stack_scaler.services.command_service import UnknownCommandError
from stack_scaler.services.errors import StackScalerError


def _ensure_logging() -> None:
    formatter = logging.Formatter("%(levelname)s: %(message)s")
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    else:
        root.setLevel(logging.INFO)
        for handler in root.handlers:
            handler.setFormatter(formatter)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _ensure_logging()
    yield


app = FastAPI(lifespan=lifespan)

app.include_router(commands_router)


@app.exception_handler(StackScalerError)
async def stack_scaler_error_handler(request: Request, exc: StackScalerError) -> JSONResponse:
    """Map orchestration failures to a consistent HTTP response.

    The failure has already been reported through the notifier by the time it
    reaches here; the body carries the error class and message only.

    Returns:
        502 Bad Gateway with a JSON body: {"detail": "...", "error": "..."}
    """
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@app.exception_handler(UnknownCommandError)
async def unknown_command_handler(request: Request, exc: UnknownCommandError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.get("/")
async def root():
    return {"message": "Stack scaler is running."}
