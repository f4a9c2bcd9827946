from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from stack_scaler.models.commands import CommandRequest, CommandResponse
from stack_scaler.services.command_service import CommandService
from stack_scaler.services.dependencies import get_command_service

router = APIRouter(prefix="/commands", tags=["commands"])


@router.post("", response_model=CommandResponse)
async def run_command(
    request: CommandRequest,
    commands: CommandService = Depends(get_command_service),
) -> CommandResponse:
    result = await run_in_threadpool(commands.run, request.text)
    return CommandResponse(command=result.command, output=result.output)
