from fastapi import APIRouter, Depends, HTTPException, status, BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError

from ..core.dependencies import get_action_store, get_action_processor, verify_internal_key
from ..schemas.action import EnqueueBlocksRequest, EnqueueBlocksResponse
from ..services.action_processor import ActionProcessor
from ..services.ingestion import queue_blocks

router = APIRouter(dependencies=[Depends(verify_internal_key)])

@router.post("/actions/blocks", response_model=EnqueueBlocksResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_blocks(
    request_data: EnqueueBlocksRequest,
    store=Depends(get_action_store)
):
    """
    Queue block actions for a source account. They are carried out by the next processing pass.
    """
    await queue_blocks(store, request_data.source_uid, request_data.sink_uids)
    return EnqueueBlocksResponse(
        message="Blocks queued",
        source_uid=request_data.source_uid,
        requested=len(request_data.sink_uids)
    )

@router.post("/accounts/{uid}/process", status_code=status.HTTP_202_ACCEPTED)
async def process_account(
    uid: str,
    background_tasks: BackgroundTasks,
    store=Depends(get_action_store),
    processor: ActionProcessor = Depends(get_action_processor)
):
    """
    Process one batch of pending actions for a single account right away.
    """
    try:
        account = await store.find_account(uid)
    except SQLAlchemyError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Action store unavailable")
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Account {uid} not found")

    background_tasks.add_task(processor.process_actions_for_source, uid)
    return {"message": f"Processing scheduled for {uid}"}

@router.post("/passes", status_code=status.HTTP_202_ACCEPTED)
async def run_pass(
    background_tasks: BackgroundTasks,
    processor: ActionProcessor = Depends(get_action_processor)
):
    """Start one full processing pass"""
    background_tasks.add_task(processor.process_blocks)
    return {"message": "Processing pass scheduled"}
