from typing import Optional
from fastapi import Header, HTTPException, Request, status
from ..config import settings

def get_action_store(request: Request):
    return request.app.state.action_store

def get_action_processor(request: Request):
    return request.app.state.action_processor

def get_scheduler(request: Request):
    return request.app.state.scheduler

async def verify_internal_key(x_internal_key: Optional[str] = Header(None)):
    """Require the internal API key when one is configured"""
    if settings.INTERNAL_API_KEY and x_internal_key != settings.INTERNAL_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid internal API key"
        )
    return True
