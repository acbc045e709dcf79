from pydantic import BaseModel, Field
from typing import List

# Request body for queueing blocks on behalf of one source account
class EnqueueBlocksRequest(BaseModel):
    source_uid: str = Field(..., min_length=1, description="Account performing the blocks")
    sink_uids: List[str] = Field(..., min_length=1, description="Accounts to block, in order")

class EnqueueBlocksResponse(BaseModel):
    message: str
    source_uid: str
    requested: int

