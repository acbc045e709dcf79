from pydantic import BaseModel, Field
from typing import Set

# Relationship between a source account and one target, as reported by friendships/lookup
class Relationship(BaseModel):
    id: str
    display_name: str = ""
    connections: Set[str] = Field(default_factory=set)

# Target account returned by blocks/create
class BlockResult(BaseModel):
    id: str
    display_name: str = ""

class Credentials(BaseModel):
    access_token: str
    access_token_secret: str
