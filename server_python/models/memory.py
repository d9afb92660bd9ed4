from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class MemoryImportRequest(BaseModel):
    snapshot: Dict[str, Any]
    merge: bool = True


class MemoryPruneRequest(BaseModel):
    maxSessions: Optional[int] = Field(default=None, ge=1)
    maxMessagesPerSession: Optional[int] = Field(default=None, ge=1)
    maxLongTermEntries: Optional[int] = Field(default=None, ge=1)
    keepRecentDays: Optional[int] = Field(default=None, ge=1)


class LongTermMemoryCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10000)
    category: str = Field(default="general", min_length=1, max_length=100)
    importance: float = Field(default=0.5, ge=0, le=1)
