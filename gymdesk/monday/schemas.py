from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from gymdesk.store import SYNC_ENTITIES


class SyncType(str, Enum):
    FULL = "full"
    TO_MONDAY = "to_monday"
    FROM_MONDAY = "from_monday"
    SINGLE = "single"


class SyncRequest(BaseModel):
    """POST /monday/sync"""

    type: SyncType = SyncType.FULL
    entity: Optional[str] = None
    id: Optional[str] = Field(None, description="Record id, for single-record pushes")
    ids: Optional[list[str]] = Field(None, description="Restrict a to_monday push to these ids")

    @model_validator(mode="after")
    def check_target(self):
        if self.entity is not None and self.entity not in SYNC_ENTITIES:
            raise ValueError(f"entity must be one of: {', '.join(SYNC_ENTITIES)}")
        if self.type != SyncType.FULL and not self.entity:
            raise ValueError(f"entity is required for '{self.type.value}' syncs")
        if self.type == SyncType.SINGLE and not self.id:
            raise ValueError("id is required for single-record syncs")
        return self
