from pydantic import BaseModel
from typing import Optional

class AdminAction(BaseModel):
    action: Optional[str] = None # approve, reject, request_changes
    reason: Optional[str] = None
