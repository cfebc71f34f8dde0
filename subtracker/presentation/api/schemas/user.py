from datetime import datetime
from typing import List, Optional

from .common import ApiModel, PaginationOut


class EmailHistoryOut(ApiModel):
    id: int
    previous_email: str
    new_email: str
    changed_at: datetime
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class EmailHistoryPage(ApiModel):
    email_history: List[EmailHistoryOut]
    pagination: PaginationOut


class EmailHistoryResponse(ApiModel):
    success: bool = True
    data: EmailHistoryPage
