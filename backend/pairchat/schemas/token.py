from typing import Optional

from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: Optional[str] = None
    exp: Optional[int] = None
    alias: Optional[str] = None
    institution: Optional[str] = None
    approved: bool = False
    banned: bool = False
