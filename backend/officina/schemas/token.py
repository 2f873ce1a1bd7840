"""
Schemas Pydantic per i token JWT
Progetto: Officina Manager
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """
    Schema per il payload contenuto nei token JWT.

    Attributes:
        sub: Subject - ID dell'utente come stringa
        role: Ruolo dell'utente
        exp: Expiration - Data/ora di scadenza
        type: Tipo di token ("access" o "refresh")
    """

    sub: str = Field(..., description="ID utente")
    role: Optional[str] = Field(None, description="Ruolo dell'utente")
    exp: Optional[datetime] = Field(None, description="Data/ora di scadenza")
    type: str = Field(default="access", description="Tipo di token (access/refresh)")


__all__ = [
    "TokenPayload",
]
