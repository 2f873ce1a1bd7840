"""
Dependency Injection per l'identificazione dell'operatore
Progetto: Officina Manager

Ogni operazione di scrittura accetta un operatore opzionale,
usato esclusivamente per il registro di audit.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from officina.core.security import decode_token
from officina.schemas.audit_log import RequestActor

# OAuth2 scheme - estrae il token dall'header Authorization, se presente
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=False,
)


async def get_request_actor(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
) -> RequestActor:
    """
    Dependency per ottenere l'operatore della richiesta corrente.

    Senza token la richiesta è anonima (actor_id = None).

    Raises:
        HTTPException 401: Se il token è presente ma invalido o non di accesso
    """
    ip_address = request.client.host if request.client else None

    if not token:
        return RequestActor(actor_id=None, ip_address=ip_address)

    token_data = decode_token(token)

    if token_data.type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token di refresh non valido per questa operazione",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        actor_id = UUID(token_data.sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="ID utente invalido nel token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return RequestActor(actor_id=actor_id, ip_address=ip_address)


# Type alias per uso comune nei router
Actor = Annotated[RequestActor, Depends(get_request_actor)]


__all__ = [
    "get_request_actor",
    "oauth2_scheme",
    "Actor",
]
