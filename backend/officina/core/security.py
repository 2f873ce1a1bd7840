"""
Modulo di sicurezza per l'identificazione dell'operatore
Progetto: Officina Manager

Verifica i token JWT emessi dal servizio di autenticazione esterno.
Questo backend non emette token: si limita a leggerne il subject per
attribuire le operazioni nel registro di audit.
"""

from datetime import datetime, timezone

from fastapi import HTTPException, status
from jose import JWTError, jwt

from officina.core.config import settings
from officina.schemas.token import TokenPayload


def decode_token(token: str) -> TokenPayload:
    """
    Decodifica e valida un token JWT.

    Args:
        token: Token JWT da decodificare

    Returns:
        TokenPayload con i dati del token

    Raises:
        HTTPException: Se il token è invalido o scaduto
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token invalido o scaduto: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalido: missing subject",
            headers={"WWW-Authenticate": "Bearer"},
        )

    exp = payload.get("exp")
    return TokenPayload(
        sub=str(payload["sub"]),
        role=payload.get("role"),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc) if exp is not None else None,
        type=payload.get("type", "access"),
    )


__all__ = [
    "decode_token",
]
