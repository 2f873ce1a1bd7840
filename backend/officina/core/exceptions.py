"""
Eccezioni Custom per l'applicazione.
Progetto: Officina Manager

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori. Ogni eccezione espone un `error_code`
stabile, leggibile dal frontend, oltre al messaggio per l'utente.

NOTA: BusinessValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input
- BusinessValidationError: violazioni delle regole di business logic
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "ConflictError",
    "InsufficientStockError",
    "InvalidStateTransitionError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato (default: quello di classe)
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando un'entità referenziata non esiste nel database.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Risorsa non trovata"


class DuplicateError(AppException):
    """
    Eccezione sollevata quando si tenta di creare una risorsa duplicata.

    Utilizzata per violazioni di vincoli unique (es. codice prodotto già esistente).
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "Risorsa già esistente"


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per dati mancanti o non validi secondo le regole di business.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "Il veicolo non appartiene al cliente selezionato"
        - "Il motivo dell'annullamento è obbligatorio"
    """

    status_code: int = 400
    error_code: str = "VALIDATION_ERROR"
    default_detail: str = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class ConflictError(AppException):
    """
    Eccezione sollevata per un conflitto di orario in agenda.

    `extra["conflicts"]` contiene gli appuntamenti che collidono
    con l'orario richiesto. L'orario non viene mai corretto in automatico.
    """

    status_code: int = 400
    error_code: str = "SCHEDULE_CONFLICT"
    default_detail: str = "Orario non disponibile"


class InsufficientStockError(AppException):
    """
    Eccezione sollevata quando la quantità richiesta supera la giacenza.
    """

    status_code: int = 400
    error_code: str = "INSUFFICIENT_STOCK"
    default_detail: str = "Giacenza insufficiente"


class InvalidStateTransitionError(AppException):
    """
    Eccezione sollevata per un'operazione non consentita nello stato corrente.

    Esempi di utilizzo:
        - "Un appuntamento annullato non può essere confermato"
        - "Non è possibile modificare un ordine completato"
    """

    status_code: int = 400
    error_code: str = "INVALID_STATE_TRANSITION"
    default_detail: str = "Transizione di stato non consentita"
