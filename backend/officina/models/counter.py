"""
Contatori per la numerazione dei documenti
Progetto: Officina Manager
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from officina.models import Base


class DocumentCounter(Base):
    """
    Contatore progressivo per tipo di documento.

    Incrementato solo da counter_service.next_value con un'unica
    istruzione INSERT ... ON CONFLICT DO UPDATE ... RETURNING.

    Attributes:
        name: Chiave del contatore (es. "service_order")
        value: Ultimo valore assegnato
    """

    __tablename__ = "document_counters"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"DocumentCounter(name={self.name!r}, value={self.value})"
