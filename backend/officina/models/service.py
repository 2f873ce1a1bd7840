"""
Modello SQLAlchemy per il catalogo servizi
Progetto: Officina Manager

Ogni servizio ha un prezzo di listino e una durata stimata usata
dal calcolo delle disponibilità. Il catalogo viene solo letto dagli
appuntamenti e dagli ordini di servizio.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from officina.models import Base
from officina.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Service(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Voce del catalogo servizi.

    Attributes:
        code: Codice univoco (maiuscolo)
        name: Nome del servizio
        description: Descrizione estesa
        category: Categoria (es. "meccanica", "elettrauto")
        price: Prezzo di listino
        estimated_minutes: Durata stimata in minuti
    """

    __tablename__ = "services"

    code: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        doc="Codice univoco del servizio",
    )

    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        doc="Nome del servizio",
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        index=True,
        doc="Categoria del servizio",
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di listino",
    )

    estimated_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=60,
        doc="Durata stimata in minuti",
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_services_price"),
        CheckConstraint("estimated_minutes >= 1", name="ck_services_estimated_minutes"),
    )

    def __repr__(self) -> str:
        return f"Service(code={self.code!r}, name={self.name!r})"
