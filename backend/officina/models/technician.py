from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from officina.models import Base
from officina.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from officina.models.appointment import Appointment
    from officina.models.service_order import ServiceLine


class Technician(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per l'anagrafica dei tecnici/meccanici dell'officina.
    """
    __tablename__ = "technicians"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    specialization: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    # Relationships
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="technician",
        lazy="noload"
    )

    service_lines: Mapped[List["ServiceLine"]] = relationship(
        "ServiceLine",
        back_populates="technician",
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"Technician(name={self.name!r}, surname={self.surname!r})"
