"""
Numerazione progressiva dei documenti
Progetto: Officina Manager

Il prossimo numero è assegnato da un'unica istruzione atomica
(INSERT ... ON CONFLICT DO UPDATE ... RETURNING) sul contatore dedicato,
così due creazioni concorrenti non possono ottenere lo stesso valore.
"""

import datetime
import logging

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from officina.models import DocumentCounter

logger = logging.getLogger(__name__)


def format_order_number(value: int, when: datetime.date) -> str:
    """
    Formatta il numero ordine come NNNNNN/MMYYYY.

    Example:
        >>> format_order_number(42, datetime.date(2024, 3, 5))
        '000042/032024'
    """
    return f"{value:06d}/{when.month:02d}{when.year}"


class CounterService:

    async def next_value(self, db: AsyncSession, name: str) -> int:
        """
        Incrementa e restituisce il contatore `name` (parte da 1).

        Args:
            db: Sessione database
            name: Chiave del contatore

        Returns:
            Il nuovo valore del contatore
        """
        stmt = (
            insert(DocumentCounter)
            .values(name=name, value=1)
            .on_conflict_do_update(
                index_elements=[DocumentCounter.name],
                set_={"value": DocumentCounter.value + 1},
            )
            .returning(DocumentCounter.value)
        )
        result = await db.execute(stmt)
        value = result.scalar_one()

        logger.debug("Contatore %s -> %s", name, value)
        return value


# Istanza singleton del service
counter_service = CounterService()
