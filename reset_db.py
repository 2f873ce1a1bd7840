import asyncio
import sys
import os

# Aggiungi backend/ alla PYTHONPATH per importare officina.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from officina.core.database import engine
from officina.models import Base


async def reset():
    print("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione tabelle agenda, ordini e magazzino...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Database resettato con successo!")


if __name__ == "__main__":
    asyncio.run(reset())
