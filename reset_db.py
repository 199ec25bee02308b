"""
Reset del database
Progetto: Gestionale Studio Legale

Elimina e ricrea tutte le tabelle dei modelli. Da usare solo in sviluppo:
in produzione lo script si rifiuta di procedere.
"""

import asyncio
import logging
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.config import settings
from app.core.database import engine
from app.models import Base

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("reset_db")


async def reset() -> None:
    logger.info("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("Tabelle eliminate. Creazione di %d tabelle...", len(Base.metadata.tables))
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Database resettato con successo")


if __name__ == "__main__":
    if settings.is_production:
        logger.error("Reset del database non consentito con APP_ENV=production")
        sys.exit(1)
    asyncio.run(reset())
