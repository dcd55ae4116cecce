"""
Database migration utilities for the petcare-core package.

Thin wrapper over Alembic for applying the schema revisions shipped in
``alembic/``.
"""

import asyncio
import logging
import os
from typing import Any, Dict, Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.ext.asyncio import AsyncEngine

from ..exceptions import MigrationException

logger = logging.getLogger(__name__)


class MigrationManager:
    """Manager for database migrations using Alembic."""

    def __init__(
        self,
        alembic_config_path: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        """
        Initialize the migration manager.

        Args:
            alembic_config_path: Path to alembic.ini file
            database_url: Database URL override
        """
        self.alembic_config_path = alembic_config_path or self._find_alembic_config()
        self.database_url = database_url
        self._alembic_config: Optional[Config] = None

    def _find_alembic_config(self) -> str:
        """Find the alembic.ini configuration file."""
        possible_paths = [
            "alembic.ini",
            "../alembic.ini",
            os.path.join(os.path.dirname(__file__), "../../../alembic.ini"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return os.path.abspath(path)

        raise MigrationException("Could not find alembic.ini configuration file")

    @property
    def alembic_config(self) -> Config:
        """Get the Alembic configuration object."""
        if self._alembic_config is None:
            self._alembic_config = Config(self.alembic_config_path)
            if self.database_url:
                self._alembic_config.set_main_option(
                    "sqlalchemy.url", self.database_url
                )
        return self._alembic_config

    def upgrade_database(self, revision: str = "head") -> None:
        """
        Upgrade database to a specific revision.

        Raises:
            MigrationException: If upgrade fails
        """
        logger.info(f"Upgrading database to revision: {revision}")
        try:
            command.upgrade(self.alembic_config, revision)
        except Exception as e:
            logger.error(f"Failed to upgrade database: {e}")
            raise MigrationException(
                f"Failed to upgrade database: {e}",
                migration_version=revision,
                original_error=e,
            )
        logger.info(f"Successfully upgraded database to {revision}")

    def get_head_revision(self) -> Optional[str]:
        script_dir = ScriptDirectory.from_config(self.alembic_config)
        return script_dir.get_current_head()



async def get_current_revision(engine: AsyncEngine) -> Optional[str]:
    """Read the revision stamped in the database's ``alembic_version`` table."""
    async with engine.connect() as conn:
        return await conn.run_sync(
            lambda sync_conn: MigrationContext.configure(
                sync_conn
            ).get_current_revision()
        )


async def run_migrations_async(
    engine: AsyncEngine, target_revision: str = "head"
) -> Dict[str, Any]:
    """
    Upgrade the database behind ``engine`` to ``target_revision``.

    Alembic's environment starts its own event loop, so the upgrade runs in a
    worker thread.

    Raises:
        MigrationException: If migration fails
    """
    manager = MigrationManager(
        database_url=engine.url.render_as_string(hide_password=False)
    )
    initial = await get_current_revision(engine)
    if target_revision == "head" and initial == manager.get_head_revision():
        logger.info(f"Database already at head revision {initial}")
        final = initial
    else:
        await asyncio.to_thread(manager.upgrade_database, target_revision)
        final = await get_current_revision(engine)
        logger.info(f"Migrated database from {initial} to {final}")
    return {
        "success": True,
        "initial_revision": initial,
        "final_revision": final,
        "target_revision": target_revision,
    }
