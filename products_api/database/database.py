# products_api/database/database.py
import re
import asyncio
import asyncpg
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from ..config import Config
from ..exceptions import DatabaseError

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class Database:
    """asyncpg connection pool plus the stored-function calling contract"""

    def __init__(self, config: Config):
        self.config = config
        self.pool: Optional[asyncpg.Pool] = None
        self.logger = logging.getLogger(__name__)

    async def connect(self):
        """Open the pool and apply pending migrations"""
        try:
            self.pool = await asyncpg.create_pool(
                self.config.DATABASE_URL,
                min_size=self.config.DB_POOL_MIN,
                max_size=self.config.DB_POOL_MAX,
                max_inactive_connection_lifetime=self.config.DB_POOL_IDLE_TIMEOUT,
                command_timeout=self.config.DB_COMMAND_TIMEOUT,
            )

            await self._run_migrations()

            self.logger.info("Connected to PostgreSQL database")
        except Exception as e:
            self.logger.error(f"Failed to connect to database: {e}")
            raise

    async def close(self):
        """Close the pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("Database connection closed")

    async def _run_migrations(self):
        """Apply migrations/*.sql that have not been recorded yet"""
        try:
            migrations_path = Path(__file__).parent / "migrations"

            async with self.pool.acquire() as conn:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS migrations (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        applied_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                for migration_file in sorted(migrations_path.glob("*.sql")):
                    migration_name = migration_file.name

                    is_applied = await conn.fetchval(
                        "SELECT COUNT(*) FROM migrations WHERE name = $1",
                        migration_name
                    )

                    if not is_applied:
                        async with conn.transaction():
                            await conn.execute(migration_file.read_text())
                            await conn.execute(
                                "INSERT INTO migrations (name) VALUES ($1)",
                                migration_name
                            )

                        self.logger.info(f"Migration {migration_name} applied")

        except Exception as e:
            self.logger.error(f"Failed to apply migrations: {e}")
            raise

    def _acquire(self):
        if self.pool is None:
            raise DatabaseError("Database connection pool is not available")
        return self.pool.acquire(timeout=self.config.DB_POOL_ACQUIRE_TIMEOUT)

    async def execute_procedure(self, name: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Call a set-returning stored function with named arguments.

        ``execute_procedure("get_product_by_id", {"id": 5})`` runs
        ``SELECT * FROM get_product_by_id(id => $1)``. Names come from code,
        values are always bound.
        """
        params = params or {}
        for identifier in (name, *params.keys()):
            if not _IDENTIFIER.match(identifier):
                raise DatabaseError(f"Invalid identifier: {identifier}")

        arguments = ", ".join(
            f"{key} => ${position}" for position, key in enumerate(params, start=1)
        )
        query = f"SELECT * FROM {name}({arguments})"

        self.logger.debug(f"Executing stored procedure: {name}")
        try:
            async with self._acquire() as conn:
                rows = await conn.fetch(query, *params.values())
                return [dict(row) for row in rows]
        except asyncpg.PostgresError as e:
            self.logger.error(f"Stored procedure {name} failed: {e}")
            raise DatabaseError(f"Stored procedure execution failed: {e}", sqlstate=e.sqlstate) from e
        except (OSError, asyncio.TimeoutError, asyncpg.InterfaceError) as e:
            self.logger.error(f"Stored procedure {name} failed: {e}")
            raise DatabaseError(f"Stored procedure execution failed: {e}") from e

    async def execute_query(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        """Run a read-only parameterized query"""
        self.logger.debug(f"Executing query: {' '.join(query.split())}")
        try:
            async with self._acquire() as conn:
                rows = await conn.fetch(query, *args)
                return [dict(row) for row in rows]
        except asyncpg.PostgresError as e:
            self.logger.error(f"Query failed: {e}")
            raise DatabaseError(f"Query execution failed: {e}", sqlstate=e.sqlstate) from e
        except (OSError, asyncio.TimeoutError, asyncpg.InterfaceError) as e:
            self.logger.error(f"Query failed: {e}")
            raise DatabaseError(f"Query execution failed: {e}") from e

    async def health_check(self) -> bool:
        try:
            await self.execute_query("SELECT 1 AS health_check")
            return True
        except DatabaseError:
            return False
