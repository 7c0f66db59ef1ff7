import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
import asyncpg
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

# Database connection pool (asyncpg pool)
db_pool = None

async def init_db():
    """
    Initialize asynchronous database connection pool.
    This function should be called once at application startup.
    """
    global db_pool
    try:
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            logger.error("DATABASE_URL environment variable is not set.")
            raise RuntimeError("DATABASE_URL environment variable is not set.")

        logger.info("Initializing database connection pool...")
        db_pool = await asyncpg.create_pool(
            dsn=database_url,
            min_size=int(os.getenv("DB_POOL_MIN_SIZE", "1")),
            max_size=int(os.getenv("DB_POOL_MAX_SIZE", "20")),
            command_timeout=float(os.getenv("DB_COMMAND_TIMEOUT", "60")),
        )
        logger.info("Database connection pool initialized successfully.")
    except Exception as e:
        logger.exception(f"Error initializing database: {str(e)}")
        raise

async def close_db():
    """
    Close the database connection pool.
    This function should be called once at application shutdown.
    """
    global db_pool
    if db_pool:
        logger.info("Closing database connection pool...")
        await db_pool.close()
        db_pool = None
        logger.info("Database connection pool closed.")

@asynccontextmanager
async def get_db_connection():
    """
    Asynchronous context manager for acquiring and releasing database connections from the pool.
    Use with 'async with get_db_connection() as conn:'
    """
    if db_pool is None:
        logger.error("Database connection pool is not initialized. Call init_db() first.")
        raise RuntimeError("Database connection pool is not initialized. Call init_db() first.")

    conn = None
    try:
        logger.debug("Acquiring database connection from pool...")
        conn = await db_pool.acquire()
        logger.debug("Database connection acquired.")
        yield conn
    finally:
        if conn:
            logger.debug("Releasing database connection back to pool...")
            await db_pool.release(conn)
            logger.debug("Database connection released.")

@asynccontextmanager
async def get_transaction():
    """
    Acquire a connection and open a transaction on it.
    The transaction commits when the block exits cleanly and rolls back on any exception.
    """
    async with get_db_connection() as conn:
        async with conn.transaction():
            logger.debug("Transaction started.")
            yield conn
        logger.debug("Transaction committed.")

async def execute_query(sql, params=None, fetch_one=False, conn=None):
    """
    Execute an asynchronous SQL query and return results.
    Note: Use $1, $2, ... as placeholders in your SQL queries for parameters (not %s or %(name)s).
    When conn is given the query runs on it (e.g. inside a transaction) instead of a pooled connection.
    """
    logger.info(f"Executing SQL query: {sql.strip().splitlines()[0][:100]}... | Params: {params}")
    if conn is not None:
        result = await _run(conn, sql, params, fetch_one)
    else:
        async with get_db_connection() as pooled:
            result = await _run(pooled, sql, params, fetch_one)
    logger.info("SQL query executed successfully.")
    return result

async def _run(conn, sql, params, fetch_one):
    if fetch_one:
        return await conn.fetchrow(sql, *(params or []))
    return await conn.fetch(sql, *(params or []))
