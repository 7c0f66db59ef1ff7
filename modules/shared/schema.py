from .db import get_db_connection
import logging

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
    -- Users table: identity records for admins, responders and requestors
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY,
        name VARCHAR(120) NOT NULL,
        email VARCHAR(255) UNIQUE NOT NULL,
        phone VARCHAR(40),
        role VARCHAR(20) NOT NULL CHECK (role IN ('admin', 'responder', 'requestor')),
        type VARCHAR(50),
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );

    -- Requestors table: citizens who report emergencies, one per user
    CREATE TABLE IF NOT EXISTS requestors (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        name VARCHAR(120) NOT NULL,
        email VARCHAR(255) NOT NULL,
        phone VARCHAR(40) NOT NULL DEFAULT '',
        situation TEXT,
        concern TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );

    -- Emergencies table: incident reports and their lifecycle
    CREATE TABLE IF NOT EXISTS emergencies (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        type VARCHAR(20) NOT NULL CHECK (type IN ('medical', 'fire', 'police', 'disaster', 'other')),
        description TEXT,
        location JSONB,
        address TEXT,
        status VARCHAR(20) NOT NULL CHECK (status IN ('pending', 'responding', 'resolved', 'cancelled')) DEFAULT 'pending',
        priority VARCHAR(10) NOT NULL CHECK (priority IN ('high', 'medium', 'low')) DEFAULT 'medium',
        reported_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        responder_id UUID,
        responder VARCHAR(120)
    );

    -- Responders table: dispatchable units and their availability
    CREATE TABLE IF NOT EXISTS responders (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        name VARCHAR(120) NOT NULL,
        email VARCHAR(255) NOT NULL,
        phone VARCHAR(40) NOT NULL DEFAULT '',
        type VARCHAR(50),
        status VARCHAR(20) NOT NULL CHECK (status IN ('available', 'responding', 'unavailable')) DEFAULT 'available',
        responding_to UUID REFERENCES emergencies(id) ON DELETE SET NULL,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );

    -- Create indexes for frequently queried fields
    CREATE INDEX IF NOT EXISTS idx_emergencies_status ON emergencies (status);
    CREATE INDEX IF NOT EXISTS idx_emergencies_user_id ON emergencies (user_id);
    CREATE INDEX IF NOT EXISTS idx_emergencies_reported_at ON emergencies (reported_at DESC);
    CREATE INDEX IF NOT EXISTS idx_responders_status ON responders (status);
"""

async def create_tables():
    """Create tables for the emergency response dashboard"""
    try:
        async with get_db_connection() as conn:
            async with conn.transaction():
                await conn.execute(SCHEMA_SQL)
                logger.info("Database tables and indexes created successfully.")
    except Exception as e:
        logger.error(f"Error creating tables: {str(e)}")
        raise
