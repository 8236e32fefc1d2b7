import uuid
import json
from pathlib import Path
import aiosqlite

SCHEMA = """
    CREATE TABLE IF NOT EXISTS sessions (
        id          TEXT PRIMARY KEY,
        user_id     TEXT,
        created_at  TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at  TEXT NOT NULL DEFAULT (datetime('now')),
        status      TEXT NOT NULL DEFAULT 'active'
    );

    CREATE TABLE IF NOT EXISTS messages (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id  TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        role        TEXT NOT NULL,
        content     TEXT NOT NULL,
        created_at  TEXT NOT NULL DEFAULT (datetime('now'))
    );

    CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id, id);
    CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id, status);

    CREATE TABLE IF NOT EXISTS events (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id  TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        event_type  TEXT NOT NULL,
        event_data  TEXT,
        created_at  TEXT NOT NULL DEFAULT (datetime('now'))
    );

    CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type, created_at);
"""


async def init_db(db_path: str):
    """Create tables if they don't exist. Called once on app startup."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.executescript(SCHEMA)
        await db.commit()


async def _fetch(db_path: str, query: str, params: tuple) -> list[dict]:
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(query, params)
        return [dict(row) for row in await cursor.fetchall()]


async def _write(db_path: str, *statements: tuple[str, tuple]) -> int | None:
    """Run statements in one transaction. Returns the first statement's rowid."""
    async with aiosqlite.connect(db_path) as db:
        first = None
        for query, params in statements:
            cursor = await db.execute(query, params)
            if first is None:
                first = cursor.lastrowid
        await db.commit()
        return first


# --- Chat sessions ---

async def create_session(db_path: str, user_id: str | None = None) -> str:
    """Open a chat session, owned by ``user_id`` when signed in."""
    session_id = str(uuid.uuid4())
    await _write(db_path, ("INSERT INTO sessions (id, user_id) VALUES (?, ?)", (session_id, user_id)))
    return session_id


async def get_session(db_path: str, session_id: str) -> dict | None:
    rows = await _fetch(db_path, "SELECT * FROM sessions WHERE id = ?", (session_id,))
    return rows[0] if rows else None


async def list_sessions(
    db_path: str,
    user_id: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[dict]:
    """Active sessions of one owner (None for anonymous ones), last active first."""
    return await _fetch(
        db_path,
        """
        SELECT s.*, COUNT(m.id) AS message_count
        FROM sessions s LEFT JOIN messages m ON m.session_id = s.id
        WHERE s.status = 'active' AND s.user_id IS ?
        GROUP BY s.id
        ORDER BY s.updated_at DESC LIMIT ? OFFSET ?
        """,
        (user_id, limit, offset),
    )


async def end_session(db_path: str, session_id: str):
    await _write(
        db_path,
        ("UPDATE sessions SET status = 'ended', updated_at = datetime('now') WHERE id = ?", (session_id,)),
    )


# --- Transcript ---

async def save_message(
    db_path: str,
    session_id: str,
    role: str,
    content: str,
    created_at: str | None = None,
) -> int | None:
    """Append a chat message to the transcript and touch the session."""
    return await _write(
        db_path,
        (
            "INSERT INTO messages (session_id, role, content, created_at) "
            "VALUES (?, ?, ?, COALESCE(?, datetime('now')))",
            (session_id, role, content, created_at),
        ),
        ("UPDATE sessions SET updated_at = datetime('now') WHERE id = ?", (session_id,)),
    )


async def get_messages(db_path: str, session_id: str) -> list[dict]:
    return await _fetch(
        db_path, "SELECT * FROM messages WHERE session_id = ? ORDER BY id ASC", (session_id,)
    )


# --- Event log ---

async def log_event(db_path: str, session_id: str, event_type: str, event_data: dict | None = None):
    """Record an analytics event (intent_classified, chat_fallback)."""
    await _write(
        db_path,
        (
            "INSERT INTO events (session_id, event_type, event_data) VALUES (?, ?, ?)",
            (session_id, event_type, json.dumps(event_data) if event_data else None),
        ),
    )


async def get_events(db_path: str, session_id: str) -> list[dict]:
    rows = await _fetch(
        db_path, "SELECT * FROM events WHERE session_id = ? ORDER BY id ASC", (session_id,)
    )
    for row in rows:
        row["event_data"] = json.loads(row["event_data"]) if row["event_data"] else None
    return rows
