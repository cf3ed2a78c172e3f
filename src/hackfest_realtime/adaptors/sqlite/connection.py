import aiosqlite


async def connect(db_connect_string: str, *, uri: bool = False, cache_size_kib: int = -16384) -> aiosqlite.Connection:
    """Opens a connection tuned for many small writes from several processes."""
    conn = await aiosqlite.connect(db_connect_string, uri=uri)
    await conn.execute("PRAGMA journal_mode=WAL;")
    await conn.execute("PRAGMA synchronous = NORMAL;")
    await conn.execute(f"PRAGMA cache_size = {cache_size_kib};")
    await conn.execute("PRAGMA busy_timeout = 5000;")
    return conn
