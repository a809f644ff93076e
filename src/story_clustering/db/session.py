from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from story_clustering.db.engine import get_engine

_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return a cached session factory bound to the engine.

    ``expire_on_commit=False`` keeps records returned by the store
    readable after their session has closed.
    """
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        _session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return _session_factory
