import pytest

from ecommerce_store.utils.database import create_database_engine, create_session_factory, create_tables


@pytest.fixture
def engine():
    # Same engine setup as production (foreign keys on), in memory
    engine = create_database_engine("sqlite://", echo=False)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    # Separate connections per session, so one session can hold rows another changes
    engine = create_database_engine(f"sqlite:///{tmp_path / 'store.db'}", echo=False)
    create_tables(engine)
    yield create_session_factory(engine)
    engine.dispose()
