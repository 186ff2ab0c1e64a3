from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import sessionmaker, scoped_session

from supply_inventory.config import config
from supply_inventory.exceptions import StoreUnavailableError

class Database:
    """Database connection manager for the Supply Inventory Engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the database connection if not already initialized."""
        if self._initialized:
            return

        self._engine = None
        self._session_factory = None
        self._session = None
        self._initialized = True

    def initialize(self, connection_string=None):
        """Initialize database connection.

        Args:
            connection_string: Optional database connection string.
                              If not provided, will use configuration.
        """
        engine_kwargs = {}

        if connection_string is None:
            connection_string = config.get_db_url()

        # SQLite uses a single-connection pool that rejects sizing options
        if not connection_string.startswith('sqlite'):
            engine_kwargs = {
                'pool_size': config.get_int('DATABASE', 'pool_size', 10),
                'max_overflow': config.get_int('DATABASE', 'max_overflow', 20),
                'pool_timeout': config.get_int('DATABASE', 'pool_timeout', 30),
                'pool_recycle': config.get_int('DATABASE', 'pool_recycle', 1800),
                'pool_pre_ping': True
            }

        self._engine = create_engine(
            connection_string,
            echo=config.get_boolean('DATABASE', 'echo', False),
            **engine_kwargs
        )

        self._session_factory = sessionmaker(bind=self._engine)
        self._session = scoped_session(self._session_factory)

    def create_all_tables(self):
        """Create all tables defined in the models."""
        from supply_inventory.models import Base
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop all tables from the database."""
        from supply_inventory.models import Base
        Base.metadata.drop_all(self.engine)

    @property
    def session(self):
        """Get the current database session."""
        if self._session is None:
            self.initialize()
        return self._session

    @property
    def engine(self):
        """Get the database engine."""
        if self._engine is None:
            self.initialize()
        return self._engine

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

# Global database instance
db = Database()

@contextmanager
def session_scope():
    """Session scope context manager."""
    with db.session_scope() as session:
        yield session

def is_connectivity_error(exc):
    """Whether a SQLAlchemy error means the store could not be reached."""
    if getattr(exc, 'connection_invalidated', False):
        return True
    return isinstance(exc, (OperationalError, InterfaceError))

def raise_if_unavailable(exc):
    """Re-raise connectivity failures as StoreUnavailableError.

    Every other store error is left for the caller to turn into a
    structured failure result.
    """
    if is_connectivity_error(exc):
        raise StoreUnavailableError(f"Store unavailable: {str(exc)}") from exc
