import logging

from sqlalchemy.engine import make_url
from sqlmodel import Session, SQLModel, create_engine

# Register table metadata before create_all
from nimbus_admin.core import models  # noqa: F401

logger = logging.getLogger(__name__)


class AppDatabase:
    """
    Application Database.
    Holds users, sessions and connection profiles via SQLModel.
    Constructed explicitly at startup and disposed at shutdown; there is no
    module-level instance.
    """
    def __init__(self, url: str):
        self.url = url
        connect_args = {}
        if make_url(url).get_backend_name() == "sqlite":
            # Sessions are opened from FastAPI's threadpool
            connect_args["check_same_thread"] = False

        self.engine = create_engine(
            url,
            connect_args=connect_args,
            pool_pre_ping=True,
        )
        logger.info("App database engine created: %s", make_url(url).render_as_string(hide_password=True))

    def init_metadata_tables(self):
        """
        Initialize SQLModel tables.
        """
        SQLModel.metadata.create_all(self.engine)
        logger.info("AppDB: metadata tables initialized.")

    def get_session(self) -> Session:
        return Session(self.engine)

    def dispose(self):
        self.engine.dispose()
        logger.info("AppDB: engine disposed.")
