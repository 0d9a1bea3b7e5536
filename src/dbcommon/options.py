from dataclasses import dataclass

from dbcommon.security import GuardedString, as_guarded
from dbcommon.utils import is_blank

__all__ = ['ConnectorOptions']


@dataclass
class ConnectorOptions:
    """Options

    url: SQLAlchemy URL, e.g. `sqlite:///:memory:` or
    `postgresql+psycopg://host:5432/db`.
    driver: optional drivername replacing the one in `url`.
    login/password: credentials; a plain password is guarded on init.
    validation_query: statement run by `DatabaseConnection.test()`.
    """
    url: str = None
    driver: str = None
    login: str = None
    password: GuardedString | str | None = None
    validation_query: str = 'SELECT 1'

    def __post_init__(self):
        if is_blank(self.url):
            raise ValueError('url must not be blank')
        self.password = as_guarded(self.password)
