"""
Connector exception classes.
"""


class ConnectorError(Exception):
    """Base class for all connector errors.

    Fatal driver, connection and class-resolution failures surface to callers
    as this type, with the original exception kept as `__cause__`.
    """

    @classmethod
    def wrap(cls, exc: BaseException) -> 'ConnectorError':
        """Wrap an exception as a connector error.

        Connector errors are returned unchanged so wrapping never nests.

        :param exc: The exception to wrap.
        :returns: A connector error whose cause is `exc`.
        """
        if isinstance(exc, ConnectorError):
            return exc
        err = cls(str(exc) or type(exc).__name__)
        err.__cause__ = exc
        return err


class ConnectorIOError(ConnectorError):
    """Error reading a binary stream returned by the database.
    """

