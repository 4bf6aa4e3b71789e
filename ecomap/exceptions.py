"""Error taxonomy shared by the record store, the event cache and the API."""


class EcomapError(Exception):
    """Base class for errors raised by ecomap."""


class NotFoundError(EcomapError):
    """A write targeted a record or seed feature that does not exist."""


class PersistenceError(EcomapError):
    """The record store rejected a read or write.

    The message is the one reported by the underlying driver.
    """


class ValidationError(EcomapError):
    pass
