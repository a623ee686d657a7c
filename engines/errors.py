"""Fatal errors that stop an indexing run."""


class IndexerError(Exception):
    """Base class. The CLI prints the message and exits with status 1."""


class ConfigError(IndexerError):
    pass


class CredentialsError(IndexerError):
    pass


class SiteAccessError(IndexerError):
    pass


class NoSitemapsError(IndexerError):
    pass


class NoUrlsError(IndexerError):
    pass


class InvalidUrlsError(IndexerError):
    pass


class CacheError(IndexerError):
    pass
