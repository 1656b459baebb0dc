class ForensicsError(Exception):
    pass


class DataSourceError(ForensicsError):
    pass


class RateLimitError(DataSourceError):
    pass


class ProviderError(ForensicsError):
    pass


class MissingCredentialError(ProviderError):
    pass


class MalformedResponseError(ProviderError):
    pass
