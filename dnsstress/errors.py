"""Exceptions raised while generating DNS load."""


class DnsStressError(Exception):
    """Base class for dnsstress errors."""


class InvalidAddress(DnsStressError, ValueError):
    """Raised when a resolver address cannot be turned into host:port."""


class SetupError(DnsStressError):
    """Raised when a worker cannot open its socket to the resolver."""


class TransmitError(DnsStressError):
    """Raised when a query could not be written to the socket."""


class ResponseError(DnsStressError):
    """Raised when no usable reply arrived before the read deadline."""
