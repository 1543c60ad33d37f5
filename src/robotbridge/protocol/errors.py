"""
Errors raised by the transport. Each call either returns its result or raises exactly one of these.
"""
from robotbridge.connector.base import ConnectorError


class TransportError(ConnectorError):
    """ base class for failed server calls. """


class UnreachableError(TransportError):
    """ No connection to the server could be made, or the connection failed mid-call. """


class HTTPStatusError(TransportError):
    """ The server answered with a status other than 200 OK. """
    def __init__(self, code):
        super().__init__("Failed : HTTP error code : %s" % code)
        self.code = code


class MalformedResponseError(TransportError):
    """ The response body could not be decoded as a JSON object. """


class EmptyBodyError(TransportError):
    """ A binary download returned no content. """


class TransportCancelledError(TransportError):
    """ The call was aborted before the server answered. """
