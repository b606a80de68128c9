# -*- coding: utf-8 -*-
"""
twitterapi/common/exceptions
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Contains twitterapi's exceptions.
"""


class InvalidURLError(ValueError):
    """
    A request was built for a URL that cannot be addressed.
    """
    pass


class InvalidRequestError(ValueError):
    """
    The request parameters could not be encoded into a request.
    """
    pass


class InvalidCredentialError(ValueError):
    """
    A serialized credential could not be deserialized, or a credential
    could not be used to sign a request.
    """
    pass


class CancelledError(Exception):
    """
    The request was cancelled before the transport completed. This is the
    error handed to completion handlers after ``stop()`` or ``cancel()``.
    """
    pass


class ChunkedDecodeError(Exception):
    """
    A chunk-size line in a chunked body could not be parsed.
    """
    pass


class InvalidResponseError(Exception):
    """
    The server sent something that is not a valid HTTP/1.1 response.
    """
    pass


class LineTooLongError(Exception):
    """
    A header or chunk-size line did not fit in the receive buffer.
    """
    pass


#: The exceptions a transport worker reports to its session instead of
#: raising.
TRANSPORT_ERRORS = (
    OSError,
    ChunkedDecodeError,
    InvalidResponseError,
    LineTooLongError,
)
