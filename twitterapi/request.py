# -*- coding: utf-8 -*-
"""
twitterapi/request
~~~~~~~~~~~~~~~~~~

Building signed requests.

A :class:`PendingRequest` is everything a transport needs to send a request:
the method, the full URL, the headers (including the signature) and the body.
It is immutable once built. :func:`build_request` produces one from a
credential, whichever kind of credential it is.
"""
from collections import namedtuple

import rfc3986
from rfc3986 import validators
from rfc3986.exceptions import RFC3986Exception

from .credentials import (
    AccountCredential, OAuthCredential, CONTENT_TYPE_FORM_URLENCODED
)
from .common.exceptions import (
    InvalidCredentialError, InvalidRequestError, InvalidURLError
)
from .common.util import append_query, encode_parameters

SUPPORTED_METHODS = ('GET', 'POST')

_url_validator = validators.Validator().require_presence_of(
    'scheme', 'host',
).allow_schemes(
    'http', 'https',
).check_validity_of(
    'scheme', 'host', 'port', 'path', 'query',
)


def validate_url(url):
    """
    Checks that ``url`` is an absolute http(s) URL twitterapi can address.

    :raises InvalidURLError: if it isn't.
    """
    if not isinstance(url, str):
        raise InvalidURLError("URL must be a string, got %r" % (url,))

    try:
        _url_validator.validate(rfc3986.uri_reference(url))
    except RFC3986Exception as e:
        raise InvalidURLError("Invalid URL %r: %s" % (url, e))


_PendingRequestBase = namedtuple(
    'PendingRequest', ['method', 'url', 'headers', 'body']
)


class PendingRequest(_PendingRequestBase):
    """
    A signed request, ready to be sent.

    :param method: ``'GET'`` or ``'POST'``.
    :param url: The full URL, including any query string.
    :param headers: A tuple of ``(name, value)`` header pairs.
    :param body: The request body as a bytestring, or ``None``.
    """
    __slots__ = ()

    @property
    def _parsed(self):
        return rfc3986.urlparse(self.url)

    @property
    def scheme(self):
        return self._parsed.scheme

    @property
    def secure(self):
        return self.scheme == 'https'

    @property
    def host(self):
        return self._parsed.host

    @property
    def port(self):
        port = self._parsed.port
        if port is None:
            return 443 if self.secure else 80
        return int(port)

    @property
    def path(self):
        return self._parsed.path or '/'

    @property
    def query(self):
        return self._parsed.query

    @property
    def selector(self):
        """
        The request target as sent on the request line: path plus query.
        """
        query = self.query
        return self.path + ('?' + query if query else '')

    def header(self, name, default=None):
        """
        Returns the value of the first header called ``name``.
        """
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return default


def build_request(credential, method, url, parameters=None, nonce=None,
                  timestamp=None):
    """
    Builds a signed :class:`PendingRequest`.

    With an ``OAuthCredential``, parameters are percent-encoded into the
    query string (``GET``) or an ``application/x-www-form-urlencoded`` body
    (``POST``) and an OAuth ``Authorization`` header is added. With an
    ``AccountCredential`` the platform account builds the request.

    :param credential: The credential to sign with.
    :param method: ``'GET'`` or ``'POST'``.
    :param url: The resource URL.
    :param parameters: (optional) A mapping or an iterable of ``(key,
        value)`` string pairs.
    :param nonce: (optional) Fixed OAuth nonce, for reproducible signatures.
    :param timestamp: (optional) Fixed OAuth timestamp.
    :raises InvalidURLError: for a URL that cannot be addressed.
    :raises InvalidRequestError: for parameters that cannot be encoded.
    """
    method = method.upper()
    if method not in SUPPORTED_METHODS:
        raise InvalidRequestError("Unsupported method: %r" % method)

    validate_url(url)

    if isinstance(credential, OAuthCredential):
        authorization = credential.sign(
            method, url, parameters, nonce=nonce, timestamp=timestamp
        )
        encoded = encode_parameters(parameters)
        headers = [('Authorization', authorization)]

        if method == 'POST':
            body = encoded.encode('ascii') if encoded else None
            if body:
                headers.append(('Content-Type', CONTENT_TYPE_FORM_URLENCODED))
        else:
            url = append_query(url, encoded)
            body = None

        return PendingRequest(method, url, tuple(headers), body)

    if isinstance(credential, AccountCredential):
        request = credential.prepare_request(method, url, parameters)
        if not isinstance(request, PendingRequest):
            raise InvalidRequestError(
                "Account %r did not prepare a PendingRequest: got %r" % (
                    credential.identifier, request
                )
            )
        validate_url(request.url)
        return request

    raise InvalidCredentialError(
        "Unsupported credential type: %s" % type(credential).__name__
    )
