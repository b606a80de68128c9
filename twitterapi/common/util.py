# -*- coding: utf-8 -*-
"""
twitterapi/common/util
~~~~~~~~~~~~~~~~~~~~~~

General utility functions for use with twitterapi.
"""
import collections.abc
import re

from oauthlib.oauth1.rfc5849.utils import escape

from .exceptions import InvalidRequestError


def to_bytestring(element):
    """
    Returns ``element`` as bytes. Text is encoded as UTF-8.
    """
    if isinstance(element, str):
        return element.encode('utf-8')
    elif isinstance(element, bytes):
        return element
    else:
        raise ValueError("Expected str or bytes, got %r" % type(element))


def to_bytestring_tuple(*x):
    """
    Applies :func:`to_bytestring` to each argument.
    """
    return tuple(map(to_bytestring, x))


def to_host_port_tuple(host_port_str, default_port=80):
    """
    Splits ``'host[:port]'`` into ``(host, port)``. IPv6 brackets are
    stripped from the host.
    """
    if re.search(r"\]:\d+|\.\d{1,3}:\d+|[a-zA-Z0-9-]+:\d+", host_port_str):
        host, port = host_port_str.rsplit(':', 1)
        port = int(port)
    else:
        host, port = host_port_str, default_port

    host = host.strip('[]')

    return ((host, port))


def percent_encode(value):
    """
    Percent-encodes a single string the way OAuth 1.0 requires (RFC 3986):
    everything except unreserved characters is escaped, so ``/`` becomes
    ``%2F`` and a space becomes ``%20``, never ``+``.
    """
    try:
        return escape(value)
    except (ValueError, TypeError) as e:
        raise InvalidRequestError(
            "Cannot encode parameter %r: %s" % (value, e)
        )


def encode_parameters(parameters):
    """
    Encodes request parameters as ``key=value`` pairs joined by ``&``, in the
    order they were given.

    :param parameters: A mapping, or an iterable of ``(key, value)`` pairs.
        Keys and values must be strings.
    """
    if parameters is None:
        return ''

    if isinstance(parameters, collections.abc.Mapping):
        parameters = parameters.items()

    return '&'.join(
        '%s=%s' % (percent_encode(k), percent_encode(v))
        for k, v in parameters
    )


def append_query(url, query):
    """
    Appends an encoded query string to a URL, which may already carry one.
    """
    if not query:
        return url

    separator = '&' if '?' in url else '?'
    return url + separator + query
