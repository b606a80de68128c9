# -*- coding: utf-8 -*-
"""
twitterapi/http11/connection
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

A single HTTP/1.1 connection: one request out, one response head back, and a
socket for the response to read its body from.
"""
import logging
import socket

from .parser import Parser
from .response import HTTP11Response
from ..tls import wrap_socket
from ..common.bufsocket import BufferedSocket
from ..common.headers import HTTPHeaderMap
from ..common.util import to_bytestring, to_host_port_tuple


log = logging.getLogger(__name__)


class HTTP11Connection(object):
    """
    A connection to one Twitter API host.

    :param host: The host name or IP address, optionally with a port, e.g.
        ``'stream.twitter.com'`` or ``'127.0.0.1:8080'``.
    :param port: (optional) The port. Overrides any port in ``host``;
        defaults to 80 if neither gives one.
    :param secure: (optional) Whether to use TLS. By default only port 443
        does.
    :param ssl_context: (optional) The ``SSLContext`` to use instead of
        twitterapi's default one.
    :param timeout: (optional) A socket timeout, or a ``(connect, read)``
        tuple of timeouts. ``None`` blocks forever.
    :param network_buffer_size: (optional) The size of the socket's receive
        buffer. It bounds the longest header or chunk-size line accepted.
    """
    def __init__(self, host, port=None, secure=None, ssl_context=None,
                 timeout=None, network_buffer_size=65536):
        if port is None:
            self.host, self.port = to_host_port_tuple(host, default_port=80)
        else:
            self.host, self.port = host, port

        self.secure = self.port == 443 if secure is None else secure
        self.ssl_context = ssl_context
        self.network_buffer_size = network_buffer_size

        #: The parser used for response heads.
        self.parser = Parser()

        self._timeout = timeout
        self._sock = None

        # The method of the request in flight. A HEAD response has no body
        # whatever its headers say.
        self._current_request_method = None

    def _timeouts(self):
        if isinstance(self._timeout, tuple):
            return self._timeout
        return self._timeout, self._timeout

    def connect(self):
        """
        Opens the connection, doing the TLS handshake if it is secure. Does
        nothing if it is already open.
        """
        if self._sock is not None:
            return

        connect_timeout, read_timeout = self._timeouts()

        log.debug("Connecting to %s:%d", self.host, self.port)
        sock = socket.create_connection(
            (self.host, self.port), timeout=connect_timeout
        )

        if self.secure:
            sock = wrap_socket(sock, self.host, self.ssl_context)
            log.debug("TLS established with %s", self.host)

        sock = BufferedSocket(sock, self.network_buffer_size)
        sock.settimeout(read_timeout)
        self._sock = sock

    def request(self, method, url, body=None, headers=None):
        """
        Sends a request, connecting first if needed.

        ``Host`` and, when there is a body, ``Content-Length`` are added
        unless the caller already set them.

        :param method: The request method, e.g. ``'GET'``.
        :param url: The request target, e.g. ``'/1.1/statuses/sample.json'``.
        :param body: (optional) The request body, as a bytestring.
        :param headers: (optional) An ``HTTPHeaderMap`` or an iterable of
            ``(name, value)`` pairs.
        """
        if body is not None and not isinstance(body, bytes):
            raise ValueError(
                'Request body must be a bytestring. Got: {}'.format(type(body))
            )

        method = to_bytestring(method)
        url = to_bytestring(url)

        if headers is None:
            headers = HTTPHeaderMap()
        elif not isinstance(headers, HTTPHeaderMap):
            headers = HTTPHeaderMap(headers)

        if body and b'content-length' not in headers:
            headers[b'content-length'] = str(len(body)).encode('ascii')

        if b'host' not in headers:
            headers[b'host'] = self._host_header()

        self.connect()
        self._current_request_method = method

        self._send_headers(method, url, headers)
        if body:
            self._sock.sendall(body)

    def _host_header(self):
        default_port = 443 if self.secure else 80
        if self.port == default_port:
            return self.host
        return '%s:%d' % (self.host, self.port)

    def _send_headers(self, method, url, headers):
        block = [b' '.join([method, url, b'HTTP/1.1\r\n'])]

        for name, value in headers.iter_raw():
            block.append(b''.join([name, b': ', value, b'\r\n']))

        block.append(b'\r\n')
        self._sock.sendall(b''.join(block))

    def get_response(self):
        """
        Waits for the response head and returns an :class:`HTTP11Response
        <twitterapi.http11.response.HTTP11Response>`. The body is left on the
        socket for the response to read.
        """
        method = self._current_request_method
        self._current_request_method = None

        head = self.parser.parse_response(self._sock.buffer)
        while head is None:
            self._sock.fill()
            head = self.parser.parse_response(self._sock.buffer)

        self._sock.advance_buffer(head.consumed)
        log.debug("Received response head: %d", head.status)

        return HTTP11Response(
            head.status,
            head.msg,
            HTTPHeaderMap(head.headers),
            self._sock,
            self,
            method,
        )

    def shutdown(self):
        """
        Shuts the socket down in both directions without releasing it. This is
        safe to call from a thread other than the one reading the response,
        and makes a blocked read return.
        """
        sock = self._sock
        if sock is not None:
            sock.shutdown(socket.SHUT_RDWR)

    def close(self):
        """
        Closes the socket. A response still reading its body will fail.
        """
        if self._sock is not None:
            self._sock.close()
        self._sock = None

    def __enter__(self):
        return self

    def __exit__(self, type, value, tb):
        self.close()
        return False  # Never swallow exceptions.
