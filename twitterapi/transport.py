# -*- coding: utf-8 -*-
"""
twitterapi/transport
~~~~~~~~~~~~~~~~~~~~

The asynchronous transport under every twitterapi request.

A :class:`Transport` sends one :class:`PendingRequest
<twitterapi.request.PendingRequest>` on its own worker thread and reports
back through three callbacks, always in this order:

- ``on_response(response)`` at most once, when the response head arrives.
  Returning ``False`` tells the transport to stop reading the body.
- ``on_data(data)`` any number of times, with each piece of decoded body.
- ``on_complete(error)`` exactly once, with ``None`` if the body ended
  normally, or the exception that ended it.

The callbacks run on the worker thread. Sessions are expected to hand
anything application-facing to a :class:`Dispatcher
<twitterapi.dispatch.Dispatcher>`.
"""
import logging
import threading
from collections import namedtuple

from . import __version__
from .common.exceptions import CancelledError, TRANSPORT_ERRORS
from .common.headers import HTTPHeaderMap
from .http11.connection import HTTP11Connection
from .tls import init_context

log = logging.getLogger(__name__)


_ConfigurationBase = namedtuple('Configuration', [
    'timeout',
    'verify',
    'ca_certs',
    'ssl_context',
    'network_buffer_size',
    'compress',
    'keep_stream_history',
    'user_agent',
])


class Configuration(_ConfigurationBase):
    """
    Transport settings. Immutable, so one configuration can be shared by any
    number of requests.

    :param timeout: (optional) Socket timeout in seconds, or a ``(connect,
        read)`` tuple. ``None``, the default, never times out: streams are
        meant to stay open indefinitely.
    :param verify: (optional) Whether to validate the server certificate.
        Defaults to ``True``. ``False`` accepts any certificate the server
        presents.
    :param ca_certs: (optional) Extra CA bundle to trust, in PEM format.
    :param ssl_context: (optional) A fully configured ``ssl.SSLContext``.
        Overrides ``verify`` and ``ca_certs``.
    :param network_buffer_size: (optional) Size of the socket read buffer.
    :param compress: (optional) Ask the server to compress response bodies.
        They are decoded transparently either way.
    :param keep_stream_history: (optional) Whether a streaming request keeps
        every received byte, so its completion handler gets the whole body.
        Long-running streams may want to turn this off.
    :param user_agent: (optional) The ``User-Agent`` header value.
    """
    __slots__ = ()

    def __new__(cls, timeout=None, verify=True, ca_certs=None,
                ssl_context=None, network_buffer_size=65536, compress=False,
                keep_stream_history=True, user_agent=None):
        if user_agent is None:
            user_agent = 'twitterapi/%s' % __version__
        return super(Configuration, cls).__new__(
            cls, timeout, verify, ca_certs, ssl_context, network_buffer_size,
            compress, keep_stream_history, user_agent,
        )

    def replace(self, **kwargs):
        """
        Returns a copy of this configuration with some settings changed.
        """
        return self._replace(**kwargs)

    def create_ssl_context(self):
        """
        Returns the ``SSLContext`` connections made with this configuration
        should use, or ``None`` for twitterapi's default one.
        """
        if self.ssl_context is not None:
            return self.ssl_context

        if self.verify and self.ca_certs is None:
            return None

        return init_context(verify=self.verify, ca_certs=self.ca_certs)


DEFAULT_CONFIGURATION = Configuration()


class Transport(object):
    """
    Runs one request on a dedicated worker thread.

    :param request: The ``PendingRequest`` to send.
    :param on_response: Called with the response head. Its return value
        decides whether the body is read.
    :param on_data: Called with each piece of decoded body data.
    :param on_complete: Called once at the end with the error, if any.
    :param configuration: (optional) The :class:`Configuration` to use.
    :param connection_class: (optional) The connection implementation.
    """
    def __init__(self, request, on_response, on_data, on_complete,
                 configuration=None, connection_class=HTTP11Connection):
        self.request = request
        self.configuration = configuration or DEFAULT_CONFIGURATION

        self._on_response = on_response
        self._on_data = on_data
        self._on_complete = on_complete

        self._connection_class = connection_class
        self._connection = None

        self._lock = threading.Lock()
        self._thread = None
        self._cancelled = False

    @property
    def cancelled(self):
        return self._cancelled

    def resume(self):
        """
        Starts the worker thread. A no-op if it has already been started.
        """
        with self._lock:
            if self._thread is not None:
                return

            self._thread = threading.Thread(
                target=self._run,
                name='twitterapi-transport %s' % self.request.host,
                daemon=True,
            )
            self._thread.start()

    def cancel(self):
        """
        Aborts the request. Safe to call from any thread, at any time, any
        number of times. The completion callback still fires, once, with a
        ``CancelledError``.
        """
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            connection = self._connection

        if connection is not None:
            try:
                connection.shutdown()
            except OSError as e:
                # The socket is already closed; the worker will notice.
                log.debug("Shutdown of cancelled connection failed: %s", e)

    def join(self, timeout=None):
        """
        Waits for the worker thread to finish.
        """
        if self._thread is not None:
            self._thread.join(timeout)

    def build_headers(self):
        """
        The headers actually sent: the request's own, plus the transport's.
        """
        headers = HTTPHeaderMap(self.request.headers)

        if 'user-agent' not in headers:
            headers['User-Agent'] = self.configuration.user_agent

        if self.configuration.compress and 'accept-encoding' not in headers:
            headers['Accept-Encoding'] = 'gzip, deflate, br'

        return headers

    def _connect(self):
        request = self.request
        conn = self._connection_class(
            request.host,
            request.port,
            secure=request.secure,
            ssl_context=self.configuration.create_ssl_context(),
            timeout=self.configuration.timeout,
            network_buffer_size=self.configuration.network_buffer_size,
        )

        with self._lock:
            self._connection = conn

        conn.connect()

        # A cancel() that ran before connect() finished found no socket to
        # shut down, so it must be noticed here.
        with self._lock:
            if self._cancelled:
                raise CancelledError()

        return conn

    def _run(self):
        error = None

        try:
            conn = self._connect()
            log.debug(
                "%s %s", self.request.method, self.request.url
            )
            conn.request(
                self.request.method,
                self.request.selector,
                self.request.body,
                self.build_headers(),
            )
            response = conn.get_response()

            if self._cancelled:
                raise CancelledError()

            if self._on_response(response):
                for data in response.stream():
                    if self._cancelled:
                        raise CancelledError()
                    if data:
                        self._on_data(data)
            else:
                log.debug(
                    "Body of %s refused after status %d",
                    self.request.url, response.status
                )
        except (CancelledError,) + TRANSPORT_ERRORS as e:
            error = e
        except Exception as e:
            log.exception("Unexpected error in request to %s", self.request.url)
            error = e
        finally:
            if self._connection is not None:
                self._connection.close()

        if self._cancelled:
            error = CancelledError("Request to %s was cancelled." % (
                self.request.url
            ))

        log.debug("Request to %s complete: %r", self.request.url, error)
        self._on_complete(error)
