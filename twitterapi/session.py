# -*- coding: utf-8 -*-
"""
twitterapi/session
~~~~~~~~~~~~~~~~~~

The two kinds of request a client hands out.

A :class:`Request` is an ordinary bounded call: the whole body is collected
and handed to one completion handler. A :class:`StreamingRequest` keeps its
connection open indefinitely, framing the body into records as it arrives and
handing each one to a progress handler.

Both are driven by a :class:`Transport <twitterapi.transport.Transport>` on
its worker thread, and both hand every application callback to a
:class:`Dispatcher <twitterapi.dispatch.Dispatcher>`.
"""
import logging
import threading
import warnings

from .common.exceptions import CancelledError
from .dispatch import default_dispatcher
from .framing import LineFramer
from .request import validate_url
from .transport import DEFAULT_CONFIGURATION, Transport

log = logging.getLogger(__name__)

#: The only status that lets a stream deliver records.
SUCCESS_STATUS = 200

# Streaming request states.
STATE_IDLE = 'idle'
STATE_CONNECTING = 'connecting'
STATE_STREAMING = 'streaming'
STATE_STOPPING = 'stopping'
STATE_CLOSED = 'closed'


class StreamingRequest(object):
    """
    A long-lived request to a Streaming API endpoint.

    The response body is split into ``\\r\\n``-delimited records. Each
    non-empty record is passed to the progress handler, in the order it
    arrived; empty records are keep-alives and are dropped. When the stream
    ends, for whatever reason, the completion handler is called exactly once
    with ``(data, response, error)``:

    - ``data`` is what the framer accumulated: the whole body, or only the
      unframed tail if the configuration doesn't keep stream history.
    - ``response`` is the response head, or ``None`` if none arrived.
    - ``error`` is the transport error, a ``CancelledError`` after
      :meth:`stop`, or ``None``.

    A stream the server refuses with any status other than 200 is closed as
    soon as the head arrives. Its completion carries that response and no
    error, so check ``response.status`` as well as ``error``.

    Handlers run on the dispatcher's delivery thread, never concurrently with
    each other. Registering a handler replaces the previous one.

    :param request: The signed ``PendingRequest`` to send.
    :param configuration: (optional) The transport ``Configuration``.
    :param dispatcher: (optional) The ``Dispatcher`` to deliver callbacks on.
        Defaults to the process-wide one.
    """
    def __init__(self, request, configuration=None, dispatcher=None,
                 transport_class=Transport):
        validate_url(request.url)

        self.original_request = request
        self.configuration = configuration or DEFAULT_CONFIGURATION
        self.dispatcher = dispatcher or default_dispatcher()

        self.framer = LineFramer(
            keep_history=self.configuration.keep_stream_history
        )

        #: The response head, once one has arrived.
        self.last_response = None

        #: The error the stream ended with, once it has ended.
        self.error = None

        self._progress_handler = None
        self._completion_handler = None

        # Guards the state, the framer, and the order callbacks are queued in.
        self._lock = threading.Lock()
        self._state = STATE_IDLE
        self._cancelled = False

        self._transport = transport_class(
            request,
            self._on_response,
            self._on_data,
            self._on_complete,
            configuration=self.configuration,
        )

    @property
    def state(self):
        return self._state

    def progress(self, handler):
        """
        Sets the handler called with each record, as bytes.
        """
        self._progress_handler = handler
        return self

    def completion(self, handler):
        """
        Sets the handler called once with ``(data, response, error)`` when
        the stream ends.
        """
        self._completion_handler = handler
        return self

    def start(self):
        """
        Opens the stream. Calling it again, or after :meth:`stop`, does
        nothing.
        """
        with self._lock:
            if self._state != STATE_IDLE:
                return self
            self._state = STATE_CONNECTING

        log.debug("Starting stream %s", self.original_request.url)
        self._transport.resume()
        return self

    def stop(self):
        """
        Closes the stream. No progress is delivered after this returns, and
        the completion handler receives a ``CancelledError``. Safe to call
        from any thread, including from a handler.
        """
        with self._lock:
            self._cancelled = True

            if self._state == STATE_IDLE:
                self._close(CancelledError(
                    "Stream %s was stopped before it started." % (
                        self.original_request.url
                    )
                ))
                return self

            if self._state not in (STATE_CONNECTING, STATE_STREAMING):
                return self

            self._state = STATE_STOPPING

        log.debug("Stopping stream %s", self.original_request.url)
        self._transport.cancel()
        return self

    def join(self, timeout=None):
        """
        Waits for the transport to finish. Callbacks may still be queued on
        the dispatcher when this returns.
        """
        self._transport.join(timeout)

    def _on_response(self, response):
        with self._lock:
            if self._state != STATE_CONNECTING:
                return False

            self.last_response = response

            if response.status == SUCCESS_STATUS:
                self._state = STATE_STREAMING
                return True

            log.debug(
                "Stream %s refused with status %d",
                self.original_request.url, response.status
            )
            self._close(None)
            return False

    def _on_data(self, data):
        with self._lock:
            if self._state != STATE_STREAMING:
                return

            self.framer.append(data)
            for record in self.framer:
                # Empty records are keep-alives.
                if record:
                    self.dispatcher.dispatch(self._deliver_progress, record)

    def _on_complete(self, error):
        with self._lock:
            if self._state == STATE_CLOSED:
                return

            if self._state == STATE_STOPPING and error is None:
                error = CancelledError(
                    "Stream %s was stopped." % self.original_request.url
                )

            self._close(error)

    def _close(self, error):
        # Must be called with the lock held.
        self._state = STATE_CLOSED
        self.error = error
        self.dispatcher.dispatch(
            self._deliver_completion,
            self.framer.accumulated(),
            self.last_response,
            error,
        )

    def _deliver_progress(self, record):
        # Records queued before stop() are dropped here.
        if self._cancelled:
            return

        handler = self._progress_handler
        if handler is not None:
            handler(record)

    def _deliver_completion(self, data, response, error):
        handler = self._completion_handler
        if handler is not None:
            handler(data, response, error)

    def __repr__(self):
        return '<StreamingRequest %s %s state=%s>' % (
            self.original_request.method,
            self.original_request.url,
            self._state,
        )


class Request(object):
    """
    A bounded request. The response body is collected in full and handed to
    the completion handler, once, as ``(data, response, error)``.

    Requests aren't sent until they're started, either explicitly with
    :meth:`start` or by registering a handler with :meth:`response`.

    :param request: The signed ``PendingRequest`` to send.
    :param configuration: (optional) The transport ``Configuration``.
    :param dispatcher: (optional) The ``Dispatcher`` to deliver the
        completion on. Defaults to the process-wide one.
    """
    def __init__(self, request, configuration=None, dispatcher=None,
                 transport_class=Transport):
        validate_url(request.url)

        self.original_request = request
        self.configuration = configuration or DEFAULT_CONFIGURATION
        self.dispatcher = dispatcher or default_dispatcher()

        self.last_response = None
        self.error = None

        self._body = bytearray()
        self._handler = None
        self._result = None
        self._lock = threading.Lock()
        self._started = False
        self._completed = False

        self._transport = transport_class(
            request,
            self._on_response,
            self._on_data,
            self._on_complete,
            configuration=self.configuration,
        )

    @property
    def started(self):
        return self._started

    @property
    def completed(self):
        return self._completed

    def response(self, handler):
        """
        Sets the completion handler and starts the request if it hasn't
        been started yet. A handler set after the result was delivered is
        called with that result.
        """
        with self._lock:
            self._handler = handler
            result = self._result

        if result is not None:
            self.dispatcher.dispatch(handler, *result)
            return self

        return self.start()

    def start(self):
        """
        Sends the request. Calling it again does nothing.
        """
        with self._lock:
            if self._started:
                return self
            self._started = True

        self._transport.resume()
        return self

    def cancel(self):
        """
        Aborts the request. The completion handler receives a
        ``CancelledError``.
        """
        with self._lock:
            if self._completed:
                return self

            if not self._started:
                self._started = True
                self._finish(CancelledError(
                    "Request to %s was cancelled before it started." % (
                        self.original_request.url
                    )
                ))
                return self

        self._transport.cancel()
        return self

    def join(self, timeout=None):
        self._transport.join(timeout)

    def _on_response(self, response):
        with self._lock:
            self.last_response = response
        return True

    def _on_data(self, data):
        with self._lock:
            self._body += data

    def _on_complete(self, error):
        with self._lock:
            if self._completed:
                return
            self._finish(error)

    def _finish(self, error):
        # Must be called with the lock held.
        self._completed = True
        self.error = error
        self.dispatcher.dispatch(
            self._deliver, bytes(self._body), self.last_response, error
        )

    def _deliver(self, data, response, error):
        with self._lock:
            self._result = (data, response, error)
            handler = self._handler

        if handler is not None:
            handler(data, response, error)

    def __del__(self):
        # A request whose construction failed has nothing to warn about.
        if not getattr(self, '_started', True):
            warnings.warn(
                "Request to %s was never started." % (
                    self.original_request.url
                ),
                ResourceWarning,
            )

    def __repr__(self):
        return '<Request %s %s>' % (
            self.original_request.method, self.original_request.url
        )
