# -*- coding: utf-8 -*-
"""
test_transport.py
~~~~~~~~~~~~~~~~~

Tests for the threaded transport, its configuration, and the full path from
a socket to the application handlers.
"""
import socket
import ssl
import threading
import zlib

import pytest

from twitterapi.common.exceptions import (
    CancelledError, ChunkedDecodeError, InvalidResponseError
)
from twitterapi.request import PendingRequest
from twitterapi.session import Request, StreamingRequest
from twitterapi.transport import Configuration, Transport

SAMPLE_URL = 'http://stream.twitter.com/1.1/statuses/sample.json'


class DummyResponse(object):
    def __init__(self, status, chunks=(), error=None):
        self.status = status
        self.chunks = list(chunks)
        self.error = error

    def stream(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


class DummyConnection(object):
    response = None

    def __init__(self, host, port=None, secure=None, ssl_context=None,
                 timeout=None, network_buffer_size=65536):
        self.host = host
        self.port = port
        self.secure = secure
        self.ssl_context = ssl_context
        self.timeout = timeout
        self.network_buffer_size = network_buffer_size
        self.requests = []
        self.connected = False
        self.closed = False
        self.shut_down = False

    def connect(self):
        self.connected = True

    def request(self, method, url, body=None, headers=None):
        self.requests.append((method, url, body, headers))

    def get_response(self):
        return self.response

    def shutdown(self):
        self.shut_down = True

    def close(self):
        self.closed = True


class Callbacks(object):
    def __init__(self, accept=True):
        self.accept = accept
        self.responses = []
        self.data = []
        self.completions = []

    def on_response(self, response):
        self.responses.append(response)
        return self.accept

    def on_data(self, data):
        self.data.append(data)

    def on_complete(self, error):
        self.completions.append(error)


def pending(url=SAMPLE_URL, method='GET', headers=(), body=None):
    return PendingRequest(method, url, headers, body)


def run(transport):
    transport.resume()
    transport.join(5)
    assert not transport._thread.is_alive()


@pytest.fixture
def connection_class():
    class Connection(DummyConnection):
        instances = []

        def __init__(self, *args, **kwargs):
            super(Connection, self).__init__(*args, **kwargs)
            Connection.instances.append(self)

    return Connection


def make_transport(request, callbacks, connection_class, configuration=None):
    return Transport(
        request,
        callbacks.on_response,
        callbacks.on_data,
        callbacks.on_complete,
        configuration=configuration,
        connection_class=connection_class,
    )


class TestTransport(object):
    def test_events_arrive_in_order(self, connection_class):
        response = DummyResponse(200, [b'abc', b'', b'def'])
        connection_class.response = response
        callbacks = Callbacks()

        run(make_transport(pending(), callbacks, connection_class))

        assert callbacks.responses == [response]
        assert callbacks.data == [b'abc', b'def']
        assert callbacks.completions == [None]

    def test_request_is_sent_to_the_right_place(self, connection_class):
        connection_class.response = DummyResponse(200)
        request = pending(
            'https://api.twitter.com/1.1/statuses/update.json',
            method='POST',
            headers=(('Authorization', 'OAuth x'),),
            body=b'status=hi',
        )

        run(make_transport(request, Callbacks(), connection_class))

        conn = connection_class.instances[0]
        assert (conn.host, conn.port, conn.secure) == (
            'api.twitter.com', 443, True
        )
        assert conn.connected
        assert conn.closed

        method, url, body, headers = conn.requests[0]
        assert method == 'POST'
        assert url == '/1.1/statuses/update.json'
        assert body == b'status=hi'
        assert headers['authorization'] == [b'OAuth x']

    def test_configuration_reaches_the_connection(self, connection_class):
        connection_class.response = DummyResponse(200)
        configuration = Configuration(timeout=(5, 90), network_buffer_size=10)

        run(make_transport(
            pending(), Callbacks(), connection_class, configuration
        ))

        conn = connection_class.instances[0]
        assert conn.timeout == (5, 90)
        assert conn.network_buffer_size == 10

    def test_refused_body_is_not_read(self, connection_class):
        connection_class.response = DummyResponse(420, [b'never'])
        callbacks = Callbacks(accept=False)

        run(make_transport(pending(), callbacks, connection_class))

        assert callbacks.data == []
        assert callbacks.completions == [None]
        assert connection_class.instances[0].closed

    def test_stream_errors_are_reported(self, connection_class):
        error = ChunkedDecodeError('bad chunk')
        connection_class.response = DummyResponse(200, [b'abc'], error)
        callbacks = Callbacks()

        run(make_transport(pending(), callbacks, connection_class))

        assert callbacks.data == [b'abc']
        assert callbacks.completions == [error]

    @pytest.mark.parametrize('error', [
        zlib.error('incorrect header check'),
        ValueError('bad value'),
    ])
    def test_unexpected_stream_errors_are_reported(self, connection_class,
                                                   error):
        connection_class.response = DummyResponse(200, [b'abc'], error)
        callbacks = Callbacks()

        run(make_transport(pending(), callbacks, connection_class))

        assert callbacks.data == [b'abc']
        assert callbacks.completions == [error]
        assert connection_class.instances[0].closed

    def test_failing_data_callback_is_reported(self, connection_class):
        connection_class.response = DummyResponse(200, [b'abc', b'def'])
        error = RuntimeError('Dispatcher is closed')
        callbacks = Callbacks()

        def on_data(data):
            raise error

        transport = Transport(
            pending(),
            callbacks.on_response,
            on_data,
            callbacks.on_complete,
            connection_class=connection_class,
        )
        run(transport)

        assert callbacks.completions == [error]

    def test_connection_errors_are_reported(self, connection_class):
        class Unreachable(connection_class):
            def connect(self):
                raise ConnectionRefusedError()

        callbacks = Callbacks()
        run(make_transport(pending(), callbacks, Unreachable))

        assert callbacks.responses == []
        assert len(callbacks.completions) == 1
        assert isinstance(callbacks.completions[0], ConnectionRefusedError)

    def test_cancel_before_connecting(self, connection_class):
        connection_class.response = DummyResponse(200, [b'abc'])
        callbacks = Callbacks()
        transport = make_transport(pending(), callbacks, connection_class)

        transport.cancel()
        run(transport)

        assert transport.cancelled
        assert callbacks.responses == []
        assert len(callbacks.completions) == 1
        assert isinstance(callbacks.completions[0], CancelledError)
        assert connection_class.instances[0].closed

    def test_cancel_shuts_the_connection_down(self, connection_class):
        started = threading.Event()
        release = threading.Event()

        class Blocking(connection_class):
            def get_response(self):
                started.set()
                release.wait(5)
                return DummyResponse(200, [b'abc'])

            def shutdown(self):
                super(Blocking, self).shutdown()
                release.set()

        callbacks = Callbacks()
        transport = make_transport(pending(), callbacks, Blocking)
        transport.resume()
        assert started.wait(5)

        transport.cancel()
        transport.cancel()
        transport.join(5)

        assert Blocking.instances[0].shut_down
        assert callbacks.data == []
        assert len(callbacks.completions) == 1
        assert isinstance(callbacks.completions[0], CancelledError)

    def test_resume_is_idempotent(self, connection_class):
        connection_class.response = DummyResponse(200)
        callbacks = Callbacks()
        transport = make_transport(pending(), callbacks, connection_class)

        transport.resume()
        transport.resume()
        transport.join(5)

        assert len(connection_class.instances) == 1
        assert callbacks.completions == [None]

    def test_default_headers(self):
        transport = Transport(pending(), None, None, None)
        headers = transport.build_headers()

        assert headers['user-agent'][0].startswith(b'twitterapi/')
        assert 'accept-encoding' not in headers

    def test_compression_is_requested_when_configured(self):
        transport = Transport(
            pending(), None, None, None,
            configuration=Configuration(compress=True),
        )
        headers = transport.build_headers()

        assert headers['accept-encoding'] == [b'gzip', b'deflate', b'br']

    def test_request_headers_win(self):
        request = pending(headers=(('User-Agent', 'mine'),))
        transport = Transport(request, None, None, None)

        assert transport.build_headers()['user-agent'] == [b'mine']


class TestConfiguration(object):
    def test_defaults(self):
        c = Configuration()

        assert c.timeout is None
        assert c.verify
        assert c.keep_stream_history
        assert not c.compress
        assert c.network_buffer_size == 65536
        assert c.user_agent.startswith('twitterapi/')

    def test_replace(self):
        c = Configuration()
        d = c.replace(verify=False)

        assert c.verify
        assert not d.verify
        assert d.user_agent == c.user_agent

    def test_default_context_is_shared(self):
        assert Configuration().create_ssl_context() is None

    def test_unverified_context(self):
        context = Configuration(verify=False).create_ssl_context()

        assert context.verify_mode == ssl.CERT_NONE
        assert not context.check_hostname

    def test_explicit_context_wins(self):
        context = ssl.create_default_context()
        c = Configuration(verify=False, ssl_context=context)

        assert c.create_ssl_context() is context


def chunk(data):
    return b'%x\r\n' % len(data) + data + b'\r\n'


@pytest.fixture
def socket_pair(monkeypatch):
    """
    Connects every outgoing connection to one end of a socket pair and
    returns the other end, for the test to play the server.
    """
    client, server = socket.socketpair()
    monkeypatch.setattr(
        socket, 'create_connection', lambda *args, **kwargs: client
    )
    yield server
    server.close()
    client.close()


class TestOverSocket(object):
    def test_stream_end_to_end(self, socket_pair, dispatcher):
        socket_pair.sendall(
            b'HTTP/1.1 200 OK\r\n'
            b'Transfer-Encoding: chunked\r\n'
            b'\r\n' +
            chunk(b'{"a":1}\r\n{"b"') +
            chunk(b':2}\r\n\r\n') +
            b'0\r\n\r\n'
        )
        records = []
        completions = []
        done = threading.Event()

        def completion(data, response, error):
            completions.append((data, response, error))
            done.set()

        s = StreamingRequest(pending(), dispatcher=dispatcher)
        s.progress(records.append).completion(completion).start()

        assert done.wait(5)
        dispatcher.join()

        assert records == [b'{"a":1}', b'{"b":2}']
        data, response, error = completions[0]
        assert data == b'{"a":1}\r\n{"b":2}\r\n\r\n'
        assert response.status == 200
        assert error is None

        sent = socket_pair.recv(65536)
        assert sent.startswith(
            b'GET /1.1/statuses/sample.json HTTP/1.1\r\n'
        )
        assert b'\r\nhost: stream.twitter.com\r\n' in sent

    def test_refused_stream_end_to_end(self, socket_pair, dispatcher):
        socket_pair.sendall(
            b'HTTP/1.1 420 Enhance Your Calm\r\n'
            b'Content-Length: 0\r\n'
            b'\r\n'
        )
        records = []
        completions = []
        done = threading.Event()

        def completion(data, response, error):
            completions.append((data, response, error))
            done.set()

        s = StreamingRequest(pending(), dispatcher=dispatcher)
        s.progress(records.append).completion(completion).start()

        assert done.wait(5)
        s.join(5)
        dispatcher.join()

        assert records == []
        assert len(completions) == 1
        data, response, error = completions[0]
        assert data == b''
        assert response.status == 420
        assert error is None

    def test_stop_unblocks_a_waiting_stream(self, socket_pair, dispatcher):
        socket_pair.sendall(
            b'HTTP/1.1 200 OK\r\n'
            b'Transfer-Encoding: chunked\r\n'
            b'\r\n' +
            chunk(b'{"a":1}\r\n')
        )
        first = threading.Event()
        done = threading.Event()
        completions = []

        def progress(record):
            first.set()

        def completion(data, response, error):
            completions.append((data, response, error))
            done.set()

        s = StreamingRequest(pending(), dispatcher=dispatcher)
        s.progress(progress).completion(completion).start()
        assert first.wait(5)

        # The server sends nothing more: the worker is blocked reading.
        s.stop()

        assert done.wait(5)
        assert len(completions) == 1
        assert isinstance(completions[0][2], CancelledError)

    def test_one_shot_end_to_end(self, socket_pair, dispatcher):
        socket_pair.sendall(
            b'HTTP/1.1 200 OK\r\n'
            b'Content-Length: 10\r\n'
            b'\r\n'
            b'[{"id":1}]'
        )
        completions = []
        done = threading.Event()

        def completion(data, response, error):
            completions.append((data, response, error))
            done.set()

        r = Request(
            pending('http://api.twitter.com/1.1/statuses/home_timeline.json'),
            dispatcher=dispatcher,
        )
        r.response(completion)

        assert done.wait(5)
        data, response, error = completions[0]
        assert data == b'[{"id":1}]'
        assert response.status == 200
        assert error is None

    def test_truncated_body_reports_the_partial_data(self, socket_pair,
                                                     dispatcher):
        socket_pair.sendall(
            b'HTTP/1.1 200 OK\r\n'
            b'Content-Length: 100\r\n'
            b'\r\n'
            b'[{"id":'
        )
        completions = []
        done = threading.Event()

        def completion(data, response, error):
            completions.append((data, response, error))
            done.set()

        r = Request(
            pending('http://api.twitter.com/1.1/statuses/home_timeline.json'),
            dispatcher=dispatcher,
        )
        r.response(completion)

        # Wait for the request to go out before hanging up.
        socket_pair.recv(65536)
        socket_pair.shutdown(socket.SHUT_RDWR)

        assert done.wait(5)
        data, response, error = completions[0]
        assert isinstance(error, ConnectionResetError)
        assert response.status == 200

    def test_corrupt_gzip_stream_completes_once(self, socket_pair,
                                                dispatcher):
        socket_pair.sendall(
            b'HTTP/1.1 200 OK\r\n'
            b'Content-Encoding: gzip\r\n'
            b'Content-Length: 12\r\n'
            b'\r\n'
            b'not gzip!!!!'
        )
        records = []
        completions = []
        done = threading.Event()

        def completion(data, response, error):
            completions.append((data, response, error))
            done.set()

        s = StreamingRequest(pending(), dispatcher=dispatcher)
        s.progress(records.append).completion(completion).start()

        assert done.wait(5)
        s.join(5)
        dispatcher.join()

        assert records == []
        assert len(completions) == 1
        data, response, error = completions[0]
        assert response.status == 200
        assert isinstance(error, InvalidResponseError)

    def test_bad_content_length_completes_once(self, socket_pair, dispatcher):
        socket_pair.sendall(
            b'HTTP/1.1 200 OK\r\n'
            b'Content-Length: abc\r\n'
            b'\r\n'
            b'[]'
        )
        completions = []
        done = threading.Event()

        def completion(data, response, error):
            completions.append((data, response, error))
            done.set()

        r = Request(
            pending('http://api.twitter.com/1.1/statuses/home_timeline.json'),
            dispatcher=dispatcher,
        )
        r.response(completion)

        assert done.wait(5)
        r.join(5)
        dispatcher.join()

        assert len(completions) == 1
        data, response, error = completions[0]
        assert data == b''
        assert response is None
        assert isinstance(error, InvalidResponseError)
