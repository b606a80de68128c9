# -*- coding: utf-8 -*-
"""
twitterapi/http11/response
~~~~~~~~~~~~~~~~~~~~~~~~~~

Contains the HTTP/1.1 response object used by twitterapi's transport. The
response is read either all at once (REST calls) or incrementally, one
decoded chunk at a time (streaming calls).
"""
import zlib

import brotli

from ..common.exceptions import ChunkedDecodeError, InvalidResponseError
from ..common.headers import HTTPHeaderMap

#: The largest amount of data a single incremental read will ask for.
STREAM_READ_SIZE = 65536


class HTTP11Response(object):
    """
    The response to one request on an :class:`HTTP11Connection
    <twitterapi.http11.connection.HTTP11Connection>`.

    The head is parsed up front. The body is read from the connection's
    socket on demand, whichever way it is delimited (length, chunking or
    connection close), and is decoded if it is compressed.
    """
    def __init__(self, code, reason, headers, sock, connection=None,
                 request_method=None):
        #: The reason phrase returned by the server.
        self.reason = reason

        #: The status code returned by the server.
        self.status = code

        #: The response headers. These are determined upon creation, assigned
        #: once, and never assigned again.
        if not isinstance(headers, HTTPHeaderMap):
            headers = HTTPHeaderMap(
                (k, v) for k, values in headers.items() for v in values
            )
        self.headers = headers

        # None once the body has been read or the response closed.
        self._sock = sock

        # Whether we expect the connection to be closed. If we do, we don't
        # bother checking for content-length, we just keep reading until
        # we no longer can.
        self._expect_close = False
        if b'close' in self.headers.get(b'connection', []):
            self._expect_close = True

        # The expected length of the body.
        if request_method != b'HEAD':
            try:
                self._length = int(self.headers[b'content-length'][0])
            except KeyError:
                self._length = None
            except ValueError:
                raise InvalidResponseError(
                    "Invalid Content-Length: %r" %
                    self.headers[b'content-length'][0]
                )
        else:
            self._length = 0

        # Whether we expect a chunked response.
        self._chunked = (
            b'chunked' in self.headers.get(b'transfer-encoding', [])
        )

        # One of the following must be true: either we're expecting a chunked
        # response, we have a content length, or we're expecting the
        # connection to close.
        if not self._chunked and self._length is None:
            self._expect_close = True

        # This object is used for decompressing compressed response bodies.
        # 16 + MAX_WBITS selects the gzip container.
        if b'gzip' in self.headers.get(b'content-encoding', []):
            self._decompressobj = zlib.decompressobj(16 + zlib.MAX_WBITS)
        elif b'br' in self.headers.get(b'content-encoding', []):
            self._decompressobj = BrotliDecompressor()
        elif b'deflate' in self.headers.get(b'content-encoding', []):
            self._decompressobj = DeflateDecoder()
        else:
            self._decompressobj = None

        # This is a reference that allows for the Response class to tell the
        # parent connection object to throw away its socket object. This is to
        # be used when the connection is genuinely closed.
        self._parent = connection

    def read(self, amt=None, decode_content=True):
        """
        Reads the response body, or up to the next ``amt`` bytes.

        :param amt: (optional) The most bytes to return. Without it the whole
            remaining body is read.
        :param decode_content: (optional) Whether to undo any
            ``Content-Encoding`` before returning the data.
        :returns: The data. Once decoded it may be longer or shorter than
            ``amt``.
        """
        # If we're asked to do a read without a length, we need to read
        # everything. That means either the entire content length, or until
        # the socket is closed, depending.
        if amt is None:
            return b''.join(self.stream(decode_content=decode_content))

        if self._chunked:
            raise ChunkedDecodeError(
                "Sized reads of chunked bodies are not supported: use "
                "read_chunked() or stream()."
            )

        # Nothing left to read once the socket is released.
        if self._sock is None:
            return b''

        if self._length is not None:
            amt = min(amt, self._length)

        if self._length is None:
            data = self._read_once(amt)
        else:
            data = self._read_sized(amt)

        if self._length is not None:
            self._length -= len(data)

        end_of_request = (self._length == 0 or not data)

        if decode_content and self._decompressobj and data:
            data = self._decode(data)

        if decode_content and self._decompressobj and end_of_request:
            data += self._flush_decoder()

        if end_of_request:
            self.close(socket_close=self._expect_close)

        return data

    def read_chunked(self, decode_content=True):
        """
        Reads chunked transfer encoded bodies. This method returns a generator:
        each iteration of which yields one chunk *unless* the chunks are
        compressed, in which case it yields whatever the decompressor provides
        for each chunk.

        .. warning:: This may yield the empty string, without that being the
                     end of the body!
        """
        if not self._chunked:
            raise ChunkedDecodeError(
                "Attempted chunked read of non-chunked body."
            )

        # Return early if possible.
        if self._sock is None:
            return

        while True:
            # Read to the newline to get the chunk length. This is a
            # hexadecimal integer, optionally followed by extensions.
            line = self._sock.readline().tobytes()
            try:
                chunk_length = int(line.split(b';', 1)[0].strip(), 16)
            except ValueError:
                raise ChunkedDecodeError("Invalid chunk length: %r" % line)

            data = b''

            # If the chunk length is zero, skip any trailers and consume the
            # final newline, then we're done. If we're decompressing data,
            # return the remainder of the decompressed data.
            if not chunk_length:
                trailer = None
                while trailer not in (b'\r\n', b'\n', b''):
                    trailer = self._sock.readline().tobytes()

                if decode_content and self._decompressobj:
                    yield self._flush_decoder()

                self.close(socket_close=self._expect_close)
                break

            # Then read that many bytes.
            while chunk_length > 0:
                chunk = self._sock.recv(chunk_length).tobytes()
                data += chunk
                chunk_length -= len(chunk)

            # Now, consume the newline.
            if self._sock.readline().tobytes() not in (b'\r\n', b'\n'):
                raise ChunkedDecodeError(
                    "Chunk longer than its declared length."
                )

            # We may need to decode the body.
            if decode_content and self._decompressobj and data:
                data = self._decode(data)

            yield data

    def stream(self, amt=STREAM_READ_SIZE, decode_content=True):
        """
        Reads the body incrementally, whatever its framing. This is a
        generator that yields each piece of body data as soon as the network
        provides it, for as long as the server keeps the body open.

        :param amt: (optional) The largest piece of data to read at once from
            a body that isn't chunked.
        :param decode_content: (optional) Whether to undo any
            ``Content-Encoding`` before returning the data.
        """
        if self._chunked:
            for chunk in self.read_chunked(decode_content=decode_content):
                yield chunk
            return

        if self._length is not None:
            while self._sock is not None:
                yield self.read(amt, decode_content=decode_content)
            return

        for chunk in self._read_until_closed(amt, decode_content):
            yield chunk

    def _decode(self, data):
        try:
            return self._decompressobj.decompress(data)
        except (zlib.error, brotli.Error) as e:
            raise InvalidResponseError("Cannot decode body: %s" % e)

    def _flush_decoder(self):
        try:
            return self._decompressobj.flush()
        except (zlib.error, brotli.Error) as e:
            raise InvalidResponseError("Cannot decode body: %s" % e)

    def _read_sized(self, amt):
        # Issue reads until we read that length. This is to account for
        # the fact that it's possible that we'll be asked to read more than
        # the socket buffer holds in one shot.
        to_read = amt
        chunks = []

        while to_read > 0:
            chunk = self._sock.recv(to_read).tobytes()
            to_read -= len(chunk)
            chunks.append(chunk)

        return b''.join(chunks)

    def _read_once(self, amt):
        # A body delimited by connection close ends with the reset.
        try:
            return self._sock.recv(amt).tobytes()
        except ConnectionResetError:
            return b''

    def _read_until_closed(self, amt, decode_content):
        """
        Reads until the server closes the connection, which is how bodies
        without a length or chunking end.
        """
        while self._sock is not None:
            data = self._read_once(amt)
            if not data:
                break

            if decode_content and self._decompressobj:
                data = self._decode(data)

            yield data

        if decode_content and self._decompressobj:
            yield self._flush_decoder()

        self.close(socket_close=True)

    def close(self, socket_close=False):
        """
        Close the response. This causes the Response to lose access to the
        backing socket. In some cases, it can also cause the backing connection
        to be torn down.

        :param socket_close: Whether to close the backing socket.
        :returns: Nothing.
        """
        if socket_close and self._parent is not None:
            self._parent.close()

        self._sock = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
        return False  # Never swallow exceptions.


class DeflateDecoder(object):
    """
    Decodes ``Content-Encoding: deflate`` bodies.

    ``deflate`` is meant to be zlib-wrapped data, but some servers send a raw
    deflate stream instead. The first piece of data decides which of the two
    ``zlib`` wbits settings is used for the rest of the body.
    """
    def __init__(self):
        self._first_try = True
        self._data = b''
        self._obj = zlib.decompressobj(zlib.MAX_WBITS)

    def __getattr__(self, name):
        return getattr(self._obj, name)

    def decompress(self, data):
        if not self._first_try:
            return self._obj.decompress(data)

        self._data += data
        try:
            decompressed = self._obj.decompress(data)
            if decompressed:
                self._first_try = False
                self._data = None
            return decompressed
        except zlib.error:
            self._first_try = False
            self._obj = zlib.decompressobj(-zlib.MAX_WBITS)
            try:
                return self.decompress(self._data)
            finally:
                self._data = None


class BrotliDecompressor(object):
    def __init__(self):
        self._obj = brotli.Decompressor()

    def decompress(self, raw_data):
        return self._obj.decompress(raw_data)

    def flush(self):
        return self._obj.finish()
