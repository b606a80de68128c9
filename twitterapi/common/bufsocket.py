# -*- coding: utf-8 -*-
"""
twitterapi/common/bufsocket
~~~~~~~~~~~~~~~~~~~~~~~~~~~

A socket wrapper with a userspace receive buffer.

Response heads and chunk-size lines are read a few bytes at a time. Going to
the kernel for each of those would be slow, so reads land in one
preallocated buffer and are handed out from there as ``memoryview`` slices.
"""
import select
import socket

from .exceptions import LineTooLongError


class BufferedSocket(object):
    """
    Wraps a connected socket (plain or TLS) and buffers what it receives.

    Attributes the wrapper doesn't define are looked up on the socket, so it
    can be used in the socket's place.

    :param sck: The socket to wrap.
    :param buffer_size: (optional) The receive buffer size in bytes. It is
        also the longest line :meth:`readline` can return.
    """
    def __init__(self, sck, buffer_size=1000):
        self._sck = sck
        self._buffer_size = buffer_size

        self._backing_buffer = bytearray(buffer_size)
        self._buffer_view = memoryview(self._backing_buffer)

        # Unread data lives in [_index, _index + _bytes_in_buffer).
        self._index = 0
        self._bytes_in_buffer = 0

    @property
    def _remaining_capacity(self):
        # How much more the buffer could hold, counting the unread data.
        return self._buffer_size - self._index

    @property
    def _buffer_end(self):
        return self._index + self._bytes_in_buffer

    @property
    def _free_space(self):
        # How much can be received without moving the unread data.
        return self._buffer_size - self._buffer_end

    @property
    def buffer(self):
        """
        The unread data, as a ``memoryview``.
        """
        return self._buffer_view[self._index:self._buffer_end]

    def advance_buffer(self, count):
        """
        Marks ``count`` bytes of :attr:`buffer` as read by the caller.
        """
        self._index += count
        self._bytes_in_buffer -= count

    def new_buffer(self):
        """
        Moves the unread data to the start of a fresh buffer, freeing the
        space already read past.
        """
        unread = self.buffer
        fresh = bytearray(self._buffer_size)
        view = memoryview(fresh)
        view[:self._bytes_in_buffer] = unread

        self._index = 0
        self._backing_buffer = fresh
        self._buffer_view = view

    def _recv_into_buffer(self):
        count = self._sck.recv_into(self._buffer_view[self._buffer_end:])
        self._bytes_in_buffer += count
        return count

    def recv(self, amt):
        """
        Reads up to ``amt`` bytes, never more than the buffer size.

        Blocks only if nothing useful is buffered. The returned
        ``memoryview`` is only valid until the next read.

        :raises ConnectionResetError: if the peer closed the connection
            before ``amt`` bytes could be returned.
        """
        amt = min(amt, self._buffer_size)

        if amt > self._remaining_capacity:
            self.new_buffer()

        # With enough data buffered, only read from the socket if that
        # won't block.
        if self._bytes_in_buffer >= amt:
            should_read = select.select([self._sck], [], [], 0)[0]
        else:
            should_read = True

        if self._free_space and should_read:
            if not self._recv_into_buffer() and amt > self._bytes_in_buffer:
                raise ConnectionResetError()

        amt = min(amt, self._bytes_in_buffer)
        data = self._buffer_view[self._index:self._index + amt]
        self.advance_buffer(amt)
        return data

    def fill(self):
        """
        Receives once into the buffer, blocking until some data arrives.

        :raises LineTooLongError: if the buffer is full of unread data.
        :raises ConnectionResetError: if the peer closed the connection.
        """
        if not self._free_space:
            self.new_buffer()

        if not self._free_space:
            raise LineTooLongError()

        if not self._recv_into_buffer():
            raise ConnectionResetError()

    def readline(self):
        """
        Reads up to and including the next ``\\n``, blocking until one
        arrives. The returned ``memoryview`` is only valid until the next
        read.

        :raises LineTooLongError: if the line doesn't fit in the buffer.
        """
        newline = self._backing_buffer.find(
            b'\n', self._index, self._buffer_end
        )

        while newline < 0:
            # fill() may move the unread data, so remember how much of it
            # has been searched rather than where the search stopped.
            searched = self._bytes_in_buffer
            self.fill()
            newline = self._backing_buffer.find(
                b'\n', self._index + searched, self._buffer_end
            )

        count = newline + 1 - self._index
        data = self._buffer_view[self._index:newline + 1]
        self.advance_buffer(count)
        return data

    def shutdown(self, how):
        """
        Shuts down the underlying socket. For a TLS socket this goes straight
        to the TCP socket: ``SSLSocket.shutdown`` also unwraps the TLS layer,
        which a reader blocked in another thread doesn't survive.
        """
        if isinstance(self._sck, socket.socket):
            socket.socket.shutdown(self._sck, how)
        else:
            self._sck.shutdown(how)

    def __getattr__(self, name):
        return getattr(self._sck, name)
