# -*- coding: utf-8 -*-
"""
twitterapi/framing
~~~~~~~~~~~~~~~~~~

Incremental, delimiter-based framing of a byte stream.

The Streaming API writes one JSON message per line, separated by ``\\r\\n``,
with blank lines as keep-alives. The network, however, hands us the body in
arbitrarily sized pieces: a message may be split over many reads, and one read
may contain many messages. A ``LineFramer`` sits between the two.
"""

#: The delimiter the Streaming API puts between messages.
STREAM_DELIMITER = b'\r\n'

#: Once this many consumed bytes sit at the front of the buffer, a framer
#: that doesn't keep its history drops them.
COMPACT_THRESHOLD = 65536


class LineFramer(object):
    """
    Splits appended bytes into records separated by ``delimiter``.

    Bytes that don't yet end in a delimiter stay buffered until a later
    ``append`` completes them, including the case where the delimiter itself
    is split between two appends. Records between two adjacent delimiters are
    returned as empty bytestrings; it is up to the caller to skip them.

    This object is not thread-safe: a single framer must only ever be fed and
    drained by one thread at a time.

    :param delimiter: (optional) The record separator. Defaults to ``\\r\\n``.
    :param keep_history: (optional) Whether every byte ever appended is
        retained, so that :meth:`accumulated` returns the whole body. When
        ``False`` consumed bytes are periodically discarded, and
        :meth:`accumulated` only returns bytes not yet framed.
    """
    def __init__(self, delimiter=STREAM_DELIMITER, keep_history=True):
        if not delimiter:
            raise ValueError("The delimiter must not be empty.")

        self.delimiter = bytes(delimiter)
        self.keep_history = keep_history

        # All bytes received that haven't been discarded by a compaction.
        self._buffer = bytearray()

        # The start of the next record.
        self._offset = 0

        # Where the next search for a delimiter begins. Everything between
        # _offset and _scan is known not to contain a delimiter.
        self._scan = 0

    def append(self, data):
        """
        Adds a chunk of bytes to the end of the buffer. The chunk may be any
        length, including zero.
        """
        if data:
            self._buffer += data

    def next(self):
        """
        Returns the next complete record and removes it from the buffer, or
        ``None`` if no complete record is buffered.
        """
        index = self._buffer.find(self.delimiter, self._scan)

        if index < 0:
            # A delimiter may be partially present at the end of the buffer,
            # so the next search has to start far enough back to see it.
            self._scan = max(
                self._offset, len(self._buffer) - len(self.delimiter) + 1
            )
            return None

        record = bytes(self._buffer[self._offset:index])
        self._offset = self._scan = index + len(self.delimiter)

        if not self.keep_history and self._offset >= COMPACT_THRESHOLD:
            self._compact()

        return record

    def accumulated(self):
        """
        Returns the bytes this framer has seen. With ``keep_history`` that is
        everything ever appended, framed or not; otherwise only the bytes that
        haven't been returned as part of a record yet.
        """
        if self.keep_history:
            return bytes(self._buffer)
        return bytes(self._buffer[self._offset:])

    def pending(self):
        """
        Returns the number of buffered bytes that don't yet belong to a
        returned record.
        """
        return len(self._buffer) - self._offset

    def _compact(self):
        del self._buffer[:self._offset]
        self._scan -= self._offset
        self._offset = 0

    def __iter__(self):
        """
        Iterating a framer drains every record that is currently complete.
        """
        while True:
            record = self.next()
            if record is None:
                return
            yield record

    def __repr__(self):
        return '<LineFramer delimiter=%r pending=%d>' % (
            self.delimiter, self.pending()
        )
