# -*- coding: utf-8 -*-
"""
twitterapi/http11/parser
~~~~~~~~~~~~~~~~~~~~~~~~

This module contains twitterapi's pure-Python HTTP/1.1 response parser. The
parser only ever looks at a response head: bodies are read by the response
object itself.
"""
from collections import namedtuple

from ..common.exceptions import InvalidResponseError


Response = namedtuple(
    'Response', ['status', 'msg', 'minor_version', 'headers', 'consumed']
)

HEAD_TERMINATOR = b'\r\n\r\n'


class ParseError(InvalidResponseError):
    """
    The bytes received are not a valid HTTP/1.1 response head.
    """
    pass


class Parser(object):
    """
    A single HTTP parser object.

    This object holds no state between calls, so a single instance may be
    reused for every response on a connection.
    """
    def parse_response(self, buffer):
        """
        Parses the response head at the start of ``buffer``.

        :param buffer: A ``memoryview`` over the received bytes.
        :returns: A :class:`Response <twitterapi.http11.parser.Response>`
            object, or ``None`` if there is not enough data in the buffer.
        """
        data = buffer.tobytes()
        end = data.find(HEAD_TERMINATOR)
        if end < 0:
            return None

        lines = data[:end].split(b'\r\n')
        status, msg, minor_version = self._parse_status_line(lines[0])

        headers = []
        for line in lines[1:]:
            if line[:1] in (b' ', b'\t') and headers:
                # Obsolete line folding: glue it onto the previous value.
                name, value = headers[-1]
                headers[-1] = (name, value + b' ' + line.strip())
                continue

            name, sep, value = line.partition(b':')
            if not sep or not name.strip():
                raise ParseError("Invalid header line: %r" % line)
            headers.append((name.strip(), value.strip()))

        return Response(
            status, msg, minor_version, headers, end + len(HEAD_TERMINATOR)
        )

    def _parse_status_line(self, line):
        parts = line.split(b' ', 2)
        if len(parts) < 2 or not parts[0].startswith(b'HTTP/1.'):
            raise ParseError("Invalid status line: %r" % line)

        try:
            minor_version = int(parts[0][7:])
            status = int(parts[1])
        except ValueError:
            raise ParseError("Invalid status line: %r" % line)

        msg = parts[2] if len(parts) > 2 else b''
        return status, msg, minor_version
