# -*- coding: utf-8 -*-
"""
twitterapi/common/headers
~~~~~~~~~~~~~~~~~~~~~~~~~

The header map shared by requests and responses.
"""
import collections.abc

from .util import to_bytestring, to_bytestring_tuple

# Headers whose values may legitimately contain commas.
_UNSPLITTABLE = frozenset([b'set-cookie', b'set-cookie2'])


class HTTPHeaderMap(collections.abc.MutableMapping):
    """
    An ordered, case-insensitive map of HTTP headers that allows repeats.

    Names and values are stored as bytestrings, exactly as they were added,
    so the original header block can always be rebuilt with
    :meth:`iter_raw`. Everything else sees the headers in canonical form:
    names lowercased, and comma-separated values split into one entry per
    value (``Set-Cookie`` excepted).

    Indexing returns the *list* of values for a name::

        >>> h = HTTPHeaderMap([('Accept-Encoding', 'gzip, br')])
        >>> h['accept-encoding']
        [b'gzip', b'br']
    """
    def __init__(self, *args, **kwargs):
        self._items = []

        for arg in args:
            self._items.extend(to_bytestring_tuple(*pair) for pair in arg)

        for name, value in kwargs.items():
            self._items.append(to_bytestring_tuple(name, value))

    def __getitem__(self, name):
        values = [v for _, v in self._canonical_items(name)]
        if not values:
            raise KeyError("Nonexistent header key: {}".format(name))
        return values

    def __setitem__(self, name, value):
        """
        Adds a header. Existing headers with the same name are kept.
        """
        self._items.append(to_bytestring_tuple(name, value))

    def __delitem__(self, name):
        """
        Removes every header called ``name``.
        """
        remaining = [
            item for item in self._items if not _keys_equal(item[0], name)
        ]
        if len(remaining) == len(self._items):
            raise KeyError("Nonexistent header key: {}".format(name))
        self._items = remaining

    def __iter__(self):
        for name, value in self._items:
            for pair in canonical_form(name, value):
                yield pair

    def __len__(self):
        return sum(1 for _ in self)

    def __contains__(self, name):
        return any(_keys_equal(k, name) for k, _ in self._items)

    def keys(self):
        """
        Every header name, repeats included, so this is as long as the map.
        """
        return (name for name, _ in self)

    def values(self):
        return (value for _, value in self)

    def items(self):
        return iter(self)

    def get(self, name, default=None):
        """
        Returns the list of values for ``name``, or ``default``.
        """
        try:
            return self[name]
        except KeyError:
            return default

    def iter_raw(self):
        """
        Iterates over the headers exactly as they were added.
        """
        return iter(self._items)

    def replace(self, name, value):
        """
        Sets ``name`` to a single value. The new header takes the place of
        the first existing one, and any others are dropped.
        """
        name, value = to_bytestring_tuple(name, value)
        replaced = False
        items = []

        for item in self._items:
            if not _keys_equal(item[0], name):
                items.append(item)
            elif not replaced:
                items.append((name, value))
                replaced = True

        if not replaced:
            items.append((name, value))

        self._items = items

    def _canonical_items(self, name):
        for k, v in self._items:
            if _keys_equal(k, name):
                for pair in canonical_form(k, v):
                    yield pair

    def __eq__(self, other):
        if not isinstance(other, HTTPHeaderMap):
            return NotImplemented
        return self._items == other._items

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __repr__(self):  # pragma: no cover
        return 'HTTPHeaderMap(%r)' % (self._items,)


def canonical_form(name, value):
    """
    Yields the ``(name, value)`` pairs one raw header stands for: the name is
    lowercased and the value is split on commas, unless splitting it would
    break it.
    """
    name = name.lower()

    if name in _UNSPLITTABLE:
        yield name, value
        return

    for part in value.split(b','):
        yield name, part.strip()


def _keys_equal(x, y):
    return to_bytestring(x).lower() == to_bytestring(y).lower()
