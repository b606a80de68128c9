# -*- coding: utf-8 -*-
"""
twitterapi/http11
~~~~~~~~~~~~~~~~~

The HTTP/1.1 implementation used by twitterapi's transport.
"""
