# -*- coding: utf-8 -*-
"""
twitterapi/common
~~~~~~~~~~~~~~~~~

Common code shared by twitterapi's transport and request layers.
"""
