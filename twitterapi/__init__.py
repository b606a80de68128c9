# -*- coding: utf-8 -*-
"""
twitterapi
~~~~~~~~~~

A client for the Twitter HTTP API, covering both ordinary REST calls and the
long-lived streaming endpoints.
"""
__version__ = '0.1.0'

from .client import Client
from .credentials import (
    OAuthCredential, AccountCredential, AccountStore, set_account_store,
    has_account_support, deserialize
)
from .dispatch import Dispatcher
from .framing import LineFramer
from .request import PendingRequest, build_request
from .session import Request, StreamingRequest
from .transport import Configuration
from .common.exceptions import (
    InvalidURLError, InvalidRequestError, InvalidCredentialError,
    CancelledError
)

__all__ = [
    'Client', 'OAuthCredential', 'AccountCredential', 'AccountStore',
    'set_account_store', 'has_account_support', 'deserialize', 'Dispatcher',
    'LineFramer', 'PendingRequest', 'build_request', 'Request',
    'StreamingRequest', 'Configuration', 'InvalidURLError',
    'InvalidRequestError', 'InvalidCredentialError', 'CancelledError',
]

# Set default logging handler.
import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
