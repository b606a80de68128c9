# -*- coding: utf-8 -*-
"""
twitterapi/client
~~~~~~~~~~~~~~~~~

The entry point of twitterapi: a ``Client`` binds a credential to a
transport configuration and a dispatcher, and hands out requests.
"""
import base64
import logging

from . import credentials
from .dispatch import default_dispatcher
from .request import build_request
from .session import Request, StreamingRequest
from .transport import DEFAULT_CONFIGURATION

log = logging.getLogger(__name__)

#: Where ``post_media`` uploads to.
MEDIA_UPLOAD_URL = 'https://upload.twitter.com/1.1/media/upload.json'

# The one streaming endpoint that takes its parameters in a POST body.
FILTER_STREAM_PATH = '/statuses/filter.json'


def streaming_method(url):
    """
    The method a streaming request to ``url`` is sent with.
    """
    path = url.split('?', 1)[0]
    return 'POST' if path.endswith(FILTER_STREAM_PATH) else 'GET'


class Client(object):
    """
    A Twitter API client acting for one user.

    .. code-block:: python

        client = Client.from_oauth(ck, cs, at, ats)
        client.get(
            'https://api.twitter.com/1.1/statuses/home_timeline.json',
            {'count': '200'},
        ).response(lambda data, response, error: print(data))

    :param credential: An ``OAuthCredential`` or ``AccountCredential``.
    :param configuration: (optional) The transport ``Configuration`` for
        every request this client makes.
    :param dispatcher: (optional) The ``Dispatcher`` callbacks are delivered
        on. Defaults to the process-wide one.
    """
    def __init__(self, credential, configuration=None, dispatcher=None):
        self.credential = credential
        self.configuration = configuration or DEFAULT_CONFIGURATION
        self.dispatcher = dispatcher or default_dispatcher()

    @classmethod
    def from_oauth(cls, consumer_key, consumer_secret, access_token,
                   access_token_secret, **kwargs):
        credential = credentials.OAuthCredential(
            consumer_key, consumer_secret, access_token, access_token_secret
        )
        return cls(credential, **kwargs)

    @classmethod
    def from_account(cls, account, **kwargs):
        return cls(credentials.AccountCredential.from_account(account),
                   **kwargs)

    @classmethod
    def deserialize(cls, string, **kwargs):
        """
        Builds a client from the output of :meth:`serialize`.
        """
        return cls(credentials.deserialize(string), **kwargs)

    def serialize(self):
        """
        Serializes the client's credential. Configuration and dispatcher are
        not part of it.
        """
        return self.credential.serialize()

    def request(self, method, url, parameters=None):
        """
        Returns the signed ``PendingRequest`` without sending it.
        """
        return build_request(self.credential, method, url, parameters)

    def get(self, url, parameters=None):
        return self._one_shot('GET', url, parameters)

    def post(self, url, parameters=None):
        return self._one_shot('POST', url, parameters)

    def streaming(self, url, parameters=None):
        """
        Returns a not-yet-started :class:`StreamingRequest`.

        The filter stream is requested with ``POST``, every other stream with
        ``GET``.
        """
        request = self.request(streaming_method(url), url, parameters)
        return StreamingRequest(
            request,
            configuration=self.configuration,
            dispatcher=self.dispatcher,
        )

    def post_media(self, data):
        """
        Uploads media, returning a not-yet-started :class:`Request`.

        :param data: The raw media bytes.
        """
        media = base64.b64encode(data).decode('ascii')
        return self.post(MEDIA_UPLOAD_URL, {'media': media})

    def _one_shot(self, method, url, parameters):
        return Request(
            self.request(method, url, parameters),
            configuration=self.configuration,
            dispatcher=self.dispatcher,
        )

    def __repr__(self):
        return 'Client(%r)' % (self.credential,)
