# -*- coding: utf-8 -*-
"""
twitterapi/credentials
~~~~~~~~~~~~~~~~~~~~~~

The two ways twitterapi can authenticate a request.

``OAuthCredential`` holds the consumer key pair and an access token pair, and
signs requests with OAuth 1.0a (HMAC-SHA1). ``AccountCredential`` holds no
secrets at all: it names an account kept by the platform, and that account
object produces the finished, signed request itself.

Account support is optional. It only exists once the host application has
registered an :class:`AccountStore` with :func:`set_account_store`.

Both credentials serialize to a single tab-separated line whose first field
says which kind it is, so they can be stored and restored with
:func:`deserialize`.
"""
import logging

from oauthlib.oauth1 import Client as OAuth1Client

from .common.exceptions import InvalidCredentialError, InvalidRequestError
from .common.util import append_query, encode_parameters

log = logging.getLogger(__name__)

SERIALIZE_SEPARATOR = '\t'

CONTENT_TYPE_FORM_URLENCODED = 'application/x-www-form-urlencoded'


class OAuthCredential(object):
    """
    An OAuth 1.0a user context: the application's consumer key pair plus the
    user's access token pair.
    """
    TAG = 'OAuth'

    def __init__(self, consumer_key, consumer_secret, access_token,
                 access_token_secret):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.access_token = access_token
        self.access_token_secret = access_token_secret

    @classmethod
    def from_serialized(cls, string):
        parts = string.split(SERIALIZE_SEPARATOR)
        if len(parts) != 5 or parts[0] != cls.TAG:
            raise InvalidCredentialError(
                "Invalid serialized OAuth credential: %r" % string
            )
        return cls(*parts[1:])

    def serialize(self):
        return SERIALIZE_SEPARATOR.join([
            self.TAG,
            self.consumer_key,
            self.consumer_secret,
            self.access_token,
            self.access_token_secret,
        ])

    def sign(self, method, url, parameters=None, nonce=None, timestamp=None):
        """
        Computes the ``Authorization`` header value for a request.

        Parameters are signed where they will be sent: in the body for
        ``POST``, in the query string otherwise.

        :param method: The request method, ``'GET'`` or ``'POST'``.
        :param url: The resource URL, without the parameters.
        :param parameters: (optional) The request parameters.
        :param nonce: (optional) A fixed OAuth nonce. Random if not given.
        :param timestamp: (optional) A fixed OAuth timestamp, as a string.
            The current time if not given.
        :returns: The header value, a native string.
        """
        method = method.upper()
        query = encode_parameters(parameters)

        headers = {}
        body = None
        if method == 'POST':
            if query:
                body = query
                headers['Content-Type'] = CONTENT_TYPE_FORM_URLENCODED
        else:
            url = append_query(url, query)

        client = OAuth1Client(
            self.consumer_key,
            client_secret=self.consumer_secret,
            resource_owner_key=self.access_token,
            resource_owner_secret=self.access_token_secret,
            nonce=nonce,
            timestamp=timestamp,
        )

        try:
            _, signed_headers, _ = client.sign(
                url, http_method=method, body=body, headers=headers
            )
        except ValueError as e:
            raise InvalidRequestError(
                "Cannot sign request to %s: %s" % (url, e)
            )

        return signed_headers['Authorization']

    def __eq__(self, other):
        if not isinstance(other, OAuthCredential):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(self.serialize())

    def __repr__(self):
        return (
            'OAuthCredential(consumer_key=%r, consumer_secret=%r, '
            'access_token=%r, access_token_secret=%r)' % (
                self.consumer_key, self.consumer_secret,
                self.access_token, self.access_token_secret,
            )
        )


class AccountStore(object):
    """
    The interface of a platform account store.

    An account returned by the store must have an ``identifier`` attribute
    and a ``prepare_request(method, url, parameters)`` method returning a
    signed :class:`PendingRequest <twitterapi.request.PendingRequest>`.
    """
    def account_with_identifier(self, identifier):
        """
        Returns the account with the given identifier, or ``None`` if the
        store doesn't know it.
        """
        raise NotImplementedError()


_account_store = None


def set_account_store(store):
    """
    Registers the platform account store, enabling ``AccountCredential``.
    Passing ``None`` disables account support again.
    """
    global _account_store
    _account_store = store


def get_account_store():
    return _account_store


def has_account_support():
    """
    Whether a platform account store has been registered.
    """
    return _account_store is not None


class AccountCredential(object):
    """
    A credential backed by an account the platform manages.

    Only the account identifier is part of the credential. The account object
    itself is looked up in the registered store the first time it's needed
    and cached from then on; the cache is never serialized.

    :param identifier: The platform's identifier for the account.
    :param account: (optional) The live account object, if the caller
        already has it.
    """
    TAG = 'Account'

    def __init__(self, identifier, account=None):
        self.identifier = identifier
        self._account = account

    @classmethod
    def from_account(cls, account):
        return cls(account.identifier, account)

    @classmethod
    def from_serialized(cls, string):
        parts = string.split(SERIALIZE_SEPARATOR)
        if len(parts) != 2 or parts[0] != cls.TAG or not parts[1]:
            raise InvalidCredentialError(
                "Invalid serialized account credential: %r" % string
            )
        return cls(parts[1])

    @property
    def account(self):
        """
        The live account object, resolved through the account store on first
        access.
        """
        if self._account is None:
            store = get_account_store()
            if store is None:
                raise InvalidCredentialError(
                    "No account store is registered: cannot resolve account "
                    "%r." % self.identifier
                )

            account = store.account_with_identifier(self.identifier)
            if account is None:
                raise InvalidCredentialError(
                    "Unknown account: %r" % self.identifier
                )

            log.debug("Resolved account %s", self.identifier)
            self._account = account

        return self._account

    def serialize(self):
        return SERIALIZE_SEPARATOR.join([self.TAG, self.identifier])

    def prepare_request(self, method, url, parameters=None):
        """
        Has the platform account build and sign the request.
        """
        return self.account.prepare_request(method, url, parameters or {})

    def __eq__(self, other):
        if not isinstance(other, AccountCredential):
            return NotImplemented
        return self.identifier == other.identifier

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(self.serialize())

    def __repr__(self):
        return 'AccountCredential(identifier=%r)' % self.identifier


def deserialize(string):
    """
    Restores a credential from the string produced by its ``serialize()``.

    The first tab-separated field selects the kind of credential. The account
    kind is only recognised when account support is available.

    :raises InvalidCredentialError: if the string can't be restored.
    """
    tag = string.split(SERIALIZE_SEPARATOR, 1)[0]

    if tag == OAuthCredential.TAG:
        return OAuthCredential.from_serialized(string)

    if tag == AccountCredential.TAG and has_account_support():
        return AccountCredential.from_serialized(string)

    raise InvalidCredentialError("Invalid serialized credential: %r" % string)
