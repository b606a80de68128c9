# -*- coding: utf-8 -*-
import pytest

from twitterapi import credentials
from twitterapi.dispatch import Dispatcher


@pytest.fixture
def dispatcher():
    """
    Provides a private dispatcher, closed once the test is done.
    """
    d = Dispatcher(name='twitterapi-test')
    yield d
    d.close()


@pytest.fixture
def oauth_credential():
    return credentials.OAuthCredential('hoge', 'foo', 'bar', 'baz')


@pytest.fixture
def no_account_store():
    """
    Makes sure a test leaves no account store registered behind it.
    """
    credentials.set_account_store(None)
    yield
    credentials.set_account_store(None)
