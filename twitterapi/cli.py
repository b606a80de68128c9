# -*- coding: utf-8 -*-
"""
twitterapi/cli
~~~~~~~~~~~~~~

Command line interface for twitterapi.
"""
import argparse
import logging
import os
import sys
import threading

from twitterapi import Client
from twitterapi.client import streaming_method
from twitterapi.common.exceptions import CancelledError
from twitterapi.dispatch import Dispatcher
from twitterapi.request import SUPPORTED_METHODS

log = logging.getLogger('twitterapi')

CREDENTIAL_ENVIRONMENT_VARIABLE = 'TWITTERAPI_CREDENTIAL'

_ARGUMENT_DEFAULTS = {
    'credential': None,
    'encoding': 'utf-8',
    'method': None,
    'nullout': False,
    'streaming': False,
    'verbose': False,
}


class KeyValue(object):
    """
    A ``key=value`` request parameter given on the command line.
    """
    def __init__(self, string):
        key, sep, value = string.partition('=')
        if not sep or not key:
            raise argparse.ArgumentTypeError(
                "%r is not a key=value parameter" % string
            )
        self.key = key
        self.value = value

    def __repr__(self):
        return 'KeyValue(%r=%r)' % (self.key, self.value)


def parse_argument(argv=None):
    parser = argparse.ArgumentParser(prog='twitterapi')
    parser.set_defaults(**_ARGUMENT_DEFAULTS)

    # positional arguments
    parser.add_argument('url', help='set the resource URL to request')
    parser.add_argument(
        'parameters', nargs='*', type=KeyValue, metavar='key=value',
        help='set a request parameter')

    # optional arguments
    parser.add_argument(
        '-c', '--credential',
        help='set the serialized credential (default: $%s)' % (
            CREDENTIAL_ENVIRONMENT_VARIABLE
        ))
    parser.add_argument(
        '-m', '--method',
        help='set http method: GET or POST (default: GET)')
    parser.add_argument(
        '-s', '--streaming', action='store_true',
        help='open a stream and print each message until interrupted')
    parser.add_argument(
        '-n', '--nullout', action='store_true',
        help='do not show response data')
    parser.add_argument(
        '-e', '--encoding',
        help='set charset for response data')
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='set verbose mode (loglevel=DEBUG)')

    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.credential is None:
        args.credential = os.environ.get(CREDENTIAL_ENVIRONMENT_VARIABLE)
    if not args.credential:
        parser.error(
            'a credential is required: use --credential or set $%s' % (
                CREDENTIAL_ENVIRONMENT_VARIABLE
            )
        )

    if args.streaming:
        if args.method is not None:
            parser.error(
                '--method cannot be used with --streaming: the stream'
                ' endpoint decides the method'
            )
        args.method = streaming_method(args.url)
    else:
        args.method = (args.method or 'GET').upper()
        if args.method not in SUPPORTED_METHODS:
            parser.error('unsupported method: %s' % args.method)

    return args


def _write(args, data):
    if not args.nullout:
        print(data.decode(args.encoding, 'replace'))
        sys.stdout.flush()


def request(args, client):
    """
    Sends the request and waits for its completion. Returns the completion
    as a ``(data, response, error)`` tuple.
    """
    parameters = [(p.key, p.value) for p in args.parameters]
    done = threading.Event()
    result = []

    def on_complete(data, response, error):
        result.append((data, response, error))
        done.set()

    if args.streaming:
        session = client.streaming(args.url, parameters)
        session.progress(lambda record: _write(args, record))
        session.completion(on_complete)
        session.start()
    elif args.method == 'POST':
        session = client.post(args.url, parameters)
        session.response(on_complete)
    else:
        session = client.get(args.url, parameters)
        session.response(on_complete)

    try:
        # Waiting with a timeout keeps the main thread interruptible.
        while not done.wait(0.5):
            pass
    except KeyboardInterrupt:
        log.debug("Interrupted, stopping %s", args.url)
        if args.streaming:
            session.stop()
        else:
            session.cancel()
        done.wait()

    return result[0]


def main(argv=None):
    args = parse_argument(argv)
    if args.verbose:
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        log.addHandler(handler)
        log.setLevel(logging.DEBUG)

    dispatcher = Dispatcher(name='twitterapi-cli')
    client = Client.deserialize(args.credential, dispatcher=dispatcher)

    try:
        data, response, error = request(args, client)
    finally:
        dispatcher.close()

    if error is not None and not isinstance(error, CancelledError):
        sys.stderr.write('error: %s\n' % (error,))

    if response is None:
        return 1

    # A stream's records were printed as they came; a refusal wasn't.
    if not args.streaming or response.status != 200:
        _write(args, data)

    return 0 if response.status == 200 else 1


if __name__ == '__main__':
    sys.exit(main())
