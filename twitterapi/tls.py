# -*- coding: utf-8 -*-
"""
twitterapi/tls
~~~~~~~~~~~~~~

Contains the TLS/SSL logic for use in twitterapi.

Certificate validation is on by default. Turning it off (``verify=False``)
accepts whatever certificate the server presents: that is the behaviour some
older Twitter clients shipped with, and it must be asked for explicitly.
"""
import ssl


SUPPORTED_PROTOCOLS = ['http/1.1']


# The default context, created on first use and shared by every connection.
_context = None


def wrap_socket(sock, server_hostname, ssl_context=None):
    """
    Wraps a connected socket in TLS for the given host name.
    """
    global _context

    if _context is None:  # pragma: no cover
        _context = init_context()

    _ssl_context = ssl_context or _context

    # SNI is always sent, the Twitter endpoints rely on it.
    return _ssl_context.wrap_socket(sock, server_hostname=server_hostname)


def init_context(verify=True, ca_certs=None):
    """
    Create a new ``SSLContext`` that is correctly set up for an HTTP/1.1
    connection to the Twitter API.

    :param verify: (optional) Whether the server certificate and host name
        are validated. ``False`` accepts any certificate.
    :param ca_certs: (optional) The path to a file of concatenated CA
        certificates in PEM format. The platform's default CA store is always
        loaded as well.
    :returns: An ``SSLContext`` correctly set up for HTTP/1.1.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.set_default_verify_paths()

    if ca_certs is not None:
        context.load_verify_locations(cafile=ca_certs)

    if verify:
        context.verify_mode = ssl.CERT_REQUIRED
        context.check_hostname = True
    else:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    context.set_alpn_protocols(SUPPORTED_PROTOCOLS)

    # TLS compression is never safe to use.
    context.options |= ssl.OP_NO_COMPRESSION

    return context
