#!/usr/bin/env python
# -*- coding: utf-8 -*-
import re

from setuptools import setup

# Get the version
version_regex = r'__version__ = ["\']([^"\']*)["\']'
with open('twitterapi/__init__.py', 'r') as f:
    text = f.read()
    match = re.search(version_regex, text)

    if match:
        version = match.group(1)
    else:
        raise RuntimeError("No version number found!")


packages = [
    'twitterapi',
    'twitterapi.common',
    'twitterapi.http11',
]

setup(
    name='twitterapi',
    version=version,
    description='Streaming and REST client for the Twitter API',
    long_description=open('README.rst').read(),
    packages=packages,
    package_data={'': ['README.rst']},
    package_dir={'twitterapi': 'twitterapi'},
    include_package_data=True,
    license='MIT License',
    python_requires='>=3.6',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: Implementation :: CPython',
    ],
    install_requires=[
        'rfc3986>=1.1.0', 'brotlipy>=0.7.0', 'oauthlib>=3.0.0'
    ],
    entry_points={
        'console_scripts': [
            'twitterapi = twitterapi.cli:main',
        ],
    },
    extras_require={
        'test': ['pytest', 'mock'],
    }
)
