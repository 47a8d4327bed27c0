#!/usr/bin/env python

import os
import re

from setuptools import setup, find_packages


def read(path):
    with open(os.path.join(os.path.dirname(__file__), path)) as f:
        return f.read()


def read_version(path):
    match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", read(path), re.M)
    if match:
        return match.group(1)
    raise RuntimeError("Unable to find __version__ in %s." % path)


readme = read('README.rst')
changelog = read('ChangeLog.rst')
version = read_version('pymemtext/__init__.py')

setup(
    name='pymemtext',
    version=version,
    author='Charles Gordon',
    author_email='charles@pinterest.com',
    packages=find_packages(),
    install_requires=['semantic_version'],
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.7',
    description='A strict memcached text protocol adapter for Python',
    long_description=readme + '\n' + changelog,
    license='Apache License 2.0',
    url='https://github.com/Pinterest/pymemtext',
    classifiers=[
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: Implementation :: PyPy',
        'License :: OSI Approved :: Apache Software License',
        'Topic :: Database',
    ],
)
