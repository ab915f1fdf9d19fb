#!/usr/bin/env python

from setuptools import setup
import os.path


name = "pypicklecodec"

classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: Apache Software License",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: Implementation :: CPython",
    ]


def read_long_description():
    with open("README.rst", "r") as f:
        long_description = f.read()
    return long_description


def read_version():
    """Read the package version from source."""
    path = os.path.relpath(os.path.join(name, "version.py"))
    l = {}
    with open(path, "r") as f:
        exec(f.read(), {}, l) # side effect mutation of l
    return l["__version__"]


if __name__ == "__main__":
    setup_kwargs = {
        "name": name,
        "version": read_version(),
        "description": "Byte codec for the primitive values of the pickle protocol",
        "long_description": read_long_description(),
        "classifiers": classifiers,
        "license": "Apache 2.0",
        "packages": [name, "%s.tests" % name],
        "python_requires": ">=3.6",
        "extras_require": {"test": ["pytest"]},
        }
    setup(**setup_kwargs)
