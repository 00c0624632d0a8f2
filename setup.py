from setuptools import setup

from hash_orbit import __version__

description = """
Consistent hashing ring with virtual nodes, and a sharded redis client for Django.
"""

setup(
    name="django-hash-orbit",
    version=__version__,
    packages=[
        "hash_orbit",
        "hash_orbit.client",
        "hash_orbit.serializers",
    ],
    description=description.strip(),
    python_requires=">=3.9",
    install_requires=[
        "Django>=3.2",
        "redis>=4.0.2",
        "mmh3>=3.0",
    ],
    extras_require={
        "msgpack": ["msgpack"],
        "test": [
            "fakeredis>=2.0",
            "msgpack",
            "pytest",
            "pytest-mock",
        ],
    },
    zip_safe=False,
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Environment :: Web Environment",
        "Framework :: Django",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Libraries",
        "Topic :: System :: Distributed Computing",
    ],
)
