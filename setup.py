"""
Setup script for sharedmeta - Shared metadata messaging client.

This client provides:
- Deterministic secp256k1 identities with stable addresses
- Signed message envelopes verified on receipt
- Pairwise ECDH + AES-256-GCM end-to-end encryption
- Challenge-response authentication with cached bearer tokens
- Invitation-based pairing and a per-identity trust list
"""

from setuptools import setup, find_packages
import os

this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='sharedmeta-client',
    version='1.0.0',
    description='A client for signed, end-to-end encrypted shared metadata messaging through an untrusted relay',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Communications',
        'Topic :: Security :: Cryptography',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Operating System :: OS Independent',
        'Environment :: Console',
    ],
    python_requires='>=3.9',
    install_requires=[
        'cryptography>=42.0.4',
        'argon2-cffi>=23.1.0',
        'rich>=13.7.0',
        'requests>=2.31.0',
        'PyJWT>=2.8.0',
        "tomli>=2.0.1; python_version<'3.11'",
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'sharedmeta=sharedmeta.cli:main',
        ],
    },
)
