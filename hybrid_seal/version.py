"""Hybrid Seal Meta information.
   Hybrid Seal binds encrypted payloads to a principal using per-message
   AES keys wrapped with a long-lived RSA key pair.
"""
__title__ = 'hybrid_seal'
__description__ = (
   'Hybrid RSA/AES payload sealing bound to a principal, '
   'with expiry and optional single-use enforcement.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/hybrid-seal'
