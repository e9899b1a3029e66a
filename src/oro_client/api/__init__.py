"""
Registry operations, mixed into OroClient.
"""

from .login import LoginMixin, LoginRetry, LoginToken, LoginWeb, WebOTPChallenge
from .packument import CORGI_ACCEPT, PACKUMENT_ACCEPT, PackumentMixin
from .tarball import TarballMixin

__all__ = [
    "PackumentMixin",
    "LoginMixin",
    "TarballMixin",
    "LoginWeb",
    "LoginToken",
    "LoginRetry",
    "WebOTPChallenge",
    "PACKUMENT_ACCEPT",
    "CORGI_ACCEPT",
]
