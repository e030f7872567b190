"""Exceptions raised by RSA Cipher.

Everything the library raises on its own account derives from RSACipherError. The concrete classes also derive from
the matching builtin, so callers that only know about ValueError or PermissionError keep working.
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0


class RSACipherError(Exception):
    """Base class of all library errors."""


class InvalidKey(RSACipherError, ValueError):
    """Key material is malformed, inconsistent or missing."""


class InvalidArgument(RSACipherError, ValueError):
    """An argument other than key material was rejected."""


class Unauthorized(RSACipherError, PermissionError):
    """The operation needs the private key, but the handle is public-only."""
