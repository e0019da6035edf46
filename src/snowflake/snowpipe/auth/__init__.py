#!/usr/bin/env python
from __future__ import annotations

from .keypair import KeyPairTokenSigner

__all__ = [
    "KeyPairTokenSigner",
]
