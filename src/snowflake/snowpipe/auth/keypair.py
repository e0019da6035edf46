#!/usr/bin/env python
from __future__ import annotations

import base64
import binascii
import hashlib
import time
from logging import getLogger
from typing import Any, Union

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey,
    SECP256R1,
    SECP384R1,
    SECP521R1,
)
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
    load_der_private_key,
    load_pem_private_key,
)

from ..constants import UTF8
from ..errorcode import ER_FAILED_TO_SIGN_TOKEN, ER_INVALID_PRIVATE_KEY
from ..errors import ProgrammingError

logger = getLogger(__name__)

PrivateKey = Union[bytes, str, RSAPrivateKey, EllipticCurvePrivateKey]

PEM_HEADER_PREFIX = "-----BEGIN"


class KeyPairTokenSigner:
    """Mints signed bearer tokens for the Snowpipe REST API.

    Every call to `mint` derives the public key fingerprint from the private key
    and signs a fresh claim set. Tokens are never cached or reused.
    """

    ALG_RS256 = "RS256"
    ALG_ES256 = "ES256"
    ALG_ES384 = "ES384"
    ALG_ES512 = "ES512"

    ISSUER = "iss"
    SUBJECT = "sub"
    EXPIRE_TIME = "exp"
    ISSUE_TIME = "iat"
    # 59 minutes, just under the one hour maximum Snowflake accepts
    LIFETIME = 60 * 59

    FINGERPRINT_PREFIX = "SHA256:"

    def __init__(
        self,
        account: str,
        user: str,
        private_key: PrivateKey,
        private_key_passphrase: bytes | str | None = None,
    ) -> None:
        """Inits KeyPairTokenSigner.

        Args:
            account: account identifier, uppercased.
            user: user name, uppercased.
            private_key: a PEM encoded key as str or bytes, a DER encoded key as
                bytes, a base64 encoded DER key as str, or an object that implements
                the `RSAPrivateKey` or `EllipticCurvePrivateKey` interface.
            private_key_passphrase: passphrase of an encrypted private key.
        """
        self._account = account
        self._user = user
        self._private_key = private_key
        if isinstance(private_key_passphrase, str):
            private_key_passphrase = private_key_passphrase.encode(UTF8)
        self._private_key_passphrase = private_key_passphrase

    @property
    def qualified_username(self) -> str:
        return f"{self._account}.{self._user}"

    def load_private_key(self) -> RSAPrivateKey | EllipticCurvePrivateKey:
        """Parses the configured private key.

        Raises:
            ProgrammingError: the key cannot be parsed or is of an unsupported type.
        """
        key_data = self._private_key
        if isinstance(key_data, (RSAPrivateKey, EllipticCurvePrivateKey)):
            return key_data

        if isinstance(key_data, str):
            if key_data.lstrip().startswith(PEM_HEADER_PREFIX):
                key_data = key_data.encode(UTF8)
            else:
                try:
                    key_data = base64.b64decode(key_data, validate=True)
                except (binascii.Error, ValueError) as e:
                    raise ProgrammingError(
                        msg=f"Failed to decode private key: {e}\nPlease provide a valid "
                        "RSA or ECDSA private key in PEM format, or base64-encoded DER "
                        "format as a str object",
                        errno=ER_INVALID_PRIVATE_KEY,
                    ) from e

        if not isinstance(key_data, bytes):
            raise ProgrammingError(
                msg=f"Expected str, bytes, RSAPrivateKey, or EllipticCurvePrivateKey, "
                f"got {type(key_data)}",
                errno=ER_INVALID_PRIVATE_KEY,
            )

        loader = (
            load_pem_private_key
            if key_data.lstrip().startswith(PEM_HEADER_PREFIX.encode(UTF8))
            else load_der_private_key
        )
        try:
            private_key = loader(
                key_data,
                password=self._private_key_passphrase,
                backend=default_backend(),
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ProgrammingError(
                msg=f"Failed to load private key: {e}\nPlease provide a valid "
                "RSA or ECDSA private key. If the key is encrypted, provide the "
                "passphrase via private_key_passphrase",
                errno=ER_INVALID_PRIVATE_KEY,
            ) from e

        if not isinstance(private_key, (RSAPrivateKey, EllipticCurvePrivateKey)):
            raise ProgrammingError(
                msg=f"Private key type ({private_key.__class__.__name__}) not supported."
                "\nPlease provide a valid RSA or ECDSA private key",
                errno=ER_INVALID_PRIVATE_KEY,
            )
        return private_key

    def select_algorithm(
        self, private_key: RSAPrivateKey | EllipticCurvePrivateKey
    ) -> str:
        if isinstance(private_key, EllipticCurvePrivateKey):
            curve = private_key.curve
            if isinstance(curve, SECP256R1):
                return self.ALG_ES256
            elif isinstance(curve, SECP384R1):
                return self.ALG_ES384
            elif isinstance(curve, SECP521R1):
                return self.ALG_ES512
            raise ProgrammingError(
                msg=f"Unsupported EC curve: {curve.name}. Supported: SECP256R1, SECP384R1, SECP521R1",
                errno=ER_INVALID_PRIVATE_KEY,
            )
        return self.ALG_RS256

    def fingerprint(self) -> str:
        """Public key fingerprint as shown by `DESC USER` in Snowflake."""
        return self.calculate_public_key_fingerprint(self.load_private_key())

    def claims(self, public_key_fp: str, now: int | None = None) -> dict[str, Any]:
        issued_at = round(time.time()) if now is None else now
        return {
            self.ISSUER: f"{self.qualified_username}.{public_key_fp}",
            self.SUBJECT: self.qualified_username,
            self.ISSUE_TIME: issued_at,
            self.EXPIRE_TIME: issued_at + self.LIFETIME,
        }

    def mint(self) -> str:
        """Returns a freshly signed bearer token.

        Raises:
            ProgrammingError: the private key is unusable or signing failed.
        """
        private_key = self.load_private_key()
        algorithm = self.select_algorithm(private_key)
        payload = self.claims(self.calculate_public_key_fingerprint(private_key))

        try:
            token = jwt.encode(payload, private_key, algorithm=algorithm)
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise ProgrammingError(
                msg=f"Failed to sign bearer token with {algorithm}: {e}",
                errno=ER_FAILED_TO_SIGN_TOKEN,
            ) from e

        # jwt.encode() returns bytes in pyjwt 1.x and a string
        # in pyjwt 2.x
        if isinstance(token, bytes):
            token = token.decode(UTF8)
        return token

    @staticmethod
    def calculate_public_key_fingerprint(
        private_key: RSAPrivateKey | EllipticCurvePrivateKey,
    ) -> str:
        # get public key bytes
        public_key_der = private_key.public_key().public_bytes(
            Encoding.DER, PublicFormat.SubjectPublicKeyInfo
        )

        # take sha256 on raw bytes and then do base64 encode
        sha256hash = hashlib.sha256()
        sha256hash.update(public_key_der)

        public_key_fp = KeyPairTokenSigner.FINGERPRINT_PREFIX + base64.b64encode(
            sha256hash.digest()
        ).decode(UTF8)
        logger.debug("Public key fingerprint is %s", public_key_fp)

        return public_key_fp
