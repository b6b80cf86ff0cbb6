import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from storefront.errors import DecryptionError

IV_LENGTH = 16
KEY_LENGTH = 32
SEPARATOR = ':'


class RecordCipher:
    """AES-256-CBC envelope for stored records.

    Blobs are written as ``ivHex:cipherHex`` with a fresh random IV for every
    call. CBC alone gives no integrity check, so a tampered blob is only
    detected when it breaks the padding or the UTF-8 decoding.
    """

    def __init__(self, key_hex):
        try:
            key = bytes.fromhex(key_hex)
        except (TypeError, ValueError):
            raise ValueError('ENCRYPT_KEY must be a hex string')
        if len(key) != KEY_LENGTH:
            raise ValueError(f'ENCRYPT_KEY must decode to {KEY_LENGTH} bytes, got {len(key)}')
        self._key = key

    def encrypt(self, text):
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(text.encode('utf-8')) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        encrypted = encryptor.update(padded) + encryptor.finalize()
        return iv.hex() + SEPARATOR + encrypted.hex()

    def decrypt(self, encrypted_text):
        if not isinstance(encrypted_text, str) or SEPARATOR not in encrypted_text:
            raise DecryptionError('Invalid encrypted data format')

        iv_hex, encrypted_hex = encrypted_text.strip().split(SEPARATOR, 1)
        try:
            iv = bytes.fromhex(iv_hex)
            encrypted = bytes.fromhex(encrypted_hex)
        except ValueError:
            raise DecryptionError('Encrypted data is not valid hex')

        if len(iv) != IV_LENGTH:
            raise DecryptionError('Malformed initialization vector')
        if not encrypted or len(encrypted) % IV_LENGTH:
            raise DecryptionError('Ciphertext is not block aligned')

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(encrypted) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode('utf-8')
        except ValueError:
            raise DecryptionError('Ciphertext was tampered with or the key is wrong')
