import base58
from ledgersync.errors import InputError

# Type aliases and the key value type used for every identity and storage address on the ledger.

KEY_LEN = 32

class PublicKey(bytes):
    """A 32 byte ledger key. Compares and hashes by its bytes, renders as base58."""

    def __new__(cls, value:'bytes | bytearray | str'):
        if isinstance(value, str):
            try:
                value = base58.b58decode(value)
            except ValueError as e:
                raise InputError(f"'{value}' is not a base58 string.") from e
        if not isinstance(value, (bytes, bytearray)):
            raise InputError(f"Expected key of type bytes or str but got {type(value)}")
        if len(value) != KEY_LEN:
            raise InputError(f"Expected key of {KEY_LEN} bytes but got {len(value)}")
        return super().__new__(cls, value)

    def __str__(self) -> str:
        return base58.b58encode(bytes(self)).decode('ascii')

    def __repr__(self) -> str:
        return f"PublicKey('{self}')"

    def short(self, length:int=8) -> str:
        return str(self)[:length]

Identity = PublicKey # owner / actor key, supplied by the wallet
StorageAddress = PublicKey # always derived, never stored
ProgramId = PublicKey

def is_key(key:bytes) -> bool:
    return isinstance(key, (bytes, bytearray)) and len(key) == KEY_LEN

def is_key_str(key_str:str) -> bool:
    if not isinstance(key_str, str) or len(key_str) == 0:
        return False
    try:
        return len(base58.b58decode(key_str)) == KEY_LEN
    except ValueError:
        return False

def to_key_str(key:bytes) -> str:
    return base58.b58encode(bytes(key)).decode('ascii')

def to_key(key:'bytes | bytearray | str | PublicKey') -> PublicKey:
    if isinstance(key, PublicKey):
        return key
    return PublicKey(key)
