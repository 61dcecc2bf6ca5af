import hashlib
from ledgersync.errors import InputError, InvalidSeedsError
from .key_model import *

# Program derived addresses.
# An address is sha256(seed_1 | ... | seed_n | bump | program_id | "ProgramDerivedAddress"),
# where the bump is the largest value in 255..0 that yields a hash which is NOT a valid ed25519 point.
# This has to match the ledger's own rule exactly, otherwise reads and writes go to different accounts.

MAX_SEED_LEN = 32
MAX_SEEDS = 16
PDA_MARKER = b"ProgramDerivedAddress"
DIGEST_LEN = 4

# ed25519 curve constants
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P

Seed = bytes | bytearray | str | PublicKey

def is_on_curve(key:bytes) -> bool:
    """True if the 32 bytes decompress to a point on the ed25519 curve."""
    if len(key) != KEY_LEN:
        return False
    y = int.from_bytes(key, 'little') & ((1 << 255) - 1)
    y = y % _P
    y2 = (y * y) % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    # x^2 = u / v, the point exists iff that is a quadratic residue (or zero)
    x2 = (u * pow(v, _P - 2, _P)) % _P
    if x2 == 0:
        return True
    return pow(x2, (_P - 1) // 2, _P) == 1

def content_digest(content:str|bytes, length:int=DIGEST_LEN) -> bytes:
    if isinstance(content, str):
        content = content.encode('utf-8')
    return hashlib.sha256(content).digest()[:length]

def _seed_to_bytes(seed:Seed) -> bytes:
    if isinstance(seed, str):
        seed = seed.encode('utf-8')
    if not isinstance(seed, (bytes, bytearray)):
        raise InputError(f"Expected seed of type bytes, str, or PublicKey but got {type(seed)}")
    if len(seed) > MAX_SEED_LEN:
        raise InputError(f"Seed of {len(seed)} bytes exceeds the maximum of {MAX_SEED_LEN} bytes")
    return bytes(seed)

def _enforce_seeds(seeds:list[Seed]) -> list[bytes]:
    if len(seeds) > MAX_SEEDS:
        raise InputError(f"Expected at most {MAX_SEEDS} seeds but got {len(seeds)}")
    return [_seed_to_bytes(s) for s in seeds]

def _enforce_program_id(program_id:ProgramId) -> ProgramId:
    if program_id is None:
        raise InputError("A program id is required to derive addresses.")
    return to_key(program_id)

def create_program_address(seeds:list[Seed], program_id:ProgramId) -> StorageAddress:
    program_id = _enforce_program_id(program_id)
    hasher = hashlib.sha256()
    for seed in _enforce_seeds(seeds):
        hasher.update(seed)
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    digest = hasher.digest()
    if is_on_curve(digest):
        raise InvalidSeedsError("Seeds produce an address on the ed25519 curve.")
    return PublicKey(digest)

def find_program_address(seeds:list[Seed], program_id:ProgramId) -> tuple[StorageAddress, int]:
    seed_bytes = _enforce_seeds(seeds)
    if len(seed_bytes) >= MAX_SEEDS:
        raise InputError(f"Expected at most {MAX_SEEDS - 1} seeds, the bump takes the last slot")
    for bump in range(255, -1, -1):
        try:
            return create_program_address(seed_bytes + [bytes([bump])], program_id), bump
        except InvalidSeedsError:
            continue
    raise InvalidSeedsError("Unable to find a viable program address bump seed.")

def derive_address(program_id:ProgramId, label:str, *seeds:Seed) -> StorageAddress:
    """Derives the storage address for 'label' and the ordered seeds that follow it.

    The first seed is the owner. It must be present and not empty, anything else is an input error,
    not a derivation failure.
    """
    if not label:
        raise InputError("A seed label is required.")
    if len(seeds) == 0 or seeds[0] is None or len(seeds[0]) == 0:
        raise InputError(f"An owner is required to derive a '{label}' address.")
    if any(s is None for s in seeds):
        raise InputError(f"Seeds for a '{label}' address must not be None.")
    address, _bump = find_program_address([label, *seeds], program_id)
    return address

#===================================================================================================
# Seed strategies of the social program
#===================================================================================================
PROFILE_SEED = "profile"
POST_SEED = "post"
COMMENT_SEED = "comment"
FOLLOW_SEED = "follow"

def derive_profile_address(program_id:ProgramId, authority:Identity) -> StorageAddress:
    return derive_address(program_id, PROFILE_SEED, authority)

def derive_post_address(program_id:ProgramId, creator:Identity, media_uri:str, profile_address:StorageAddress) -> StorageAddress:
    # posts are keyed by a digest of their media uri, re-submitting the same uri hits the same address
    return derive_address(program_id, POST_SEED, creator, content_digest(media_uri), profile_address)

def derive_comment_address(program_id:ProgramId, post_address:StorageAddress, commenter:Identity, content:str) -> StorageAddress:
    if commenter is None:
        raise InputError("A commenter is required to derive a comment address.")
    return derive_address(program_id, COMMENT_SEED, post_address, commenter, content_digest(content))

def derive_follow_address(program_id:ProgramId, follower:Identity, following:Identity) -> StorageAddress:
    return derive_address(program_id, FOLLOW_SEED, follower, following)
