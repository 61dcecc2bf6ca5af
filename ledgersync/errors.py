# Error taxonomy for the sync layer.
# NotFound is not an exception: reads return None for addresses without an account.

class LedgerSyncError(Exception):
    pass

class InputError(LedgerSyncError):
    """A required identity, program handle, or argument is missing or malformed. Raised before any remote call."""
    pass

class InvalidSeedsError(InputError):
    pass

class DecodeFailure(LedgerSyncError):
    """An account payload does not match the expected schema."""
    pass

class RemoteError(LedgerSyncError):
    """The remote record store failed: network, timeout, or node error."""
    code:int|str|None = None

    def __init__(self, message:str, code:int|str|None=None):
        super().__init__(message)
        self.code = code

class WriteRejected(RemoteError):
    """The ledger program rejected a submitted instruction."""
    pass

class SupersededError(LedgerSyncError):
    """A mutating operation was replaced by a newer call for the same key before it completed."""
    pass

#===================================================================================================
# Program error codes
# Anchor assigns custom program errors numbers starting at 6000, in declaration order.
#===================================================================================================
GENERIC_ERROR_MESSAGE = "Operation failed. Please try again."

ERROR_MESSAGES:dict[str, str] = {
    "HandleTooLong": "Handle is too long. Use at most 32 characters.",
    "HandleTooShort": "Handle cannot be empty.",
    "BioTooLong": "Bio is too long. Use at most 160 characters.",
    "AvatarUriTooLong": "Avatar URI is too long.",
    "ContentTooLong": "Content is too long. Use at most 280 characters.",
    "MediaUriTooLong": "Media URI is too long.",
    "CommentTooLong": "Comment is too long. Use at most 200 characters.",
    "EmptyContent": "Content cannot be empty.",
    "Unauthorized": "You are not allowed to modify this record.",
    "CannotFollowSelf": "You cannot follow yourself.",
    "AlreadyFollowing": "You already follow this user.",
    "NotFollowing": "You do not follow this user.",
    "ProfileNotFound": "Profile does not exist. Create a profile first.",
    "PostNotFound": "Post does not exist.",
    "Overflow": "A counter overflowed.",
    "Underflow": "A counter underflowed.",
    # built-in anchor / system errors
    "AccountAlreadyInUse": "A record with this content already exists.",
    "AccountNotInitialized": "Record does not exist.",
    "ConstraintSeeds": "Derived address does not match the program's expectation.",
    "ConstraintHasOne": "You are not allowed to modify this record.",
    "AccountDidNotDeserialize": "Record could not be read.",
}

# numeric codes, in declaration order of the program's error enum
_CUSTOM_ERROR_ORDER = [
    "HandleTooLong", "HandleTooShort", "BioTooLong", "AvatarUriTooLong", "ContentTooLong",
    "MediaUriTooLong", "CommentTooLong", "EmptyContent", "Unauthorized", "CannotFollowSelf",
    "AlreadyFollowing", "NotFollowing", "ProfileNotFound", "PostNotFound", "Overflow", "Underflow",
]
ERROR_CODES:dict[int, str] = {6000 + i: name for i, name in enumerate(_CUSTOM_ERROR_ORDER)}
ERROR_CODES.update({
    0: "AccountAlreadyInUse", # system program: account already in use
    2003: "ConstraintHasOne",
    2006: "ConstraintSeeds",
    3003: "AccountDidNotDeserialize",
    3012: "AccountNotInitialized",
})

def error_code_name(code:int|str|None) -> str|None:
    if code is None:
        return None
    if isinstance(code, int):
        return ERROR_CODES.get(code)
    if isinstance(code, str) and code.isdigit():
        return ERROR_CODES.get(int(code))
    return code

def get_error_message(code:int|str|None) -> str:
    """Maps a program error code (name or number) to a user-facing message."""
    name = error_code_name(code)
    if name is None:
        return GENERIC_ERROR_MESSAGE
    return ERROR_MESSAGES.get(name, GENERIC_ERROR_MESSAGE)
