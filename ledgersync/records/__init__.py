from . record_model import *
from . record_serialization import (account_discriminator, instruction_discriminator, DISCRIMINATOR_LEN, FIRST_FIELD_OFFSET,
                                    PROFILE_ACCOUNT, POST_ACCOUNT, COMMENT_ACCOUNT, FOLLOW_ACCOUNT,
                                    profile_to_bytes, bytes_to_profile, post_to_bytes, bytes_to_post,
                                    comment_to_bytes, bytes_to_comment, follow_to_bytes, bytes_to_follow, record_to_bytes)
