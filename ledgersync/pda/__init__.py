from . key_model import *
from . address_derivation import (is_on_curve, content_digest, create_program_address, find_program_address, derive_address,
                                  derive_profile_address, derive_post_address, derive_comment_address, derive_follow_address,
                                  PROFILE_SEED, POST_SEED, COMMENT_SEED, FOLLOW_SEED, MAX_SEED_LEN, MAX_SEEDS)
