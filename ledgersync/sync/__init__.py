from . coalescer import RequestCoalescer, FetchKey
from . sync_state import SyncState, CollectionState, CollectionStatus, FetchTicket
from . batch_planner import BatchFetchPlanner, chunked
from . view_merger import (merge, merge_posts_with_handles, merge_profiles_with_follow_status, follow_statuses,
                           fallback_handle, sort_posts, sort_comments)
from . collection import RecordSchema, RecordCollection, PROFILE_SCHEMA, POST_SCHEMA, COMMENT_SCHEMA, FOLLOW_SCHEMA
from . social_sync import (SocialSync, WriteResult, OWN_PROFILE, USER_POSTS, ALL_POSTS, ALL_PROFILES,
                           profile_collection, post_collection, comments_collection)
