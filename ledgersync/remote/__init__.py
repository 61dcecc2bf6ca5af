from . record_client import *
from . memory_record_client import MemoryRecordClient
from . rpc_record_client import RpcRecordClient, RPC_MAX_BATCH_SIZE, program_error_code
