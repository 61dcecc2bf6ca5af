import os
import tomlkit
from pydantic import BaseModel, ConfigDict, field_validator
from tomlkit import TOMLDocument, table
from ledgersync.errors import InputError
from ledgersync.pda import is_key_str

# Functions to work with a ledgersync.toml file
# Utilizes https://github.com/sdispater/tomlkit to work with TOML data.
#
# The expected toml format is:
# --------------------------
# [ledger]
# rpc_url = "https://api.devnet.solana.com"
# program_id = "o7WMnMvBfhf21mXMeoi2yAdmfiCsEaKGZE3DHT1E1qF"
# commitment = "confirmed"
# max_batch_size = 100
# timeout_seconds = 30.0
#
# [session]
# actor = "..." #base58 key of the actor to read as (optional)
# --------------------------

DEFAULT_CONFIG_FILE = "ledgersync.toml"
DEFAULT_PROGRAM_ID = "o7WMnMvBfhf21mXMeoi2yAdmfiCsEaKGZE3DHT1E1qF"
DEFAULT_RPC_URL = "http://localhost:8899"

class SyncConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    rpc_url:str = DEFAULT_RPC_URL
    program_id:str = DEFAULT_PROGRAM_ID
    commitment:str = "confirmed"
    max_batch_size:int = 100
    timeout_seconds:float = 30.0
    actor:str|None = None

    @field_validator('program_id', 'actor')
    @classmethod
    def _validate_key(cls, value:str|None) -> str|None:
        if value is not None and not is_key_str(value):
            raise ValueError(f"'{value}' is not a base58 encoded 32 byte key")
        return value

    @field_validator('commitment')
    @classmethod
    def _validate_commitment(cls, value:str) -> str:
        if value not in ("processed", "confirmed", "finalized"):
            raise ValueError(f"commitment must be 'processed', 'confirmed', or 'finalized' but was '{value}'")
        return value

    @field_validator('max_batch_size')
    @classmethod
    def _validate_batch_size(cls, value:int) -> int:
        if value < 1 or value > 100:
            raise ValueError("max_batch_size must be between 1 and 100")
        return value

    def with_overrides(self, **overrides) -> 'SyncConfig':
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return SyncConfig(**values)

def load_config(toml_file_path:str) -> SyncConfig:
    if not os.path.exists(toml_file_path):
        raise InputError(f"Config file '{toml_file_path}' does not exist.")
    doc = _read_toml_file(toml_file_path)
    return loads_config(doc)

def loads_config(toml:str|TOMLDocument) -> SyncConfig:
    if isinstance(toml, str):
        doc = _read_toml_string(toml)
    else:
        doc = toml
    values = {}
    ledger = doc.get("ledger", None)
    if ledger is not None:
        values.update(ledger.unwrap())
    session = doc.get("session", None)
    if session is not None and "actor" in session:
        values["actor"] = str(session["actor"])
    try:
        return SyncConfig(**values)
    except ValueError as e:
        raise InputError(f"Invalid config: {e}") from e

def save_config(toml_file_path:str, config:SyncConfig):
    doc = tomlkit.document()
    ledger = table()
    ledger.add("rpc_url", config.rpc_url)
    ledger.add("program_id", config.program_id)
    ledger.add("commitment", config.commitment)
    ledger.add("max_batch_size", config.max_batch_size)
    ledger.add("timeout_seconds", config.timeout_seconds)
    doc.add("ledger", ledger)
    if config.actor is not None:
        session = table()
        session.add("actor", config.actor)
        doc.add("session", session)
    _write_toml_file(toml_file_path, doc)

def _read_toml_file(file_path) -> TOMLDocument:
    file_path = _convert_posix_to_win(file_path)
    with open(file_path, 'r') as f:
        return _read_toml_string(f.read())

def _read_toml_string(toml_string) -> TOMLDocument:
    return tomlkit.loads(toml_string)

def _write_toml_file(file_path, doc:TOMLDocument):
    file_path = _convert_posix_to_win(file_path)
    with open(file_path, 'w') as f:
        f.write(doc.as_string())

def _convert_posix_to_win(path:str) -> str:
    if os.name == "nt" and "/" in path:
        return path.replace("/", os.sep)
    return path
