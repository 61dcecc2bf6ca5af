from __future__ import annotations
import base64
import logging
import httpx
from typing import Any
from ledgersync.errors import InputError, RemoteError, WriteRejected
from ledgersync.pda import ProgramId, StorageAddress, to_key, to_key_str
from .record_client import *

logger = logging.getLogger(__name__)

# getMultipleAccounts accepts at most 100 keys per request
RPC_MAX_BATCH_SIZE = 100

class RpcRecordClient(RecordClient):
    """Reads program accounts over the ledger's JSON-RPC interface.

    Writes go through an InstructionSubmitter (the wallet), since signing is not done here.
    Timeouts are configured on the http client and surface as RemoteError, nothing is retried.
    """

    def __init__(self,
            rpc_url:str,
            program_id:ProgramId,
            commitment:str="confirmed",
            timeout_seconds:float=30.0,
            max_batch_size:int=RPC_MAX_BATCH_SIZE,
            submitter:InstructionSubmitter|None=None,
            transport:httpx.AsyncBaseTransport|None=None):
        if not rpc_url:
            raise InputError("An rpc url is required.")
        if max_batch_size > RPC_MAX_BATCH_SIZE:
            raise InputError(f"max_batch_size cannot exceed {RPC_MAX_BATCH_SIZE}")
        self.rpc_url = rpc_url
        self.program_id = to_key(program_id)
        self.commitment = commitment
        self.max_batch_size = max_batch_size
        self.submitter = submitter
        self._request_id = 0
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=transport)

    async def _call(self, method:str, params:list) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            response = await self._http.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise RemoteError(f"{method}: request to '{self.rpc_url}' timed out.") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"{method}: request to '{self.rpc_url}' failed: {e}") from e
        except ValueError as e:
            raise RemoteError(f"{method}: response is not valid json.") from e
        error = body.get("error")
        if error is not None:
            program_code = program_error_code(error)
            if program_code is not None:
                raise WriteRejected(error.get("message", "Instruction rejected"), program_code)
            raise RemoteError(error.get("message", "Unknown rpc error"), error.get("code"))
        return body.get("result")

    def _config(self, **kwargs) -> dict:
        config = {"encoding": "base64", "commitment": self.commitment}
        config.update(kwargs)
        return config

    async def read_one(self, address:StorageAddress) -> AccountData | None:
        result = await self._call("getAccountInfo", [to_key_str(address), self._config()])
        return _decode_account_data(result.get("value") if result else None)

    async def read_many(self, addresses:list[StorageAddress]) -> list[AccountData | None]:
        if len(addresses) > self.max_batch_size:
            raise InputError(f"Expected at most {self.max_batch_size} addresses per read but got {len(addresses)}")
        if len(addresses) == 0:
            return []
        result = await self._call("getMultipleAccounts", [[to_key_str(a) for a in addresses], self._config()])
        values = result.get("value", []) if result else []
        if len(values) != len(addresses):
            raise RemoteError(f"getMultipleAccounts: expected {len(addresses)} accounts but got {len(values)}")
        return [_decode_account_data(v) for v in values]

    async def scan(self, filters:list[MemcmpFilter]) -> list[tuple[StorageAddress, AccountData]]:
        rpc_filters = [{"memcmp": {"offset": f.offset, "bytes": to_key_str(f.match)}} for f in filters]
        result = await self._call("getProgramAccounts", [to_key_str(self.program_id), self._config(filters=rpc_filters)])
        accounts = []
        for entry in result or []:
            data = _decode_account_data(entry.get("account"))
            if data is not None:
                accounts.append((to_key(entry["pubkey"]), data))
        return accounts

    async def submit(self, instruction:Instruction) -> str:
        if self.submitter is None:
            raise InputError("No wallet connected, cannot submit instructions.")
        return await self.submitter.submit(instruction)

    async def send_transaction(self, signed_transaction:bytes) -> str:
        """Sends an already signed, serialized transaction. Used by submitters."""
        encoded = base64.b64encode(signed_transaction).decode('ascii')
        return await self._call("sendTransaction", [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}])

    async def close(self) -> None:
        await self._http.aclose()

def _decode_account_data(account:dict|None) -> AccountData | None:
    if account is None:
        return None
    data = account.get("data")
    if data is None:
        return None
    # [payload, encoding]
    if not isinstance(data, list) or len(data) != 2:
        raise RemoteError(f"Expected account data as [payload, encoding] but got {data!r}")
    payload, encoding = data
    if encoding != "base64":
        raise RemoteError(f"Expected base64 account data but got '{encoding}'")
    try:
        return base64.b64decode(payload, validate=True)
    except (TypeError, ValueError) as e:
        raise RemoteError(f"Account data is not valid base64: {e}") from e

def program_error_code(error:dict) -> int|None:
    """Extracts the custom program error code from a failed transaction simulation, if there is one."""
    data = error.get("data")
    if not isinstance(data, dict):
        return None
    err = data.get("err")
    if not isinstance(err, dict) or "InstructionError" not in err:
        return None
    _index, detail = err["InstructionError"]
    if isinstance(detail, dict) and "Custom" in detail:
        return detail["Custom"]
    return None
