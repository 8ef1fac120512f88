"""
Read-only chain queries: token holder snapshot and wallet balances.
"""

import requests
from solana.rpc.api import Client
from solana.rpc.types import TokenAccountOpts
from solders.pubkey import Pubkey

from errors import UpstreamError

TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"  # SPL Token
TOKEN_ACCOUNT_SIZE = 165
RPC_TIMEOUT = 60


def _parsed_info(account) -> dict:
    try:
        info = account["account"]["data"]["parsed"]["info"]
    except (KeyError, TypeError):
        return {}
    return info if isinstance(info, dict) else {}


class ChainQuery:
    def __init__(self, client: Client, rpc_url: str, session: requests.Session | None = None):
        self.client = client
        self.rpc_url = rpc_url
        self.session = session or requests.Session()

    def _rpc(self, method: str, params: list):
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=RPC_TIMEOUT)
        except requests.RequestException as e:
            raise UpstreamError(f"{method} request failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(f"{method} failed: {response.status_code} - {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"{method} returned invalid JSON: {response.text[:200]}") from e
        if not isinstance(data, dict):
            raise UpstreamError(f"{method} returned unexpected payload: {str(data)[:200]}")

        if data.get("error"):
            message = data["error"].get("message", data["error"]) if isinstance(data["error"], dict) else data["error"]
            raise UpstreamError(f"RPC error: {message}")
        return data.get("result")

    def get_token_holders(self, mint: str) -> list[dict]:
        """Every SPL token account of `mint` as a loose {owner, balance} row.

        Values are passed through unvalidated; the holder selector drops rows
        it can't use.
        """
        accounts = self._rpc("getProgramAccounts", [
            TOKEN_PROGRAM,
            {
                "encoding": "jsonParsed",
                "filters": [
                    {"dataSize": TOKEN_ACCOUNT_SIZE},
                    {"memcmp": {"offset": 0, "bytes": mint}},
                ],
            },
        ]) or []

        rows = []
        for account in accounts:
            info = _parsed_info(account)
            amount = info.get("tokenAmount")
            rows.append({
                "owner": info.get("owner"),
                "balance": amount.get("amount") if isinstance(amount, dict) else None,
            })
        return rows

    def get_sol_balance(self, address: str) -> int:
        """Lamports held by `address`."""
        try:
            response = self.client.get_balance(Pubkey.from_string(address))
        except Exception as e:
            raise UpstreamError(f"Balance check failed: {e}") from e
        return int(response.value or 0)

    def get_token_balance(self, mint: str, owner: str) -> int:
        """Raw token units of `mint` held by `owner` across all its token accounts."""
        try:
            opts = TokenAccountOpts(mint=Pubkey.from_string(mint), encoding="jsonParsed")
            response = self.client.get_token_accounts_by_owner_json_parsed(Pubkey.from_string(owner), opts)
        except Exception as e:
            raise UpstreamError(f"Token balance check failed: {e}") from e

        total = 0
        try:
            for account in response.value or []:
                parsed = account.account.data.parsed
                if parsed and "info" in parsed:
                    total += int(parsed["info"]["tokenAmount"]["amount"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"Unexpected token account data: {e}") from e
        return total
