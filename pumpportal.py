"""
PumpPortal client: creator fee claims and bonding-curve buy transactions.
"""

import requests

from errors import UpstreamError
from logs import log, Style

PUMPPORTAL_TRADE_API = "https://pumpportal.fun/api/trade"  # Lightning (api-key, server signs)
PUMPPORTAL_TRADE_LOCAL_API = "https://pumpportal.fun/api/trade-local"  # returns tx for us to sign
POOL = "pump"
CLAIM_PRIORITY_FEE = 0.000001
REQUEST_TIMEOUT = 15


class PumpPortal:
    def __init__(self, api_key: str = "", session: requests.Session | None = None):
        self.api_key = api_key
        self.session = session or requests.Session()

    def _post(self, url: str, body: dict, params: dict | None = None) -> requests.Response:
        try:
            response = self.session.post(url, params=params, json=body, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise UpstreamError(f"PumpPortal {body.get('action')} request failed: {e}") from e
        if response.status_code != 200:
            raise UpstreamError(f"PumpPortal {body.get('action')} failed: {response.status_code} - {response.text[:200]}")
        return response

    def claim_creator_fees(self, wallet=None) -> dict:
        """Sweep accrued creator fees into the operator wallet.

        The platform settles the claim asynchronously; callers wait before
        trusting balances.
        """
        body = {
            "action": "collectCreatorFee",
            "priorityFee": CLAIM_PRIORITY_FEE,
            "pool": POOL,
        }

        if self.api_key:
            response = self._post(PUMPPORTAL_TRADE_API, body, params={"api-key": self.api_key})
            try:
                result = response.json()
            except ValueError as e:
                raise UpstreamError(f"PumpPortal claim returned non-JSON body: {response.text[:200]}") from e
            if not isinstance(result, dict):
                raise UpstreamError(f"PumpPortal claim returned unexpected body: {result!r}")
            if result.get("errors"):
                raise UpstreamError(f"PumpPortal claim rejected: {result['errors']}")
            log("CLAIM", f"Claim submitted: {result.get('signature', '?')}", Style.GREEN)
            return result

        if wallet is None:
            raise UpstreamError("PumpPortal local claim needs the operator wallet")

        body["publicKey"] = wallet.pubkey
        response = self._post(PUMPPORTAL_TRADE_LOCAL_API, body)
        if not response.content:
            raise UpstreamError("PumpPortal claim returned an empty transaction")
        signature = wallet.sign_and_send(response.content)
        log("CLAIM", f"Claimed Pump Fees: https://solscan.io/tx/{signature}", Style.GREEN)
        return {"signature": signature}

    def request_swap(self, mint: str, sol_amount: float, slippage: int, priority_fee: float, payer: str) -> bytes:
        """Unsigned SOL -> token buy transaction for `payer` to co-sign."""
        body = {
            "publicKey": payer,
            "action": "buy",
            "mint": mint,
            "amount": sol_amount,
            "denominatedInSol": "true",
            "slippage": slippage,
            "priorityFee": priority_fee,
            "pool": POOL,
        }
        log("SWAP", f"Requesting swap: {sol_amount:.6f} SOL -> {mint[:8]}...", Style.CYAN)
        response = self._post(PUMPPORTAL_TRADE_LOCAL_API, body)
        if not response.content:
            raise UpstreamError("PumpPortal swap returned an empty transaction")
        return response.content
