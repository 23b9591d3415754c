"""
Aave V3 Contract ABIs and Constants
"""
from typing import Final, List, Any

AAVE_DEFAULT_REFERRAL_CODE: Final[int] = 0

AAVE_POOL_ABI: Final[List[Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "asset", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
            {"internalType": "address", "name": "onBehalfOf", "type": "address"},
            {"internalType": "uint16", "name": "referralCode", "type": "uint16"},
        ],
        "name": "supply",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]
