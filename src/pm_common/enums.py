"""Global enums for market metadata and list sorting."""

from enum import Enum


class MarketType(str, Enum):
    CRYPTO_PRICE = "CRYPTO_PRICE"
    IN_GAME = "IN_GAME"
    COMMUNITY = "COMMUNITY"


class OracleType(str, Enum):
    CHAINLINK = "CHAINLINK"
    GAME_SERVER = "GAME_SERVER"
    COMMUNITY_VOTE = "COMMUNITY_VOTE"


class MarketSortKey(str, Enum):
    DEADLINE = "deadline"
    POOL = "pool"
    BETS = "bets"
    CREATED = "created"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
