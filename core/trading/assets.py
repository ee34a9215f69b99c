"""
Asset directory: symbol -> (asset index, decimal precision).

Loaded by the caller from exchange metadata before encoding. The encoder
never fetches it; a stale directory surfaces as UnknownAssetError.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from core.utils.exceptions import UnknownAssetError

SPOT_ASSET_OFFSET = 10000
PERP_MAX_DECIMALS = 6
SPOT_MAX_DECIMALS = 8


@dataclass(frozen=True)
class AssetInfo:
    """Resolution data for one tradable asset"""

    index: int
    decimals: int
    # Defaults to ``decimals`` when the venue uses one precision for both
    price_decimals: Optional[int] = None

    def __post_init__(self):
        if self.index < 0:
            raise ValueError(f"asset index must be non-negative, got {self.index}")
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {self.decimals}")
        if self.price_decimals is not None and self.price_decimals < 0:
            raise ValueError(f"price_decimals must be non-negative, got {self.price_decimals}")

    @property
    def size_decimals(self) -> int:
        return self.decimals

    @property
    def effective_price_decimals(self) -> int:
        return self.decimals if self.price_decimals is None else self.price_decimals


class AssetDirectory(Mapping[str, AssetInfo]):
    """Immutable symbol lookup consumed by the canonical encoder."""

    def __init__(self, assets: Mapping[str, Union[AssetInfo, Mapping[str, Any]]]):
        entries: Dict[str, AssetInfo] = {}
        for symbol, info in assets.items():
            if not isinstance(info, AssetInfo):
                info = AssetInfo(
                    index=int(info["index"]),
                    decimals=int(info["decimals"]),
                    price_decimals=(
                        int(info["price_decimals"])
                        if info.get("price_decimals") is not None
                        else None
                    ),
                )
            entries[symbol] = info
        self._assets = MappingProxyType(entries)

    @classmethod
    def from_meta(cls, meta: Mapping[str, Any],
                  spot_meta: Optional[Mapping[str, Any]] = None) -> "AssetDirectory":
        """Build from the exchange's ``meta`` (and optional ``spotMeta``) responses.

        Perp assets are indexed by universe position; spot pairs by
        10000 + pair index. Price precision follows the venue rule of
        6 (perp) or 8 (spot) minus the size decimals.
        """
        assets: Dict[str, AssetInfo] = {}
        for index, entry in enumerate(meta.get("universe", [])):
            sz_decimals = int(entry["szDecimals"])
            assets[entry["name"]] = AssetInfo(
                index=index,
                decimals=sz_decimals,
                price_decimals=max(PERP_MAX_DECIMALS - sz_decimals, 0),
            )

        if spot_meta:
            tokens = {t["index"]: t for t in spot_meta.get("tokens", [])}
            for pair in spot_meta.get("universe", []):
                base = tokens.get(pair["tokens"][0])
                if base is None:
                    continue
                sz_decimals = int(base["szDecimals"])
                assets[pair["name"]] = AssetInfo(
                    index=SPOT_ASSET_OFFSET + int(pair["index"]),
                    decimals=sz_decimals,
                    price_decimals=max(SPOT_MAX_DECIMALS - sz_decimals, 0),
                )
        return cls(assets)

    def resolve(self, symbol: str) -> AssetInfo:
        try:
            return self._assets[symbol]
        except KeyError:
            raise UnknownAssetError(
                f"Unknown asset '{symbol}' - refresh the asset directory",
                symbol=symbol,
            ) from None

    def __getitem__(self, symbol: str) -> AssetInfo:
        return self._assets[symbol]

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._assets

    def __repr__(self) -> str:
        return f"AssetDirectory({len(self._assets)} assets)"
