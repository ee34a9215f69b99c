"""
Trading core: signable action models and the asset directory.

The models describe what a caller wants to do; the asset directory maps
coins onto the indexes and precisions the canonical encoder needs.
"""

from .assets import AssetDirectory, AssetInfo
from .models import (
    ACTION_TYPES,
    Action,
    BatchOrder,
    BuilderFee,
    CancelOrder,
    Cloid,
    Grouping,
    LimitOrderType,
    ModifyOrder,
    OrderRequest,
    PlaceOrder,
    ScheduleCancel,
    Tif,
    TpSl,
    Transfer,
    TriggerOrderType,
    UpdateIsolatedMargin,
    UpdateLeverage,
)

__all__ = [
    "ACTION_TYPES",
    "Action",
    "AssetDirectory",
    "AssetInfo",
    "BatchOrder",
    "BuilderFee",
    "CancelOrder",
    "Cloid",
    "Grouping",
    "LimitOrderType",
    "ModifyOrder",
    "OrderRequest",
    "PlaceOrder",
    "ScheduleCancel",
    "Tif",
    "TpSl",
    "Transfer",
    "TriggerOrderType",
    "UpdateIsolatedMargin",
    "UpdateLeverage",
]
